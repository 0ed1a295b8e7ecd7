"""Process discovery — enumerate OS processes and classify them.

- ProcessSource: capability interface over the OS process table
- PsutilProcessSource / ProcfsProcessSource: the real implementations
- ProcessCatalog: one sorted, de-duplicated, classified scan
"""
