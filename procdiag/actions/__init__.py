"""Diagnostic actions — the (category, action) → command table."""
