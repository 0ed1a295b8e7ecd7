"""Dispatch — run one diagnostic action against one live process."""
