"""Shared helpers: debouncing and filesystem writes."""

from specgraph.utils.concurrency import DebounceManager, close_debouncer
from specgraph.utils.fs import atomic_write_text, resolve_within

__all__ = ["DebounceManager", "atomic_write_text", "close_debouncer", "resolve_within"]
