"""
Persistence layer for the scoring engine.

- Store / StoreError: abstract contract and its single failure type
- InMemoryStore: dict-backed local tier
- JsonFileStore: schema-validated JSON files
- FallbackStore: primary-first policy with local fallback and reconciliation
"""

from pathlib import Path
from typing import Optional

from ..config import config
from .base import Store, StoreError
from .fallback import CircuitBreaker, FallbackStore
from .json_store import JsonFileStore
from .memory_store import InMemoryStore

# Global store instance
_store: Optional[Store] = None


def create_store(backend: Optional[str] = None, data_dir: Path | str = None) -> Store:
    """
    Build the configured store.

    ``json`` gives a JSON file store backed by an in-memory fallback tier;
    ``memory`` gives a plain in-memory store.
    """
    backend = backend or config.storage.backend
    if backend == "memory":
        return InMemoryStore()
    if backend == "json":
        return FallbackStore(JsonFileStore(data_dir), InMemoryStore())
    raise ValueError(f"Unknown store backend: {backend!r}")


def get_store() -> Store:
    """Get or create the global store."""
    global _store
    if _store is None:
        _store = create_store()
    return _store


__all__ = [
    "Store",
    "StoreError",
    "InMemoryStore",
    "JsonFileStore",
    "FallbackStore",
    "CircuitBreaker",
    "create_store",
    "get_store",
]
