"""
Persistence adapters.

Services depend on the DocumentStore interface; the app factory decides which
backend (SQL or in-memory) is handed to them.
"""

from .base import (
    CARD_LIMITS_DOC,
    CARD_STATS,
    CARD_VIEWS,
    CARDS,
    SYSTEM_CONFIG,
    USERS,
    Document,
    DocumentStore,
    now_iso,
)
from .memory_store import MemoryDocumentStore
from .sql_store import SQLDocumentStore

__all__ = [
    "CARD_LIMITS_DOC",
    "CARD_STATS",
    "CARD_VIEWS",
    "CARDS",
    "SYSTEM_CONFIG",
    "USERS",
    "Document",
    "DocumentStore",
    "MemoryDocumentStore",
    "SQLDocumentStore",
    "build_store",
    "now_iso",
]


def build_store(settings) -> DocumentStore:
    """Pick the backend named by STORE_BACKEND."""
    if settings.store_backend == "memory":
        return MemoryDocumentStore()
    if settings.store_backend == "sql":
        return SQLDocumentStore()
    raise RuntimeError(f"Unknown STORE_BACKEND: {settings.store_backend!r}")
