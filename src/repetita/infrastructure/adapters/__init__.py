# Store Adapters Package
from .memory_store import InMemoryFlashcardStore
from .sqlite_store import SqliteFlashcardStore

__all__ = ["InMemoryFlashcardStore", "SqliteFlashcardStore"]
