"""Storage layer - conversations, messages, notifications and the directory."""

from src.storage.base import StorageBackend
from src.storage.firestore import FirestoreStorage
from src.storage.memory import InMemoryStorage

__all__ = ["StorageBackend", "FirestoreStorage", "InMemoryStorage"]
