"""Database utilities for MindVault."""

from . import models
from .database import get_session, init_db
from .memory_repository import InMemoryItemRepo
from .repositories import SavedItemRepo
from .store import ItemStore

__all__ = [
    "models",
    "get_session",
    "init_db",
    "ItemStore",
    "SavedItemRepo",
    "InMemoryItemRepo",
]
