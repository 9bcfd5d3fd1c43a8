"""Core library exposing domain models, settings and exceptions."""

from .settings import Settings, get_settings
from .exceptions import DomainError, NotFoundError, StoreError, Error
from .models import (
    DEFAULT_PLATFORM,
    DEFAULT_REASON,
    DEFAULT_TOPIC,
    REASON_OPTIONS,
    ItemType,
    SavedItem,
    ScoredItem,
)

__all__ = [
    "Settings",
    "get_settings",
    "DomainError",
    "NotFoundError",
    "StoreError",
    "Error",
    "ItemType",
    "SavedItem",
    "ScoredItem",
    "REASON_OPTIONS",
    "DEFAULT_REASON",
    "DEFAULT_TOPIC",
    "DEFAULT_PLATFORM",
]
