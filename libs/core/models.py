"""Pydantic models representing core domain entities."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ItemType(str, Enum):
    """Kinds of content a saved item can hold."""

    TEXT = "text"
    LINK = "link"
    IMAGE = "image"
    GIF = "gif"
    VOICE = "voice"
    VIDEO = "video"
    PRODUCT = "product"
    NOTE = "note"
    SOCIAL = "social"
    PDF = "pdf"
    DOC = "doc"


REASON_OPTIONS: List[str] = [
    "to view later",
    "to read later",
    "to buy later",
    "to watch later",
    "to research later",
    "important reference",
    "personal note",
]

DEFAULT_REASON = "to view later"
DEFAULT_TOPIC = "general"
DEFAULT_PLATFORM = "generic"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SavedItem(_CamelModel):
    """A single captured snippet, scoped to one owner."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_key: str
    title: str
    url: str = ""
    file_url: str = ""
    image_url: str = ""
    type: ItemType = ItemType.TEXT
    reason: str = ""
    topic_auto: str = DEFAULT_TOPIC
    topic_user: List[str] = Field(default_factory=list)
    category: str = DEFAULT_TOPIC
    keywords: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    platform: str = DEFAULT_PLATFORM
    price: Optional[float] = None
    selected_text: str = ""
    description: str = ""
    embedding: List[float] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("owner_key", "title")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("created_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        # Naive timestamps coming back from a store are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ScoredItem(BaseModel):
    """Search hit: a saved item plus its transient relevance score."""

    item: SavedItem
    similarity: float

    def to_public(self) -> dict:
        data = self.item.model_dump(by_alias=True, mode="json", exclude={"embedding"})
        data["similarity"] = self.similarity
        return data


__all__ = [
    "ItemType",
    "REASON_OPTIONS",
    "DEFAULT_REASON",
    "DEFAULT_TOPIC",
    "DEFAULT_PLATFORM",
    "SavedItem",
    "ScoredItem",
]
