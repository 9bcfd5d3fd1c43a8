"""SQLAlchemy ORM models for saved items."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedItem(Base):
    __tablename__ = "saved_items"
    __table_args__ = (Index("ix_saved_items_owner_created", "owner_key", "created_at"),)

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid4())
    )
    owner_key: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    url: Mapped[str] = mapped_column(String, default="")
    file_url: Mapped[str] = mapped_column(String, default="")
    image_url: Mapped[str] = mapped_column(String, default="")
    type: Mapped[str] = mapped_column(String(16), default="text")
    reason: Mapped[str] = mapped_column(String(64), default="")
    topic_auto: Mapped[str] = mapped_column(String(128), default="general")
    topic_user: Mapped[List[str]] = mapped_column(ARRAY(String), default=list)
    category: Mapped[str] = mapped_column(String(128), default="general")
    keywords: Mapped[List[str]] = mapped_column(ARRAY(String), default=list)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    platform: Mapped[str] = mapped_column(String(32), default="generic")
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    selected_text: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    embedding: Mapped[List[float]] = mapped_column(ARRAY(Float), default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


__all__ = ["SavedItem"]
