"""Postgres-backed item store."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Select, and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.core.exceptions import StoreError
from libs.core.models import SavedItem
from libs.search.filters import (
    ARRAY_FIELDS,
    Condition,
    DateRange,
    FieldMatch,
    MatchKind,
    NumberRange,
    SortKey,
    StoreQuery,
)

from . import models
from .store import ItemStore

# Joins list elements before regex matching; never occurs in user text.
_ARRAY_SEPARATOR = "\x1f"


def _column(name: str):
    return getattr(models.SavedItem, name)


def _clause(cond: Condition):
    col = _column(cond.field)
    if isinstance(cond, FieldMatch):
        if cond.kind is MatchKind.EQUALS:
            return col.any(cond.value) if cond.field in ARRAY_FIELDS else col == cond.value
        if cond.field in ARRAY_FIELDS:
            col = func.array_to_string(col, _ARRAY_SEPARATOR)
        return col.regexp_match(cond.value, flags="i")
    if isinstance(cond, (NumberRange, DateRange)):
        lo, hi = (
            (cond.minimum, cond.maximum)
            if isinstance(cond, NumberRange)
            else (cond.start, cond.end)
        )
        parts = [col.is_not(None)]
        if lo is not None:
            parts.append(col >= lo)
        if hi is not None:
            parts.append(col <= hi)
        return and_(*parts)
    raise TypeError(f"Unsupported condition: {cond!r}")


def build_statement(
    query: StoreQuery, sort: SortKey = SortKey.DATE, limit: Optional[int] = None
) -> Select:
    """Compile a :class:`StoreQuery` into a SELECT over ``saved_items``."""
    item = models.SavedItem
    stmt = select(item).where(item.owner_key == query.owner_key)
    for cond in query.all_of:
        stmt = stmt.where(_clause(cond))
    if query.any_of:
        stmt = stmt.where(or_(*(_clause(c) for c in query.any_of)))
    if sort is SortKey.TITLE:
        stmt = stmt.order_by(item.title.asc(), item.created_at.desc())
    else:
        stmt = stmt.order_by(item.created_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


def to_domain(row: models.SavedItem) -> SavedItem:
    return SavedItem(
        id=row.id,
        owner_key=row.owner_key,
        title=row.title,
        url=row.url or "",
        file_url=row.file_url or "",
        image_url=row.image_url or "",
        type=row.type,
        reason=row.reason or "",
        topic_auto=row.topic_auto,
        topic_user=list(row.topic_user or []),
        category=row.category,
        keywords=list(row.keywords or []),
        summary=row.summary,
        platform=row.platform,
        price=row.price,
        selected_text=row.selected_text or "",
        description=row.description or "",
        embedding=list(row.embedding or []),
        created_at=row.created_at,
    )


def to_row(item: SavedItem) -> models.SavedItem:
    data = item.model_dump()
    data["type"] = item.type.value
    return models.SavedItem(**data)


class SavedItemRepo(ItemStore):
    """CRUD and filtered search for :class:`models.SavedItem`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, item: SavedItem) -> SavedItem:
        try:
            self.session.add(to_row(item))
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to save item") from exc
        return item

    async def get(self, owner_key: str, item_id: str) -> Optional[SavedItem]:
        stmt = select(models.SavedItem).where(
            models.SavedItem.id == item_id, models.SavedItem.owner_key == owner_key
        )
        try:
            res = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load item") from exc
        row = res.scalar_one_or_none()
        return to_domain(row) if row is not None else None

    async def find(
        self, query: StoreQuery, sort: SortKey = SortKey.DATE, limit: Optional[int] = None
    ) -> List[SavedItem]:
        try:
            res = await self.session.execute(build_statement(query, sort, limit))
        except SQLAlchemyError as exc:
            raise StoreError("Failed to query items") from exc
        return [to_domain(r) for r in res.scalars().all()]

    async def recent(self, owner_key: str, limit: int) -> List[SavedItem]:
        return await self.find(StoreQuery(owner_key=owner_key), SortKey.DATE, limit)

    async def delete(self, owner_key: str, item_id: str) -> bool:
        stmt = delete(models.SavedItem).where(
            models.SavedItem.id == item_id, models.SavedItem.owner_key == owner_key
        )
        try:
            res = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to delete item") from exc
        return bool(res.rowcount)


__all__ = ["SavedItemRepo", "build_statement", "to_domain", "to_row"]
