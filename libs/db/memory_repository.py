"""In-process item store for tests and local runs without Postgres."""

from __future__ import annotations

from typing import Dict, List, Optional

from libs.core.models import SavedItem
from libs.search.filters import SortKey, StoreQuery

from .store import ItemStore


class InMemoryItemRepo(ItemStore):
    """Dict-backed store evaluating queries with ``StoreQuery.matches``."""

    def __init__(self, items: Optional[List[SavedItem]] = None) -> None:
        self._items: Dict[str, SavedItem] = {}
        for item in items or []:
            self._items[item.id] = item

    async def add(self, item: SavedItem) -> SavedItem:
        self._items[item.id] = item
        return item

    async def get(self, owner_key: str, item_id: str) -> Optional[SavedItem]:
        item = self._items.get(item_id)
        return item if item is not None and item.owner_key == owner_key else None

    async def find(
        self, query: StoreQuery, sort: SortKey = SortKey.DATE, limit: Optional[int] = None
    ) -> List[SavedItem]:
        found = [i for i in self._items.values() if query.matches(i)]
        found.sort(key=lambda i: i.created_at, reverse=True)
        if sort is SortKey.TITLE:
            found.sort(key=lambda i: i.title)
        return found if limit is None else found[:limit]

    async def recent(self, owner_key: str, limit: int) -> List[SavedItem]:
        return await self.find(StoreQuery(owner_key=owner_key), SortKey.DATE, limit)

    async def delete(self, owner_key: str, item_id: str) -> bool:
        if await self.get(owner_key, item_id) is None:
            return False
        del self._items[item_id]
        return True


__all__ = ["InMemoryItemRepo"]
