from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from libs.core.models import SavedItem
from libs.search.filters import SortKey, StoreQuery


class ItemStore(ABC):
    """Owner-scoped persistence for saved items.

    Every read takes the owner key (directly or inside a :class:`StoreQuery`)
    and never returns another owner's items. Implementations raise
    :class:`libs.core.exceptions.StoreError` on backend failures.
    """

    @abstractmethod
    async def add(self, item: SavedItem) -> SavedItem:
        ...

    @abstractmethod
    async def get(self, owner_key: str, item_id: str) -> Optional[SavedItem]:
        ...

    @abstractmethod
    async def find(
        self, query: StoreQuery, sort: SortKey = SortKey.DATE, limit: Optional[int] = None
    ) -> List[SavedItem]:
        """Items matching ``query``; newest first unless sorted by title."""

    @abstractmethod
    async def recent(self, owner_key: str, limit: int) -> List[SavedItem]:
        ...

    @abstractmethod
    async def delete(self, owner_key: str, item_id: str) -> bool:
        """Remove an item; ``False`` when the owner has no such item."""


__all__ = ["ItemStore"]
