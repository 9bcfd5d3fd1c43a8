from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from libs.core.exceptions import NotFoundError
from libs.core.models import DEFAULT_TOPIC, ItemType, SavedItem
from libs.db.store import ItemStore
from libs.llm import EmbeddingsProvider, LLMClient
from libs.search.classifier import ItemClassifier, ItemDraft

logger = logging.getLogger(__name__)

LIST_LIMIT = 1000


@dataclass
class SaveRequest:
    owner_key: str
    title: str
    url: str = ""
    type: Optional[ItemType] = None
    selected_text: str = ""
    description: str = ""
    image_url: str = ""
    file_url: str = ""
    topic_user: List[str] = field(default_factory=list)
    price: Optional[float] = None
    reason: Optional[str] = None
    topic_auto: Optional[str] = None


def _normalize_tags(tags: List[str] | str | None) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    out: List[str] = []
    for tag in tags:
        t = str(tag).strip()
        if t and t not in out:
            out.append(t)
    return out


def embedding_text(item: SavedItem) -> str:
    """Text the item's stored vector is computed from."""
    parts = [
        item.title,
        item.description,
        item.selected_text,
        item.summary or "",
        item.reason,
        " ".join(item.keywords),
    ]
    return " ".join(p for p in parts if p).strip()


class SaveItem:
    """Classify, embed and persist a newly captured item."""

    def __init__(
        self,
        llm: LLMClient,
        embeddings: EmbeddingsProvider,
        store: ItemStore,
        classifier: ItemClassifier | None = None,
    ) -> None:
        self.llm = llm
        self.embeddings = embeddings
        self.store = store
        self.classifier = classifier or ItemClassifier(llm)

    async def __call__(self, req: SaveRequest) -> SavedItem:
        draft = ItemDraft(
            title=req.title,
            url=req.url,
            type=req.type,
            selected_text=req.selected_text,
            description=req.description,
            image_url=req.image_url,
            price=req.price,
            reason=req.reason,
            topic_auto=req.topic_auto,
        )
        result = await asyncio.to_thread(self.classifier.classify, draft)

        tags = _normalize_tags(req.topic_user)
        # The user's first tag outranks the oracle topic.
        category = tags[0] if tags else (result.topic_auto or DEFAULT_TOPIC)

        item = SavedItem(
            owner_key=req.owner_key,
            title=req.title,
            url=req.url,
            file_url=req.file_url,
            image_url=req.image_url,
            type=result.type,
            reason=result.reason,
            topic_auto=result.topic_auto,
            topic_user=tags,
            category=category,
            keywords=result.keywords,
            summary=result.summary,
            platform=result.platform,
            price=result.price,
            selected_text=req.selected_text,
            description=req.description,
        )
        item.embedding = await asyncio.to_thread(self.embeddings.embed, embedding_text(item))
        saved = await self.store.add(item)
        logger.info(
            "Item saved",
            extra={"item_id": saved.id, "type": saved.type.value, "platform": saved.platform},
        )
        return saved


class ListItems:
    """Newest items of one owner."""

    def __init__(self, store: ItemStore) -> None:
        self.store = store

    async def __call__(self, owner_key: str, limit: int = LIST_LIMIT) -> List[SavedItem]:
        return await self.store.recent(owner_key, min(limit, LIST_LIMIT))


class DeleteItem:
    def __init__(self, store: ItemStore) -> None:
        self.store = store

    async def __call__(self, owner_key: str, item_id: str) -> None:
        deleted = await self.store.delete(owner_key, item_id)
        if not deleted:
            raise NotFoundError(f"Item {item_id} not found")
        logger.info("Item deleted", extra={"item_id": item_id})


__all__ = ["SaveRequest", "SaveItem", "ListItems", "DeleteItem", "embedding_text"]
