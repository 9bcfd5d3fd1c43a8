from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from libs.core.auth import verify_owner_token
from libs.core.exceptions import NotFoundError, StoreError
from libs.core.models import ItemType
from libs.core.settings import Settings, get_settings
from libs.db import ItemStore, SavedItemRepo, get_session, init_db
from libs.llm import LLMClient, ReplicateLLMClient
from libs.llm.embeddings_provider import EmbeddingsProvider, get_embeddings_provider
from libs.logging import setup_logging
from libs.search.filters import SortKey
from libs.usecases import (
    DeleteItem,
    ListItems,
    SaveItem,
    SaveRequest,
    Search,
    SearchRequest,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dependency factories


def get_llm_client() -> LLMClient:
    return ReplicateLLMClient()


async def db_session() -> AsyncIterator[AsyncSession]:
    async with get_session() as session:
        yield session


def get_item_store(session: AsyncSession = Depends(db_session)) -> ItemStore:
    return SavedItemRepo(session)


async def current_owner(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    """Resolve the owner key from a ``Bearer <owner>.<signature>`` header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    owner = verify_owner_token(authorization[7:].strip(), settings.auth_secret)
    if owner is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return owner


# ---------------------------------------------------------------------------
# Pydantic schemas


class SaveItemBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    url: str = ""
    type: Optional[ItemType] = None
    selected_text: str = ""
    description: str = ""
    image_url: str = ""
    file_url: str = ""
    topic_user: List[str] | str = Field(default_factory=list)
    price: Optional[float] = None
    reason: Optional[str] = None
    topic_auto: Optional[str] = None


# ---------------------------------------------------------------------------
# FastAPI application


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    await init_db()
    get_embeddings_provider().init()
    yield


app = FastAPI(title="MindVault API", lifespan=lifespan)


# Factory dependencies for use cases -------------------------------------------------


def search_uc(
    llm: LLMClient = Depends(get_llm_client),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
    store: ItemStore = Depends(get_item_store),
    settings: Settings = Depends(get_settings),
) -> Search:
    return Search(llm, emb, store, settings)


def save_uc(
    llm: LLMClient = Depends(get_llm_client),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
    store: ItemStore = Depends(get_item_store),
) -> SaveItem:
    return SaveItem(llm, emb, store)


def list_uc(store: ItemStore = Depends(get_item_store)) -> ListItems:
    return ListItems(store)


def delete_uc(store: ItemStore = Depends(get_item_store)) -> DeleteItem:
    return DeleteItem(store)


# Routes ---------------------------------------------------------------------


@app.get("/api/search")
async def search(
    q: str = "",
    limit: Optional[int] = Query(None, ge=1, le=100),
    type: Optional[str] = None,
    reason: Optional[str] = None,
    topic_user: Optional[str] = Query(None, alias="topicUser"),
    topic_auto: Optional[str] = Query(None, alias="topicAuto"),
    category: Optional[str] = None,
    date_range: Optional[str] = Query(None, alias="dateRange"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    sort_by: SortKey = Query(SortKey.RELEVANCE, alias="sortBy"),
    owner: str = Depends(current_owner),
    uc: Search = Depends(search_uc),
) -> Any:
    req = SearchRequest(
        owner_key=owner,
        query=q,
        limit=limit,
        type=type,
        reason=reason,
        topic_user=topic_user,
        topic_auto=topic_auto,
        category=category,
        date_range=date_range,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
    )
    try:
        outcome = await uc(req)
    except StoreError as exc:
        logger.error("Search failed", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Failed to search items",
                "details": str(exc),
            },
        )
    return {
        "success": True,
        "query": outcome.query,
        "aiFilters": outcome.detected_filters,
        "filters": outcome.filters,
        "count": outcome.count,
        "results": [r.to_public() for r in outcome.results],
    }


@app.post("/api/items", status_code=status.HTTP_201_CREATED)
async def save_item(
    body: SaveItemBody,
    owner: str = Depends(current_owner),
    uc: SaveItem = Depends(save_uc),
) -> Dict[str, Any]:
    req = SaveRequest(owner_key=owner, **body.model_dump())
    try:
        item = await uc(req)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    data = item.model_dump(by_alias=True, mode="json", exclude={"embedding"})
    return {"success": True, "item": data}


@app.get("/api/items")
async def list_items(
    owner: str = Depends(current_owner),
    uc: ListItems = Depends(list_uc),
) -> Dict[str, Any]:
    try:
        items = await uc(owner)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return {
        "success": True,
        "count": len(items),
        "items": [
            i.model_dump(by_alias=True, mode="json", exclude={"embedding"}) for i in items
        ],
    }


@app.delete("/api/items/{item_id}")
async def delete_item(
    item_id: str,
    owner: str = Depends(current_owner),
    uc: DeleteItem = Depends(delete_uc),
) -> Dict[str, Any]:
    try:
        await uc(owner, item_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return {"success": True}


def main() -> None:
    settings = get_settings()
    # Handlers come from setup_logging in the lifespan.
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


__all__ = ["app", "main"]


if __name__ == "__main__":
    main()
