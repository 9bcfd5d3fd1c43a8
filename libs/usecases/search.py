"""Query planning and ranking over an owner's saved items.

A search runs in four steps:

1. Filter assembly: the oracle extracts facets from the query text, and the
   caller's manual filters are layered on top.
2. Branch selection, by whether there is query text and whether the merged
   filter produced any store condition (SEMANTIC, FILTER, LEXICAL, DEFAULT).
3. Scoring: embedding cosine similarity where the item has a stored vector,
   weighted lexical containment otherwise.
4. Response: scored items plus a human-readable list of applied filters.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from libs.core.exceptions import StoreError
from libs.core.models import SavedItem, ScoredItem
from libs.core.settings import Settings, get_settings
from libs.db.store import ItemStore
from libs.llm import EmbeddingsProvider, LLMClient
from libs.search.dates import end_of_day, named_range_start, parse_iso_date, start_of_day
from libs.search.extractor import FilterExtractor
from libs.search.filters import (
    DateWindow,
    FilterSource,
    FilterValue,
    QueryFilter,
    SortKey,
    StoreQuery,
    build_store_query,
    describe_filters,
    lexical_store_query,
)
from libs.search.heuristics import coerce_item_type
from libs.search.scoring import (
    LEXICAL_BASE,
    SEMANTIC_FALLBACK_BASE,
    clamp_score,
    cosine_similarity,
    lexical_relevance,
)

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_LIMIT = 10


class Branch(str, Enum):
    SEMANTIC = "semantic"
    FILTER = "filter"
    LEXICAL = "lexical"
    DEFAULT = "default"


@dataclass
class SearchRequest:
    owner_key: str
    query: str = ""
    limit: Optional[int] = None
    type: Optional[str] = None
    reason: Optional[str] = None
    topic_user: Optional[str] = None
    topic_auto: Optional[str] = None
    category: Optional[str] = None
    date_range: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    sort_by: SortKey = SortKey.RELEVANCE
    today: Optional[date] = None


@dataclass
class SearchOutcome:
    query: Optional[str]
    detected_filters: Optional[List[str]]
    filters: Dict[str, Any]
    results: List[ScoredItem] = field(default_factory=list)
    branch: Branch = Branch.DEFAULT

    @property
    def count(self) -> int:
        return len(self.results)


def _given(value: Optional[str]) -> Optional[str]:
    """Manual filter value, with blanks and ``"all"`` meaning absent."""
    if value is None:
        return None
    s = value.strip()
    return None if not s or s.lower() == "all" else s


def manual_filter(req: SearchRequest, now: datetime) -> QueryFilter:
    """Turn the caller's explicit filter fields into a QueryFilter."""
    qf = QueryFilter()
    src = FilterSource.MANUAL

    item_type = coerce_item_type(_given(req.type))
    if item_type is not None:
        qf.type = FilterValue(item_type, src)
    reason = _given(req.reason)
    if reason:
        qf.reason = FilterValue(reason, src)
    for name in ("category", "topic_auto", "topic_user"):
        value = _given(getattr(req, name))
        if value:
            setattr(qf, name, FilterValue(value, src))

    date_from = parse_iso_date(_given(req.date_from))
    date_to = parse_iso_date(_given(req.date_to))
    if date_from or date_to:
        window = DateWindow(
            start=start_of_day(date_from) if date_from else None,
            end=end_of_day(date_to) if date_to else None,
        )
        qf.date_range = FilterValue(window, src)
    else:
        name = _given(req.date_range)
        start = named_range_start(name, now) if name else None
        if start is not None:
            qf.date_range = FilterValue(DateWindow(start=start, label=name), src)
    return qf


class Search:
    """Plan and rank a search over one owner's saved items."""

    def __init__(
        self,
        llm: LLMClient,
        embeddings: EmbeddingsProvider,
        store: ItemStore,
        settings: Settings | None = None,
        extractor: FilterExtractor | None = None,
    ) -> None:
        self.llm = llm
        self.embeddings = embeddings
        self.store = store
        self.settings = settings or get_settings()
        self.extractor = extractor or FilterExtractor(llm)

    # ------------------------------------------------------------------
    async def _extract(self, query: str, today: date) -> QueryFilter:
        if not query or not self.llm.is_available():
            return QueryFilter()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.extractor.extract, query, today),
                timeout=self.settings.llm_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Filter extraction timed out", extra={"timeout": self.settings.llm_timeout})
        except Exception:
            logger.warning("Filter extraction failed", exc_info=True)
        return QueryFilter()

    async def _embed_query(self, query: str) -> Optional[List[float]]:
        """Query vector, or None when the provider is slow or failing."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.embeddings.embed, query),
                timeout=self.settings.embedding_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Query embedding timed out",
                extra={"timeout": self.settings.embedding_timeout},
            )
        except Exception:
            logger.warning("Query embedding failed", exc_info=True)
        return None

    async def _find(
        self, query: StoreQuery, sort: SortKey, limit: Optional[int]
    ) -> List[SavedItem]:
        try:
            return await self.store.find(query, sort, limit)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError("Failed to search items") from exc

    def _rank(
        self,
        items: List[SavedItem],
        query: str,
        base: float,
        query_vec: Optional[List[float]] = None,
    ) -> List[ScoredItem]:
        scored: List[ScoredItem] = []
        for item in items:
            if query_vec is not None and item.embedding:
                score = cosine_similarity(query_vec, item.embedding)
            else:
                score = lexical_relevance(item, query, base)
            scored.append(ScoredItem(item=item, similarity=clamp_score(score)))
        # list.sort is stable, so ties keep retrieval order
        scored.sort(key=lambda s: s.similarity, reverse=True)
        return scored

    # ------------------------------------------------------------------
    async def __call__(self, req: SearchRequest) -> SearchOutcome:
        now = datetime.now(timezone.utc)
        today = req.today or now.date()
        query = (req.query or "").strip()
        limit = self.settings.search_default_limit if req.limit is None else req.limit

        extracted = await self._extract(query, today)
        manual = manual_filter(req, now)
        store_query = build_store_query(req.owner_key, extracted, manual)
        detected = describe_filters(extracted, manual)

        if query and store_query.has_conditions:
            branch = Branch.SEMANTIC
            candidates = await self._find(
                store_query, SortKey.DATE, self.settings.search_candidate_cap
            )
            query_vec = await self._embed_query(query)
            ranked = self._rank(candidates, query, SEMANTIC_FALLBACK_BASE, query_vec)
            threshold = self.settings.search_min_relevance
            results = [s for s in ranked if s.similarity > threshold][:limit]
        elif store_query.has_conditions:
            branch = Branch.FILTER
            sort = SortKey.TITLE if req.sort_by is SortKey.TITLE else SortKey.DATE
            items = await self._find(store_query, sort, limit)
            results = [ScoredItem(item=i, similarity=1.0) for i in items]
        elif query:
            branch = Branch.LEXICAL
            candidates = await self._find(
                lexical_store_query(req.owner_key, query),
                SortKey.DATE,
                self.settings.search_candidate_cap,
            )
            results = self._rank(candidates, query, LEXICAL_BASE)[:limit]
        else:
            branch = Branch.DEFAULT
            items = await self._find(
                StoreQuery(owner_key=req.owner_key), SortKey.DATE, limit or DEFAULT_BRANCH_LIMIT
            )
            results = [ScoredItem(item=i, similarity=1.0) for i in items]

        logger.info(
            "Search completed",
            extra={"branch": branch.value, "count": len(results), "filters": detected},
        )
        return SearchOutcome(
            query=query or None,
            detected_filters=detected or None,
            filters=self._echo(req),
            results=results,
            branch=branch,
        )

    @staticmethod
    def _echo(req: SearchRequest) -> Dict[str, Any]:
        return {
            "type": req.type or "all",
            "reason": req.reason or "all",
            "topicUser": req.topic_user or "all",
            "topicAuto": req.topic_auto or "all",
            "category": req.category or "all",
            "dateRange": req.date_range or "all",
            "from": req.date_from or None,
            "to": req.date_to or None,
        }


__all__ = [
    "Branch",
    "SearchRequest",
    "SearchOutcome",
    "Search",
    "manual_filter",
]
