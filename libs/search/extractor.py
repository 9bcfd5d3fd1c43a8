from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from libs.llm import (
    LLMClient,
    LLMClientError,
    PromptBook,
    extract_json_object,
    get_prompt_book,
)

from .dates import end_of_day, looks_like_date, parse_iso_date, start_of_day
from .filters import DateWindow, FilterSource, FilterValue, PriceRange, QueryFilter
from .heuristics import coerce_item_type, guess_filters

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s or s.lower() in {"null", "none", "n/a"}:
        return None
    return s


def _price_bound(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _NUMBER_RE.search(value.replace(",", ""))
        if m:
            return float(m.group(0))
    return None


def _price_range(value: Any) -> Optional[PriceRange]:
    if isinstance(value, Mapping):
        value = [value.get("min"), value.get("max")]
    if not isinstance(value, (list, tuple)) or not value:
        return None
    lo = _price_bound(value[0])
    hi = _price_bound(value[1]) if len(value) > 1 else None
    if lo is None and hi is None:
        return None
    if lo is not None and hi is not None and lo > hi:
        lo, hi = hi, lo
    return lo, hi


def _keywords(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    seen = set()
    for raw in value:
        kw = _text(raw) if isinstance(raw, str) else None
        if not kw or looks_like_date(kw) or kw.lower() in seen:
            continue
        seen.add(kw.lower())
        out.append(kw)
    return out


def _date_window(value: Any) -> Optional[DateWindow]:
    if not isinstance(value, Mapping):
        return None
    start = parse_iso_date(value.get("from"))
    end = parse_iso_date(value.get("to"))
    if start is None and end is None:
        return None
    return DateWindow(
        start=start_of_day(start) if start else None,
        end=end_of_day(end) if end else None,
    )


def filter_from_oracle(data: Dict[str, Any], source: FilterSource) -> QueryFilter:
    """Normalize an oracle (or heuristic) filter dict into a QueryFilter."""
    qf = QueryFilter()

    item_type = coerce_item_type(data.get("type"))
    if item_type is not None:
        qf.type = FilterValue(item_type, source)

    topic = _text(data.get("topic"))
    if topic:
        qf.topic = FilterValue(topic, source)

    reason = _text(data.get("reason"))
    if reason:
        qf.reason = FilterValue(reason, source)

    price = _price_range(data.get("priceRange"))
    if price:
        qf.price_range = FilterValue(price, source)

    keywords = _keywords(data.get("keywords"))
    if keywords:
        qf.keywords = FilterValue(keywords, source)

    window = _date_window(data.get("dateRange"))
    if window:
        qf.date_range = FilterValue(window, source)
    return qf


class FilterExtractor:
    """Turn a free-text query into structured filters via the oracle.

    Never raises: an unavailable or failing oracle yields an empty filter,
    and output without a JSON object goes through the regex heuristics.
    """

    def __init__(self, llm: LLMClient, prompts: Optional[PromptBook] = None) -> None:
        self.llm = llm
        self._prompts = prompts

    @property
    def prompts(self) -> PromptBook:
        if self._prompts is None:
            self._prompts = get_prompt_book()
        return self._prompts

    def extract(self, query: str, today: Optional[date] = None) -> QueryFilter:
        query = (query or "").strip()
        if not query or not self.llm.is_available():
            return QueryFilter()
        today = today or date.today()

        try:
            prompt = self.prompts.render(
                "filters", "user", query=query, today=today.isoformat()
            )
            raw = self.llm.complete(prompt)
        except LLMClientError as exc:
            logger.warning("Filter extraction failed", extra={"error": str(exc)})
            return QueryFilter()

        data = extract_json_object(raw)
        if data is not None:
            return filter_from_oracle(data, FilterSource.ORACLE)

        logger.info("Oracle returned no JSON, using heuristic filters")
        return filter_from_oracle(
            guess_filters(query, raw or "", today), FilterSource.HEURISTIC
        )


__all__ = ["FilterExtractor", "filter_from_oracle"]
