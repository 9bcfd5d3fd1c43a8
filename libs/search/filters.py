"""Query filters and the store predicates they compile into.

A search carries two :class:`QueryFilter` values: one extracted from the
query text by the oracle (or the heuristic fallback) and one built from the
caller's manual filter fields. :func:`build_store_query` merges them into a
:class:`StoreQuery`:

* AND-class conditions narrow the candidate set and are never relaxed:
  owner key, price range, date range.
* OR-class conditions broaden it; an item qualifies when any one matches:
  type, topic/category/tags, reason and keyword matches.

Store backends evaluate :class:`StoreQuery`; ``Condition.matches`` is the
reference semantics they must agree with.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from libs.core.models import ItemType, SavedItem

T = TypeVar("T")

# Item attributes holding lists; matching tests each element.
ARRAY_FIELDS = frozenset({"keywords", "topic_user"})

KEYWORD_FIELDS: Tuple[str, ...] = (
    "title",
    "summary",
    "description",
    "selected_text",
    "keywords",
    "topic_auto",
    "topic_user",
    "category",
    "platform",
)

LEXICAL_FIELDS: Tuple[str, ...] = (
    "title",
    "summary",
    "description",
    "selected_text",
    "reason",
    "topic_auto",
    "category",
    "platform",
    "keywords",
)

LEXICAL_TOKEN_FIELDS: Tuple[str, ...] = ("keywords", "title", "topic_auto", "topic_user")


class FilterSource(str, Enum):
    ORACLE = "oracle"
    HEURISTIC = "heuristic"
    MANUAL = "manual"


@dataclass(frozen=True)
class FilterValue(Generic[T]):
    value: T
    source: FilterSource


@dataclass(frozen=True)
class DateWindow:
    """Inclusive creation-time window; either bound may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    label: Optional[str] = None

    def describe(self) -> str:
        if self.label:
            return f"Date: {self.label}"
        if self.start and self.end:
            return f"Date: {self.start:%Y-%m-%d} to {self.end:%Y-%m-%d}"
        if self.start:
            return f"Date: From {self.start:%Y-%m-%d}"
        return f"Date: Until {self.end:%Y-%m-%d}"


PriceRange = Tuple[Optional[float], Optional[float]]


# ---------------------------------------------------------------------------
# Store predicates


class MatchKind(str, Enum):
    EQUALS = "equals"
    PATTERN = "pattern"


@lru_cache(maxsize=512)
def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def literal_pattern(text: str) -> str:
    """Regex matching ``text`` literally (case handled by the matcher)."""
    return re.escape(text.strip())


@dataclass(frozen=True)
class FieldMatch:
    """Equality (or membership for list fields) or case-insensitive regex."""

    field: str
    value: str
    kind: MatchKind = MatchKind.EQUALS

    def matches(self, item: SavedItem) -> bool:
        actual = getattr(item, self.field, None)
        values = actual if isinstance(actual, list) else [actual]
        if self.kind is MatchKind.EQUALS:
            return any(_plain(v) == self.value for v in values)
        pattern = _compile(self.value)
        return any(v is not None and pattern.search(str(_plain(v))) for v in values)


@dataclass(frozen=True)
class NumberRange:
    field: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def matches(self, item: SavedItem) -> bool:
        actual = getattr(item, self.field, None)
        if actual is None:
            return False
        if self.minimum is not None and actual < self.minimum:
            return False
        if self.maximum is not None and actual > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class DateRange:
    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def matches(self, item: SavedItem) -> bool:
        actual = getattr(item, self.field, None)
        if actual is None:
            return False
        if self.start is not None and actual < self.start:
            return False
        if self.end is not None and actual > self.end:
            return False
        return True


Condition = Union[FieldMatch, NumberRange, DateRange]


@dataclass
class StoreQuery:
    """Owner-scoped predicate: AND of ``all_of`` plus any one of ``any_of``."""

    owner_key: str
    all_of: List[Condition] = field(default_factory=list)
    any_of: List[FieldMatch] = field(default_factory=list)

    @property
    def has_conditions(self) -> bool:
        return bool(self.all_of or self.any_of)

    def matches(self, item: SavedItem) -> bool:
        if item.owner_key != self.owner_key:
            return False
        if not all(c.matches(item) for c in self.all_of):
            return False
        return not self.any_of or any(c.matches(item) for c in self.any_of)


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    TITLE = "title"


# ---------------------------------------------------------------------------
# Query filter


@dataclass
class QueryFilter:
    """Structured facets of a search, each tagged with where it came from."""

    type: Optional[FilterValue[ItemType]] = None
    topic: Optional[FilterValue[str]] = None
    reason: Optional[FilterValue[str]] = None
    price_range: Optional[FilterValue[PriceRange]] = None
    keywords: Optional[FilterValue[List[str]]] = None
    date_range: Optional[FilterValue[DateWindow]] = None
    # Only ever supplied manually
    topic_auto: Optional[FilterValue[str]] = None
    topic_user: Optional[FilterValue[str]] = None
    category: Optional[FilterValue[str]] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    # OR-class ------------------------------------------------------------
    def any_of(self) -> List[FieldMatch]:
        conds: List[FieldMatch] = []
        if self.type:
            conds.append(FieldMatch("type", self.type.value.value))
        if self.topic:
            pattern = literal_pattern(self.topic.value)
            conds += [
                FieldMatch("topic_auto", pattern, MatchKind.PATTERN),
                FieldMatch("topic_user", self.topic.value),
                FieldMatch("category", pattern, MatchKind.PATTERN),
            ]
        if self.reason:
            conds.append(
                FieldMatch("reason", literal_pattern(self.reason.value), MatchKind.PATTERN)
            )
        if self.keywords:
            for kw in self.keywords.value:
                if not kw.strip():
                    continue
                pattern = literal_pattern(kw)
                conds += [FieldMatch(f, pattern, MatchKind.PATTERN) for f in KEYWORD_FIELDS]
        if self.category:
            v = self.category.value
            conds += [
                FieldMatch("topic_auto", v),
                FieldMatch("category", v),
                FieldMatch("topic_user", v),
            ]
        if self.topic_auto:
            v = self.topic_auto.value
            conds += [FieldMatch("topic_auto", v), FieldMatch("category", v)]
        if self.topic_user:
            v = self.topic_user.value
            conds += [FieldMatch("topic_user", v), FieldMatch("category", v)]
        return conds

    # AND-class -----------------------------------------------------------
    def price_condition(self) -> Optional[NumberRange]:
        if not self.price_range:
            return None
        lo, hi = self.price_range.value
        return NumberRange("price", lo, hi)

    def date_condition(self) -> Optional[DateRange]:
        if not self.date_range:
            return None
        window = self.date_range.value
        return DateRange("created_at", window.start, window.end)

    # Explanation ---------------------------------------------------------
    def describe(self) -> List[str]:
        out: List[str] = []
        if self.type:
            out.append(f"Type: {self.type.value.value}")
        if self.topic:
            out.append(f"Topic: {self.topic.value}")
        if self.reason:
            out.append(f"Reason: {self.reason.value}")
        if self.price_range:
            lo, hi = self.price_range.value
            out.append(f"Price: ₹{_fmt_price(lo, '0')}-{_fmt_price(hi, '∞')}")
        if self.keywords:
            out.append(f"Keywords: {', '.join(self.keywords.value)}")
        if self.category:
            out.append(f"Category: {self.category.value}")
        if self.topic_auto:
            out.append(f"Auto topic: {self.topic_auto.value}")
        if self.topic_user:
            out.append(f"Tag: {self.topic_user.value}")
        if self.date_range:
            out.append(self.date_range.value.describe())
        return out


def _fmt_price(value: Optional[float], open_bound: str) -> str:
    if value is None:
        return open_bound
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def build_store_query(
    owner_key: str, extracted: QueryFilter, manual: QueryFilter
) -> StoreQuery:
    """Merge oracle-extracted and manual facets into one store predicate.

    Manual facets add OR conditions rather than replacing extracted ones. A
    manual date window is ignored when the extracted filter carries one.
    """
    query = StoreQuery(owner_key=owner_key)
    query.any_of = extracted.any_of() + manual.any_of()

    price = extracted.price_condition() or manual.price_condition()
    if price is not None:
        query.all_of.append(price)

    dates = extracted.date_condition() or manual.date_condition()
    if dates is not None:
        query.all_of.append(dates)
    return query


def describe_filters(extracted: QueryFilter, manual: QueryFilter) -> List[str]:
    """Human-readable list of every facet that shaped the query."""
    if extracted.date_range is not None:
        manual = replace(manual, date_range=None)
    return extracted.describe() + manual.describe()


def lexical_store_query(owner_key: str, query_text: str) -> StoreQuery:
    """Broad OR match of the raw query text, used when no facets were found."""
    text = query_text.strip()
    whole = literal_pattern(text)
    any_of: List[FieldMatch] = [FieldMatch(f, whole, MatchKind.PATTERN) for f in LEXICAL_FIELDS]
    terms: Sequence[str] = text.split()
    if len(terms) > 1:
        for term in terms:
            pattern = literal_pattern(term)
            any_of += [FieldMatch(f, pattern, MatchKind.PATTERN) for f in LEXICAL_TOKEN_FIELDS]
    return StoreQuery(owner_key=owner_key, any_of=any_of)


__all__ = [
    "ARRAY_FIELDS",
    "FilterSource",
    "FilterValue",
    "DateWindow",
    "PriceRange",
    "MatchKind",
    "FieldMatch",
    "NumberRange",
    "DateRange",
    "Condition",
    "StoreQuery",
    "SortKey",
    "QueryFilter",
    "literal_pattern",
    "build_store_query",
    "describe_filters",
    "lexical_store_query",
]
