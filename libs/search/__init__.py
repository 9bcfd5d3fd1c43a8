"""Query understanding, item classification and relevance scoring."""

from .filters import (
    DateWindow,
    FieldMatch,
    FilterSource,
    FilterValue,
    MatchKind,
    QueryFilter,
    SortKey,
    StoreQuery,
    build_store_query,
    describe_filters,
    lexical_store_query,
)
from .dates import named_range_start, resolve_relative_date
from .extractor import FilterExtractor
from .classifier import Classification, ItemClassifier, ItemDraft
from .scoring import cosine_similarity, lexical_relevance

__all__ = [
    "DateWindow",
    "FieldMatch",
    "FilterSource",
    "FilterValue",
    "MatchKind",
    "QueryFilter",
    "SortKey",
    "StoreQuery",
    "build_store_query",
    "describe_filters",
    "lexical_store_query",
    "named_range_start",
    "resolve_relative_date",
    "FilterExtractor",
    "Classification",
    "ItemClassifier",
    "ItemDraft",
    "cosine_similarity",
    "lexical_relevance",
]
