"""Application use cases orchestrating the search core and the item store."""

from .save_item import DeleteItem, ListItems, SaveItem, SaveRequest
from .search import Branch, Search, SearchOutcome, SearchRequest

__all__ = [
    "Search",
    "SearchRequest",
    "SearchOutcome",
    "Branch",
    "SaveItem",
    "SaveRequest",
    "ListItems",
    "DeleteItem",
]
