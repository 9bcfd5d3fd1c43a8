import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from conftest import NOW, make_item

from libs.core.exceptions import StoreError
from libs.core.models import ItemType
from libs.db.repositories import SavedItemRepo, build_statement, to_domain, to_row
from libs.search.filters import (
    DateRange,
    FieldMatch,
    MatchKind,
    NumberRange,
    SortKey,
    StoreQuery,
)


def compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_owner_only_query_orders_by_newest():
    sql = compiled(build_statement(StoreQuery(owner_key="alice"), SortKey.DATE, 5))
    assert "WHERE saved_items.owner_key = " in sql
    assert "ORDER BY saved_items.created_at DESC" in sql
    assert "LIMIT" in sql
    assert " OR " not in sql


def test_conditions_compile_to_postgres_operators():
    q = StoreQuery(
        owner_key="alice",
        all_of=[NumberRange("price", 0, 3000), DateRange("created_at", start=NOW)],
        any_of=[
            FieldMatch("type", "product"),
            FieldMatch("topic_user", "travel"),
            FieldMatch("title", "shoes", MatchKind.PATTERN),
            FieldMatch("keywords", "shoes", MatchKind.PATTERN),
        ],
    )
    sql = compiled(build_statement(q))

    assert "saved_items.price IS NOT NULL" in sql
    assert "saved_items.price >=" in sql and "saved_items.price <=" in sql
    assert "saved_items.created_at >=" in sql
    assert "saved_items.created_at <=" not in sql
    assert "ANY (saved_items.topic_user)" in sql
    assert "saved_items.title ~*" in sql
    assert "array_to_string(saved_items.keywords" in sql
    assert sql.count(" OR ") == 3


def test_title_sort_breaks_ties_by_date():
    sql = compiled(build_statement(StoreQuery(owner_key="alice"), SortKey.TITLE))
    assert "ORDER BY saved_items.title ASC, saved_items.created_at DESC" in sql
    assert "LIMIT" not in sql


def test_row_conversion_preserves_item():
    item = make_item(
        title="Shoes",
        type=ItemType.PRODUCT,
        topic_user=["running"],
        keywords=["nike"],
        price=1999.0,
        embedding=[0.1, 0.2],
    )
    row = to_row(item)
    assert row.type == "product"
    assert to_domain(row) == item


def test_driver_errors_become_store_errors():
    session = MagicMock()
    session.execute = AsyncMock(side_effect=SQLAlchemyError("connection lost"))
    repo = SavedItemRepo(session)

    with pytest.raises(StoreError):
        asyncio.run(repo.find(StoreQuery(owner_key="alice")))
    with pytest.raises(StoreError):
        asyncio.run(repo.delete("alice", "missing"))


def test_delete_reports_rowcount():
    session = MagicMock()
    session.execute = AsyncMock(return_value=MagicMock(rowcount=0))
    assert asyncio.run(SavedItemRepo(session).delete("alice", "missing")) is False
