"""Async SQLAlchemy engine, sessions and schema bootstrap for the item store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import CreateColumn

from libs.core.settings import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> AsyncEngine:
    # pre_ping and recycle let the pool outlive Postgres restarts
    return create_async_engine(
        get_settings().postgres_uri,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Session committed on clean exit and rolled back on error."""
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _create_database_if_missing(url: URL) -> None:
    admin = create_engine(url.set(database="postgres"))
    try:
        with admin.connect() as conn:
            found = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": url.database},
            ).scalar()
            if found is None:
                # CREATE DATABASE refuses to run inside a transaction
                conn.execution_options(isolation_level="AUTOCOMMIT").execute(
                    text(f'CREATE DATABASE "{url.database}"')
                )
                logger.info("Created database", extra={"database": url.database})
    finally:
        admin.dispose()


def _sync_schema(conn: Connection) -> None:
    """Create missing tables, then add columns introduced since they were made."""
    Base.metadata.create_all(conn)
    inspector = inspect(conn)
    for table in Base.metadata.sorted_tables:
        present = {c["name"] for c in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name in present:
                continue
            ddl = CreateColumn(column.copy()).compile(dialect=conn.dialect)
            conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {ddl}"))
            logger.info(
                "Added column", extra={"table": table.name, "column": column.name}
            )


async def init_db(max_attempts: int = 5, delay: float = 5) -> None:
    """Bring the ``saved_items`` schema up to date, retrying while Postgres starts.

    The last connection error is re-raised once ``max_attempts`` is spent.
    """
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    url = make_url(get_settings().postgres_uri)
    if url.drivername.startswith("postgresql"):
        try:
            await asyncio.to_thread(_create_database_if_missing, url)
        except SQLAlchemyError as exc:
            logger.warning("Could not check for database", extra={"error": str(exc)})

    for attempt in range(1, max_attempts + 1):
        try:
            async with get_engine().begin() as conn:
                await conn.run_sync(_sync_schema)
        except SQLAlchemyError as exc:
            if attempt == max_attempts:
                logger.error("Schema setup failed", extra={"attempts": attempt})
                raise
            logger.warning(
                "Schema setup failed, retrying",
                extra={"attempt": attempt, "delay": delay, "error": str(exc)},
            )
            await asyncio.sleep(delay)
        else:
            logger.info("Schema ready", extra={"attempt": attempt})
            return


__all__ = ["Base", "get_engine", "get_sessionmaker", "get_session", "init_db"]
