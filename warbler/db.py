from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import CursorResult, bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine


class Database:
    """Owner of the connection pool for the relational store.

    Services receive a ``Database`` at construction and open a connection or
    a transaction per operation. Nothing about the store is held in module
    state, so several applications (or tests) can run side by side.

    Attributes:
        _engine: The SQLAlchemy async engine
        _url: Connection URL of the database
    """

    def __init__(self, url: str, *, pool_recycle: int = 1800, echo: bool = False) -> None:
        """Initialize the database with a lazily-connecting engine.

        Args:
            url: SQLAlchemy async URL, e.g. ``mysql+aiomysql://user:pw@host/db``
            pool_recycle: Seconds after which pooled connections are recycled
            echo: Whether SQLAlchemy logs every statement
        """
        self._url = url
        self._engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=pool_recycle,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Open a connection for read-only work.

        Yields:
            An async connection that is returned to the pool on exit
        """
        async with self._engine.connect() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Open a connection inside a transaction.

        The transaction commits when the block exits normally and rolls back
        if it raises.

        Yields:
            An async connection bound to the open transaction
        """
        async with self._engine.begin() as conn:
            yield conn

    async def ping(self) -> None:
        """Run a trivial query to check the store is reachable.

        Raises:
            sqlalchemy.exc.DBAPIError: If the database cannot be reached
        """
        async with self.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self._engine.dispose()


def _statement(query: str, params: dict[str, Any]):
    statement = text(query)
    # Sequence values feed "IN :name" clauses
    expanding = [
        bindparam(name, expanding=True)
        for name, value in params.items()
        if isinstance(value, (list, tuple, set, frozenset))
    ]
    if expanding:
        statement = statement.bindparams(*expanding)
    return statement


def _bind_values(params: dict[str, Any]) -> dict[str, Any]:
    return {
        name: list(value) if isinstance(value, (set, frozenset)) else value
        for name, value in params.items()
    }


async def fetch_all(conn: AsyncConnection, query: str, **params: Any) -> list[dict[str, Any]]:
    """Run a query and return every row as a plain dict.

    Args:
        conn: The connection to run the query on
        query: SQL with named ``:param`` placeholders
        **params: Values for the placeholders

    Returns:
        The rows, keyed by column name
    """
    result = await conn.execute(_statement(query, params), _bind_values(params))
    return [dict(row) for row in result.mappings().all()]


async def fetch_one(conn: AsyncConnection, query: str, **params: Any) -> dict[str, Any] | None:
    """Run a query and return its first row, or None when it has no rows."""
    result = await conn.execute(_statement(query, params), _bind_values(params))
    if row := result.mappings().first():
        return dict(row)
    return None


async def execute(conn: AsyncConnection, query: str, **params: Any) -> CursorResult:
    """Run a mutation and return its result.

    The result exposes ``rowcount`` and, for inserts, ``lastrowid``.
    """
    return await conn.execute(_statement(query, params), _bind_values(params))
