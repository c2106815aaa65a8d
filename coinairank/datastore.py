"""
Datastore access for scored tokens.

PostgresTokenStore talks to the Supabase Postgres database through an
asyncpg pool that is created once per process. MemoryTokenStore serves
rows from a JSON fixtures file and evaluates the same predicates in
Python, for local runs without a database.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import asyncpg

from coinairank.config import DatabaseSettings
from coinairank.constants import DEFAULT_LISTING_TABLE, ID_COLUMN
from coinairank.exceptions import (
    DatastoreConnectionError,
    DatastoreNotConnectedError,
    FixtureLoadError,
    QueryExecutionError,
)
from coinairank.query import ListingStatement, build_lookup_sql

logger = logging.getLogger(__name__)


def _decode_json(value: Any) -> Any:
    # json columns come back from asyncpg as text unless a codec is registered
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


class TokenStore(ABC):
    """Read-only access to the scored-token table."""

    async def connect(self) -> None:
        """Acquire resources. No-op by default."""

    async def disconnect(self) -> None:
        """Release resources. No-op by default."""

    @abstractmethod
    async def fetch_page(self, statement: ListingStatement) -> tuple[int, list[dict[str, Any]]]:
        """
        Run a listing statement.

        Returns:
            Tuple of (total matching rows, rows in the requested window)
        """

    @abstractmethod
    async def fetch_by_id(self, token_id: int) -> Optional[dict[str, Any]]:
        """Return one row by id, or None."""

    async def __aenter__(self) -> TokenStore:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()


class PostgresTokenStore(TokenStore):
    """
    Token store backed by Postgres.

    The pool is owned by this object; callers share one instance for
    the life of the process.
    """

    def __init__(self, settings: DatabaseSettings, table: str = DEFAULT_LISTING_TABLE) -> None:
        """
        Initialize the store.

        Args:
            settings: Connection settings
            table: Table of scored tokens
        """
        self._settings = settings
        self._table = table
        self._pool: Optional[asyncpg.Pool] = None
        self._lookup_sql = build_lookup_sql(table)

    @property
    def table(self) -> str:
        return self._table

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """
        Establish the connection pool.

        Raises:
            DatastoreConnectionError: If the pool cannot be created
        """
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                self._settings.dsn,
                min_size=self._settings.pool_min_size,
                max_size=self._settings.pool_max_size,
                command_timeout=self._settings.command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DatastoreConnectionError("Failed to connect to token database", cause=e) from e

        logger.info(f"Connected to token database (table: {self._table})")

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Disconnected from token database")

    async def fetch_page(self, statement: ListingStatement) -> tuple[int, list[dict[str, Any]]]:
        """
        Run the listing statement in a single round-trip.

        Raises:
            DatastoreNotConnectedError: If connect() has not been called
            QueryExecutionError: If the query fails
        """
        if not self._pool:
            raise DatastoreNotConnectedError()

        logger.debug(f"Listing query: {statement.sql} args={statement.args}")

        try:
            async with self._pool.acquire() as conn:
                record = await conn.fetchrow(statement.sql, *statement.args)
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise QueryExecutionError("query token listing", cause=e) from e

        if record is None:
            return 0, []

        total = record["total"] or 0
        rows = _decode_json(record["data"]) or []
        return total, rows

    async def fetch_by_id(self, token_id: int) -> Optional[dict[str, Any]]:
        """
        Fetch one token by id.

        Raises:
            DatastoreNotConnectedError: If connect() has not been called
            QueryExecutionError: If the query fails
        """
        if not self._pool:
            raise DatastoreNotConnectedError()

        try:
            async with self._pool.acquire() as conn:
                value = await conn.fetchval(self._lookup_sql, token_id)
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise QueryExecutionError(f"fetch token {token_id}", cause=e) from e

        if value is None:
            return None
        return _decode_json(value)


class MemoryTokenStore(TokenStore):
    """Token store over an in-memory list of rows."""

    def __init__(self, rows: Optional[list[dict[str, Any]]] = None) -> None:
        self._rows: list[dict[str, Any]] = list(rows or [])

    @classmethod
    def from_file(cls, filepath: Path) -> MemoryTokenStore:
        """
        Load rows from a JSON file holding a list of objects, or an
        object with a "data" list (a saved listing response).

        Raises:
            FixtureLoadError: If the file is missing or malformed
        """
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FixtureLoadError(str(filepath), cause=e) from e

        if isinstance(content, dict):
            content = content.get("data")
        if not isinstance(content, list):
            raise FixtureLoadError(str(filepath), cause=ValueError("expected a list of rows"))

        logger.info(f"Loaded {len(content)} fixture rows from {filepath}")
        return cls(content)

    def __len__(self) -> int:
        return len(self._rows)

    async def fetch_page(self, statement: ListingStatement) -> tuple[int, list[dict[str, Any]]]:
        matching = [
            row for row in self._rows
            if all(p.matches(row) for p in statement.predicates)
        ]
        ordered = statement.order.sort_rows(matching)
        window = ordered[statement.offset:statement.offset + statement.limit]
        return len(matching), window

    async def fetch_by_id(self, token_id: int) -> Optional[dict[str, Any]]:
        for row in self._rows:
            if row.get(ID_COLUMN) == token_id:
                return row
        return None
