"""
Listing query service.

Glues parameter parsing, statement building and the datastore
together. Input problems never raise; datastore problems do.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from coinairank.constants import DEFAULT_LISTING_TABLE, DEFAULT_MAX_PAGE_SIZE
from coinairank.datastore import TokenStore
from coinairank.exceptions import TokenNotFoundError
from coinairank.models import ListingPage
from coinairank.params import parse_list_query
from coinairank.query import build_listing_statement

logger = logging.getLogger(__name__)


class ListingService:
    """Stateless request handler over a shared token store."""

    def __init__(
        self,
        store: TokenStore,
        table: str = DEFAULT_LISTING_TABLE,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ) -> None:
        self._store = store
        self._table = table
        self._max_page_size = max_page_size

    @property
    def store(self) -> TokenStore:
        return self._store

    async def list_tokens(self, params: Mapping[str, str]) -> ListingPage:
        """
        Resolve parameters and fetch one page.

        Args:
            params: Raw query-string parameters

        Returns:
            ListingPage with rows, pagination and resolved filters

        Raises:
            DatastoreError: If the query fails
        """
        query = parse_list_query(params, max_page_size=self._max_page_size)
        statement = build_listing_statement(query, self._table)

        total, rows = await self._store.fetch_page(statement)

        logger.debug(
            f"Listed {len(rows)}/{total} tokens "
            f"(page={query.page}, limit={query.limit}, sort={query.sort_by} {query.sort_order})"
        )
        return ListingPage(query=query, total=total, rows=rows)

    async def get_token(self, token_id: int) -> dict[str, Any]:
        """
        Fetch one token by id.

        Raises:
            TokenNotFoundError: If no row has this id
            DatastoreError: If the query fails
        """
        row = await self._store.fetch_by_id(token_id)
        if row is None:
            raise TokenNotFoundError(token_id)
        return row
