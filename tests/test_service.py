"""
Tests for the service module.

Exercises the listing behaviour end to end against the in-memory store.
"""

import pytest
from unittest.mock import AsyncMock

from coinairank.datastore import MemoryTokenStore
from coinairank.exceptions import QueryExecutionError, TokenNotFoundError
from coinairank.service import ListingService


def ids(page):
    return [row["id"] for row in page.rows]


class TestDefaults:
    """Tests for requests without parameters."""

    @pytest.mark.asyncio
    async def test_default_resolution(self, service):
        page = await service.list_tokens({})
        result = page.to_dict()

        assert result["filters"]["sortBy"] == "website_stage1_score"
        assert result["filters"]["sortOrder"] == "desc"
        assert result["pagination"]["page"] == 1
        assert result["pagination"]["limit"] == 20

    @pytest.mark.asyncio
    async def test_invalid_sort_echoes_default(self, service):
        page = await service.list_tokens({"sortBy": "password"})
        assert page.to_dict()["filters"]["sortBy"] == "website_stage1_score"

    @pytest.mark.asyncio
    async def test_default_bounds_keep_null_scores(self, service):
        page = await service.list_tokens({"minScore": "0", "maxScore": "100"})
        assert {2, 10}.issubset(ids(page))

    @pytest.mark.asyncio
    async def test_min_score_drops_null_scores(self, service):
        page = await service.list_tokens({"minScore": "1"})
        assert 2 not in ids(page)
        assert 10 not in ids(page)


class TestFixedPredicate:
    """Dead websites never show up."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [
        {},
        {"network": "solana"},
        {"search": "dead"},
        {"sortBy": "roi_percent", "sortOrder": "asc"},
        {"minScore": "1", "limit": "100"},
    ])
    async def test_dead_never_listed(self, service, params):
        page = await service.list_tokens(params)
        statuses = {row["website_status"] for row in page.rows}

        assert 4 not in ids(page)
        assert statuses <= {"active", "pending", None}

    @pytest.mark.asyncio
    async def test_listable_rows(self, service):
        page = await service.list_tokens({})
        assert sorted(ids(page)) == [1, 2, 3, 5, 6, 7, 8, 10]


class TestOrdering:
    """Tests for sort order and null placement."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order", ["asc", "desc"])
    async def test_null_scores_last(self, service, order):
        page = await service.list_tokens({"sortOrder": order})
        scores = [row["website_stage1_score"] for row in page.rows]

        first_null = scores.index(None)
        assert all(s is None for s in scores[first_null:])
        assert all(s is not None for s in scores[:first_null])

    @pytest.mark.asyncio
    async def test_score_descending(self, service):
        page = await service.list_tokens({})
        assert ids(page)[:3] == [1, 6, 5]

    @pytest.mark.asyncio
    async def test_other_column_desc_puts_nulls_first(self, service):
        page = await service.list_tokens({"sortBy": "current_liquidity_usd", "sortOrder": "desc"})
        assert ids(page)[0] == 7

    @pytest.mark.asyncio
    async def test_other_column_asc_puts_nulls_last(self, service):
        page = await service.list_tokens({"sortBy": "current_liquidity_usd", "sortOrder": "asc"})
        assert ids(page)[-1] == 7


class TestFilters:
    """Tests for the optional filters."""

    @pytest.mark.asyncio
    async def test_network_all_same_as_omitted(self, service):
        with_all = await service.list_tokens({"network": "all"})
        without = await service.list_tokens({})

        assert with_all.to_dict() == without.to_dict()

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_on_symbol_or_name(self, service):
        page = await service.list_tokens({"search": "abc"})

        assert sorted(ids(page)) == [5, 10]
        for row in page.rows:
            assert "abc" in row["symbol"].lower() or "abc" in row["name"].lower()

    @pytest.mark.asyncio
    async def test_search_matches_name(self, service):
        page = await service.list_tokens({"search": "keeta"})
        assert sorted(ids(page)) == [1, 6]

    @pytest.mark.asyncio
    async def test_tier_and_token_type(self, service):
        assert ids(await service.list_tokens({"tier": "ALPHA"})) == [1]
        assert ids(await service.list_tokens({"tokenType": "meme"})) == [10]

    @pytest.mark.asyncio
    async def test_liquidity_bounds(self, service):
        page = await service.list_tokens({"minLiquidity": "1"})
        assert 7 not in ids(page)

    @pytest.mark.asyncio
    async def test_networks_with_other(self, service):
        page = await service.list_tokens({"networks": "base,other"})
        assert sorted(ids(page)) == [1, 6, 8]

    @pytest.mark.asyncio
    async def test_networks_list(self, service):
        page = await service.list_tokens({"networks": "bsc,pulsechain"})
        assert sorted(ids(page)) == [5, 7]

    @pytest.mark.asyncio
    async def test_hide_imposters(self, service):
        page = await service.list_tokens({"hideImposters": "true"})
        assert 6 not in ids(page)
        assert 1 in ids(page)

    @pytest.mark.asyncio
    async def test_verified_only(self, service):
        page = await service.list_tokens({"verifiedOnly": "true"})
        assert 8 not in ids(page)

    @pytest.mark.asyncio
    async def test_filters_echo_resolved_values(self, service):
        page = await service.list_tokens({"network": "all", "tier": "", "sortOrder": "up"})
        filters = page.to_dict()["filters"]

        assert filters["network"] is None
        assert filters["tier"] is None
        assert filters["sortOrder"] == "desc"


class TestPagination:
    """Tests for paging through results."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_number,has_more", [(1, True), (2, True), (3, False)])
    async def test_forty_five_rows(self, row_factory, page_number, has_more):
        store = MemoryTokenStore([row_factory(i) for i in range(1, 46)])
        page = await ListingService(store).list_tokens({"page": str(page_number)})
        pagination = page.to_dict()["pagination"]

        assert pagination["total"] == 45
        assert pagination["totalPages"] == 3
        assert pagination["hasMore"] is has_more
        assert len(page.rows) == (5 if page_number == 3 else 20)

    @pytest.mark.asyncio
    async def test_solana_liquidity_page_two(self, solana_rows):
        service = ListingService(MemoryTokenStore(solana_rows))
        page = await service.list_tokens({
            "page": "2",
            "limit": "10",
            "sortBy": "current_liquidity_usd",
            "sortOrder": "asc",
            "network": "solana",
        })
        result = page.to_dict()

        # liquidity is 1000 * (26 - id), so ascending rank k is id 26 - k
        assert ids(page) == [26 - rank for rank in range(11, 21)]
        assert result["pagination"] == {
            "page": 2, "limit": 10, "total": 25, "totalPages": 3, "hasMore": True,
        }

    @pytest.mark.asyncio
    async def test_page_past_end_is_empty(self, service):
        page = await service.list_tokens({"page": "9"})
        result = page.to_dict()

        assert result["data"] == []
        assert result["pagination"]["total"] == 8
        assert result["pagination"]["hasMore"] is False


class TestErrors:
    """Tests for datastore failures and lookups."""

    @pytest.mark.asyncio
    async def test_datastore_error_propagates(self):
        store = MemoryTokenStore()
        store.fetch_page = AsyncMock(side_effect=QueryExecutionError("query token listing"))

        with pytest.raises(QueryExecutionError):
            await ListingService(store).list_tokens({})

    @pytest.mark.asyncio
    async def test_get_token(self, service):
        row = await service.get_token(4)
        assert row["symbol"] == "DEAD"

    @pytest.mark.asyncio
    async def test_get_missing_token(self, service):
        with pytest.raises(TokenNotFoundError) as exc:
            await service.get_token(999)
        assert exc.value.token_id == 999
