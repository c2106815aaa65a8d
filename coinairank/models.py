"""
Domain models and entities.

This module defines the data structures passed between the
parameter parser, the query builder, the datastore and the
HTTP layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from coinairank.constants import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    LIQUIDITY_CEILING,
    LIQUIDITY_FLOOR,
    SCORE_CEILING,
    SCORE_FLOOR,
)


class WebsiteStatus(str, Enum):
    """Liveness of a token's website as recorded by the analysis pipeline."""

    ACTIVE = "active"
    PENDING = "pending"
    DEAD = "dead"

    def __str__(self) -> str:
        return self.value


# Rows in these states (or with no status yet) are listable
LISTABLE_STATUSES: tuple[WebsiteStatus, ...] = (WebsiteStatus.ACTIVE, WebsiteStatus.PENDING)


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Optional[str]) -> SortOrder:
        """Only the exact string 'asc' is ascending."""
        return cls.ASC if value == cls.ASC.value else cls.DESC


@dataclass(slots=True)
class ScoredToken:
    """
    Typed view over one row of the scored-token table.

    The HTTP layer returns raw rows; this view is used where
    fields are read individually (CLI output).
    """

    id: Any
    symbol: str
    name: str
    network: Optional[str] = None
    contract_address: Optional[str] = None
    score: Optional[float] = None
    tier: Optional[str] = None
    analyzed_at: Optional[str] = None
    liquidity_usd: Optional[float] = None
    market_cap: Optional[float] = None
    roi_percent: Optional[float] = None
    website_status: Optional[str] = None
    is_imposter: bool = False
    token_type: Optional[str] = None

    @property
    def is_analyzed(self) -> bool:
        return self.score is not None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ScoredToken:
        """
        Build from a raw datastore row.

        Args:
            record: Row as returned by the datastore

        Returns:
            ScoredToken instance
        """
        return cls(
            id=record.get("id"),
            symbol=record.get("symbol") or "",
            name=record.get("name") or "",
            network=record.get("network"),
            contract_address=record.get("contract_address"),
            score=record.get("website_stage1_score"),
            tier=record.get("website_stage1_tier"),
            analyzed_at=record.get("website_stage1_analyzed_at"),
            liquidity_usd=record.get("current_liquidity_usd"),
            market_cap=record.get("current_market_cap"),
            roi_percent=record.get("roi_percent"),
            website_status=record.get("website_status"),
            is_imposter=bool(record.get("is_imposter")),
            token_type=record.get("token_type"),
        )


@dataclass(frozen=True, slots=True)
class ListQuery:
    """
    Resolved listing parameters after defaulting.

    Optional filters are None when they are not applied. Numeric
    bounds keep their sentinel values when not applied.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = DEFAULT_SORT_BY
    sort_order: SortOrder = SortOrder.DESC
    min_score: float = SCORE_FLOOR
    max_score: float = SCORE_CEILING
    network: Optional[str] = None
    networks: Optional[tuple[str, ...]] = None
    tier: Optional[str] = None
    search: str = ""
    min_liquidity: float = LIQUIDITY_FLOOR
    max_liquidity: float = LIQUIDITY_CEILING
    token_type: Optional[str] = None
    min_market_cap: Optional[float] = None
    max_market_cap: Optional[float] = None
    min_age: Optional[float] = None
    max_age: Optional[float] = None
    hide_imposters: bool = False
    verified_only: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def filters_echo(self) -> dict[str, Any]:
        """Resolved filter values in the wire format of the response."""
        return {
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order.value,
            "minScore": self.min_score,
            "maxScore": self.max_score,
            "network": self.network,
            "networks": list(self.networks) if self.networks is not None else None,
            "tier": self.tier,
            "search": self.search,
            "minLiquidity": self.min_liquidity,
            "maxLiquidity": self.max_liquidity,
            "tokenType": self.token_type,
            "minMarketCap": self.min_market_cap,
            "maxMarketCap": self.max_market_cap,
            "minAge": self.min_age,
            "maxAge": self.max_age,
            "hideImposters": self.hide_imposters,
            "verifiedOnly": self.verified_only,
        }


@dataclass(frozen=True, slots=True)
class Pagination:
    """Pagination block of a listing response."""

    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }


@dataclass(slots=True)
class ListingPage:
    """One page of listing results plus metadata."""

    query: ListQuery
    total: int
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def pagination(self) -> Pagination:
        return Pagination(page=self.query.page, limit=self.query.limit, total=self.total)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the response envelope.

        Returns:
            Dictionary with data, pagination and filters blocks
        """
        return {
            "data": self.rows,
            "pagination": self.pagination.to_dict(),
            "filters": self.query.filters_echo(),
        }
