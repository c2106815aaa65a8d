"""
Query-string parsing for the listing endpoint.

Every parameter is optional and parsing never raises: malformed
or out-of-range values resolve to their defaults.
"""

from __future__ import annotations

import math
import re
from typing import Mapping, Optional

from coinairank.constants import (
    AGE_CEILING_YEARS,
    ALL_FILTER_VALUE,
    DEFAULT_LIMIT,
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    LIQUIDITY_CEILING,
    LIQUIDITY_FLOOR,
    SCORE_CEILING,
    SCORE_FLOOR,
    SORTABLE_COLUMNS,
)
from coinairank.models import ListQuery, SortOrder

# Leading numeric prefix, so "20abc" reads as 20
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_int(value: Optional[str], default: int) -> int:
    """Parse the leading integer of a string, or return default."""
    if not value:
        return default
    match = _INT_PREFIX_RE.match(value)
    if not match:
        return default
    return int(match.group(1))


def parse_float(value: Optional[str], default: float) -> float:
    """Parse the leading float of a string, or return default."""
    if not value:
        return default
    match = _FLOAT_PREFIX_RE.match(value)
    if not match:
        return default
    result = float(match.group(1))
    return result if math.isfinite(result) else default


def parse_optional_float(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = _FLOAT_PREFIX_RE.match(value)
    if not match:
        return None
    result = float(match.group(1))
    return result if math.isfinite(result) else None


def parse_choice(value: Optional[str]) -> Optional[str]:
    """Empty and 'all' both mean no filter."""
    if not value or value == ALL_FILTER_VALUE:
        return None
    return value


def parse_flag(value: Optional[str]) -> bool:
    return value == "true"


def parse_networks(value: Optional[str]) -> Optional[tuple[str, ...]]:
    """Split a comma-separated network list, dropping blanks and 'all'."""
    if not value:
        return None
    networks = tuple(
        n.strip() for n in value.split(",") if n.strip() and n.strip() != ALL_FILTER_VALUE
    )
    return networks or None


def parse_list_query(
    params: Mapping[str, str],
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
) -> ListQuery:
    """
    Resolve raw query parameters into a ListQuery.

    Args:
        params: Query-string mapping (e.g. aiohttp ``request.query``)
        max_page_size: Upper bound for ``limit``

    Returns:
        ListQuery with defaults applied
    """
    page = parse_int(params.get("page"), DEFAULT_PAGE)
    if page < 1:
        page = DEFAULT_PAGE

    limit = parse_int(params.get("limit"), DEFAULT_LIMIT)
    if limit < 1:
        limit = DEFAULT_LIMIT
    limit = min(limit, max_page_size)

    sort_by = params.get("sortBy") or DEFAULT_SORT_BY
    if sort_by not in SORTABLE_COLUMNS:
        sort_by = DEFAULT_SORT_BY

    min_market_cap = parse_optional_float(params.get("minMarketCap"))
    max_market_cap = parse_optional_float(params.get("maxMarketCap"))
    min_age = parse_optional_float(params.get("minAge"))
    max_age = parse_optional_float(params.get("maxAge"))

    networks = parse_networks(params.get("networks"))

    return ListQuery(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=SortOrder.parse(params.get("sortOrder")),
        min_score=parse_float(params.get("minScore"), SCORE_FLOOR),
        max_score=parse_float(params.get("maxScore"), SCORE_CEILING),
        # A network list takes precedence over the single network
        network=None if networks else parse_choice(params.get("network")),
        networks=networks,
        tier=parse_choice(params.get("tier")),
        search=params.get("search") or "",
        min_liquidity=parse_float(params.get("minLiquidity"), LIQUIDITY_FLOOR),
        max_liquidity=parse_float(params.get("maxLiquidity"), LIQUIDITY_CEILING),
        token_type=parse_choice(params.get("tokenType")),
        min_market_cap=min_market_cap if min_market_cap and min_market_cap > 0 else None,
        max_market_cap=max_market_cap if max_market_cap and max_market_cap > 0 else None,
        min_age=min_age if min_age and min_age > 0 else None,
        max_age=max_age if max_age is not None and max_age < AGE_CEILING_YEARS else None,
        hide_imposters=parse_flag(params.get("hideImposters")),
        verified_only=parse_flag(params.get("verifiedOnly")),
    )
