"""
Listing query builder.

A ListQuery is turned into an ordered list of independent predicates
plus an ordering. Each predicate knows how to render itself as SQL
with asyncpg positional parameters and how to evaluate itself against
an in-memory row, so the Postgres and fixture-backed stores share one
definition of the listing semantics.

SQL null semantics are kept in memory too: any comparison against a
null value is false.
"""

from __future__ import annotations

import json
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from coinairank.constants import (
    AGE_COLUMN,
    ID_COLUMN,
    IMPOSTER_COLUMN,
    LIQUIDITY_CEILING,
    LIQUIDITY_COLUMN,
    LIQUIDITY_FLOOR,
    MARKET_CAP_COLUMN,
    NETWORK_COLUMN,
    OTHER_NETWORK_VALUE,
    SCORE_CEILING,
    SCORE_COLUMN,
    SCORE_FLOOR,
    SEARCH_COLUMNS,
    STANDARD_NETWORKS,
    STATUS_COLUMN,
    TIER_COLUMN,
    TOKEN_TYPE_COLUMN,
    VERIFICATION_COLUMN,
    VERIFICATION_FOUND_KEY,
)
from coinairank.models import LISTABLE_STATUSES, ListQuery, SortOrder


def quote_ident(name: str) -> str:
    """Quote a (possibly schema-qualified) identifier."""
    return ".".join('"' + part.replace('"', '""') + '"' for part in name.split("."))


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlParams:
    """Collects positional parameters and hands out $n placeholders."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


# ==============================================================================
# Predicates
# ==============================================================================

class Predicate(ABC):
    """A single WHERE condition."""

    @abstractmethod
    def to_sql(self, params: SqlParams) -> str:
        """Render as SQL, registering any values with ``params``."""

    @abstractmethod
    def matches(self, row: dict[str, Any]) -> bool:
        """Evaluate against an in-memory row."""


def _cast_for(value: Any) -> str:
    """Explicit parameter type so numeric and float8 columns both accept floats."""
    if isinstance(value, bool):
        return "::boolean"
    if isinstance(value, (int, float)):
        return "::float8"
    return "::text"


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "<>": operator.ne,
    ">=": operator.ge,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Compare(Predicate):
    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _COMPARATORS:
            raise ValueError(f"Unsupported operator: {self.op}")

    def to_sql(self, params: SqlParams) -> str:
        return f"{quote_ident(self.column)} {self.op} {params.add(self.value)}{_cast_for(self.value)}"

    def matches(self, row: dict[str, Any]) -> bool:
        actual = row.get(self.column)
        if actual is None or self.value is None:
            return False
        return _COMPARATORS[self.op](actual, self.value)


@dataclass(frozen=True)
class IsNull(Predicate):
    column: str

    def to_sql(self, params: SqlParams) -> str:
        return f"{quote_ident(self.column)} IS NULL"

    def matches(self, row: dict[str, Any]) -> bool:
        return row.get(self.column) is None


@dataclass(frozen=True)
class InSet(Predicate):
    """Set membership; ``negate`` turns it into NOT IN. Nulls never match either way."""

    column: str
    values: tuple[str, ...]
    negate: bool = False

    def to_sql(self, params: SqlParams) -> str:
        clause = f"{quote_ident(self.column)} = ANY({params.add(list(self.values))}::text[])"
        return f"NOT ({clause})" if self.negate else clause

    def matches(self, row: dict[str, Any]) -> bool:
        actual = row.get(self.column)
        if actual is None:
            return False
        return (actual in self.values) != self.negate


@dataclass(frozen=True)
class ContainsText(Predicate):
    """Case-insensitive substring match."""

    column: str
    text: str

    def to_sql(self, params: SqlParams) -> str:
        pattern = f"%{escape_like(self.text)}%"
        return f"{quote_ident(self.column)} ILIKE {params.add(pattern)}"

    def matches(self, row: dict[str, Any]) -> bool:
        actual = row.get(self.column)
        if not isinstance(actual, str):
            return False
        return self.text.lower() in actual.lower()


@dataclass(frozen=True)
class JsonTextEquals(Predicate):
    """Compare one key of a JSON column by its text value (``->>``)."""

    column: str
    key: str
    value: str

    def to_sql(self, params: SqlParams) -> str:
        key_ref = params.add(self.key)
        value_ref = params.add(self.value)
        return f"({quote_ident(self.column)} ->> {key_ref}::text) = {value_ref}::text"

    def matches(self, row: dict[str, Any]) -> bool:
        document = row.get(self.column)
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError:
                return False
        if not isinstance(document, dict):
            return False
        raw = document.get(self.key)
        if raw is None:
            return False
        text = raw if isinstance(raw, str) else json.dumps(raw)
        return text == self.value


@dataclass(frozen=True)
class AnyOf(Predicate):
    predicates: tuple[Predicate, ...]

    def to_sql(self, params: SqlParams) -> str:
        return "(" + " OR ".join(p.to_sql(params) for p in self.predicates) + ")"

    def matches(self, row: dict[str, Any]) -> bool:
        return any(p.matches(row) for p in self.predicates)


@dataclass(frozen=True)
class AllOf(Predicate):
    predicates: tuple[Predicate, ...]

    def to_sql(self, params: SqlParams) -> str:
        return "(" + " AND ".join(p.to_sql(params) for p in self.predicates) + ")"

    def matches(self, row: dict[str, Any]) -> bool:
        return all(p.matches(row) for p in self.predicates)


# ==============================================================================
# Ordering
# ==============================================================================

@dataclass(frozen=True)
class OrderSpec:
    """ORDER BY a single column, with the row id as a stable tiebreak."""

    column: str
    descending: bool
    nulls_first: bool

    def to_sql(self) -> str:
        direction = "DESC" if self.descending else "ASC"
        nulls = "NULLS FIRST" if self.nulls_first else "NULLS LAST"
        return f"{quote_ident(self.column)} {direction} {nulls}, {quote_ident(ID_COLUMN)} ASC"

    def sort_rows(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ordered = sorted(rows, key=lambda r: r.get(ID_COLUMN))
        present = [r for r in ordered if r.get(self.column) is not None]
        missing = [r for r in ordered if r.get(self.column) is None]
        # sort() is stable under reverse=True, so ties keep id order
        present.sort(key=lambda r: r[self.column], reverse=self.descending)
        return missing + present if self.nulls_first else present + missing


def build_order(query: ListQuery) -> OrderSpec:
    """
    Resolve ordering for a query.

    Unscored tokens always sink to the bottom of a score sort. For
    every other column nulls follow the direction (first on desc,
    last on asc).
    """
    descending = query.sort_order is SortOrder.DESC
    nulls_first = False if query.sort_by == SCORE_COLUMN else descending
    return OrderSpec(column=query.sort_by, descending=descending, nulls_first=nulls_first)


# ==============================================================================
# Predicate assembly
# ==============================================================================

PredicateBuilder = Callable[[ListQuery], Optional[Predicate]]


def listable_status(query: ListQuery) -> Predicate:
    """Dead websites are never listed."""
    return AnyOf((
        InSet(STATUS_COLUMN, tuple(s.value for s in LISTABLE_STATUSES)),
        IsNull(STATUS_COLUMN),
    ))


def score_range(query: ListQuery) -> Optional[Predicate]:
    return _bounded(SCORE_COLUMN, query.min_score, query.max_score, SCORE_FLOOR, SCORE_CEILING)


def liquidity_range(query: ListQuery) -> Optional[Predicate]:
    return _bounded(
        LIQUIDITY_COLUMN, query.min_liquidity, query.max_liquidity, LIQUIDITY_FLOOR, LIQUIDITY_CEILING
    )


def network_filter(query: ListQuery) -> Optional[Predicate]:
    if query.networks:
        if OTHER_NETWORK_VALUE in query.networks:
            # "other" means any non-standard network, plus whichever standard ones were picked
            chosen = set(query.networks)
            excluded = tuple(n for n in STANDARD_NETWORKS if n not in chosen)
            return InSet(NETWORK_COLUMN, excluded, negate=True) if excluded else None
        return InSet(NETWORK_COLUMN, query.networks)
    if query.network:
        return Compare(NETWORK_COLUMN, "=", query.network)
    return None


def tier_filter(query: ListQuery) -> Optional[Predicate]:
    return Compare(TIER_COLUMN, "=", query.tier) if query.tier else None


def search_filter(query: ListQuery) -> Optional[Predicate]:
    if not query.search:
        return None
    return AnyOf(tuple(ContainsText(column, query.search) for column in SEARCH_COLUMNS))


def token_type_filter(query: ListQuery) -> Optional[Predicate]:
    return Compare(TOKEN_TYPE_COLUMN, "=", query.token_type) if query.token_type else None


def imposter_filter(query: ListQuery) -> Optional[Predicate]:
    if not query.hide_imposters:
        return None
    return AnyOf((Compare(IMPOSTER_COLUMN, "=", False), IsNull(IMPOSTER_COLUMN)))


def verified_filter(query: ListQuery) -> Optional[Predicate]:
    if not query.verified_only:
        return None
    return JsonTextEquals(VERIFICATION_COLUMN, VERIFICATION_FOUND_KEY, "true")


def age_range(query: ListQuery) -> Optional[Predicate]:
    return _optional_bounds(AGE_COLUMN, query.min_age, query.max_age)


def market_cap_range(query: ListQuery) -> Optional[Predicate]:
    return _optional_bounds(MARKET_CAP_COLUMN, query.min_market_cap, query.max_market_cap)


def _bounded(
    column: str, low: float, high: float, floor: float, ceiling: float
) -> Optional[Predicate]:
    # Sentinel bounds are skipped entirely so null values survive
    return _optional_bounds(
        column,
        low if low > floor else None,
        high if high < ceiling else None,
    )


def _optional_bounds(
    column: str, low: Optional[float], high: Optional[float]
) -> Optional[Predicate]:
    if low is not None and high is not None:
        return AllOf((Compare(column, ">=", low), Compare(column, "<=", high)))
    if low is not None:
        return Compare(column, ">=", low)
    if high is not None:
        return Compare(column, "<=", high)
    return None


PREDICATE_BUILDERS: tuple[PredicateBuilder, ...] = (
    listable_status,
    score_range,
    liquidity_range,
    network_filter,
    tier_filter,
    search_filter,
    token_type_filter,
    imposter_filter,
    verified_filter,
    age_range,
    market_cap_range,
)


def build_predicates(query: ListQuery) -> list[Predicate]:
    """Apply every builder in order, keeping the ones that produce a predicate."""
    predicates = []
    for builder in PREDICATE_BUILDERS:
        predicate = builder(query)
        if predicate is not None:
            predicates.append(predicate)
    return predicates


# ==============================================================================
# Statements
# ==============================================================================

@dataclass
class ListingStatement:
    """
    A fully resolved listing query.

    ``sql``/``args`` drive Postgres; ``predicates``/``order``/``offset``/
    ``limit`` drive the in-memory store.
    """

    query: ListQuery
    predicates: list[Predicate]
    order: OrderSpec
    sql: str = ""
    args: list[Any] = field(default_factory=list)

    @property
    def offset(self) -> int:
        return self.query.offset

    @property
    def limit(self) -> int:
        return self.query.limit


def build_listing_statement(query: ListQuery, table: str) -> ListingStatement:
    """
    Build the single statement that returns the exact match count and
    the requested page as a JSON array.

    Args:
        query: Resolved listing parameters
        table: Table of scored tokens (validated identifier)

    Returns:
        ListingStatement
    """
    predicates = build_predicates(query)
    order = build_order(query)

    params = SqlParams()
    where = " AND ".join(p.to_sql(params) for p in predicates)
    order_sql = order.to_sql()
    limit_ref = params.add(query.limit)
    offset_ref = params.add(query.offset)

    sql = (
        f"WITH filtered AS (SELECT * FROM {quote_ident(table)} WHERE {where}) "
        f"SELECT "
        f"(SELECT count(*) FROM filtered) AS total, "
        f"(SELECT coalesce(json_agg(page_rows ORDER BY {order_sql}), '[]'::json) "
        f"FROM (SELECT * FROM filtered ORDER BY {order_sql} "
        f"LIMIT {limit_ref} OFFSET {offset_ref}) AS page_rows) AS data"
    )

    return ListingStatement(
        query=query,
        predicates=predicates,
        order=order,
        sql=sql,
        args=params.values,
    )


def build_lookup_sql(table: str) -> str:
    """Single row by id, as JSON. No liveness filter on direct lookups."""
    return (
        f"SELECT row_to_json(t) FROM {quote_ident(table)} AS t "
        f"WHERE t.{quote_ident(ID_COLUMN)} = $1"
    )
