"""
Application constants and magic values.

This module centralizes all hardcoded values to make them
easily discoverable and modifiable.
"""

from typing import Final

# ==============================================================================
# Datastore
# ==============================================================================

DEFAULT_LISTING_TABLE: Final[str] = "crypto_projects_rated"
ID_COLUMN: Final[str] = "id"

DEFAULT_POOL_MIN_SIZE: Final[int] = 1
DEFAULT_POOL_MAX_SIZE: Final[int] = 5
DEFAULT_COMMAND_TIMEOUT: Final[float] = 30.0  # seconds

# ==============================================================================
# Columns
# ==============================================================================

SCORE_COLUMN: Final[str] = "website_stage1_score"
TIER_COLUMN: Final[str] = "website_stage1_tier"
LIQUIDITY_COLUMN: Final[str] = "current_liquidity_usd"
MARKET_CAP_COLUMN: Final[str] = "current_market_cap"
AGE_COLUMN: Final[str] = "project_age_years"
STATUS_COLUMN: Final[str] = "website_status"
NETWORK_COLUMN: Final[str] = "network"
TOKEN_TYPE_COLUMN: Final[str] = "token_type"
IMPOSTER_COLUMN: Final[str] = "is_imposter"
VERIFICATION_COLUMN: Final[str] = "contract_verification"
VERIFICATION_FOUND_KEY: Final[str] = "found_on_site"
SEARCH_COLUMNS: Final[tuple[str, ...]] = ("symbol", "name")

# Only these may appear in ORDER BY
SORTABLE_COLUMNS: Final[tuple[str, ...]] = (
    SCORE_COLUMN,
    LIQUIDITY_COLUMN,
    MARKET_CAP_COLUMN,
    "roi_percent",
    "created_at",
    "website_stage1_analyzed_at",
)

# ==============================================================================
# Listing Defaults
# ==============================================================================

DEFAULT_PAGE: Final[int] = 1
DEFAULT_LIMIT: Final[int] = 20
DEFAULT_MAX_PAGE_SIZE: Final[int] = 100
DEFAULT_SORT_BY: Final[str] = SCORE_COLUMN
DEFAULT_SORT_ORDER: Final[str] = "desc"

# Sentinel bounds: a bound left at its sentinel applies no predicate
SCORE_FLOOR: Final[float] = 0.0
SCORE_CEILING: Final[float] = 100.0
LIQUIDITY_FLOOR: Final[float] = 0.0
LIQUIDITY_CEILING: Final[float] = 1_000_000_000.0
AGE_CEILING_YEARS: Final[float] = 10.0

# Filter value meaning "no filter"
ALL_FILTER_VALUE: Final[str] = "all"
OTHER_NETWORK_VALUE: Final[str] = "other"

STANDARD_NETWORKS: Final[tuple[str, ...]] = (
    "ethereum",
    "solana",
    "bsc",
    "base",
    "pulsechain",
)

# ==============================================================================
# HTTP Server
# ==============================================================================

DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 8080
GENERIC_ERROR_MESSAGE: Final[str] = "Internal server error"
NOT_FOUND_MESSAGE: Final[str] = "Project not found"

# ==============================================================================
# Logging Configuration
# ==============================================================================

DEFAULT_LOG_FILE: Final[str] = "coinairank.log"
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 5
