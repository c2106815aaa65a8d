"""
CoinAIRank - Listing service for AI-scored crypto tokens.

Serves the filtered, sorted and paginated token listing behind
the CoinAIRank dashboard from its Postgres database.
"""

__version__ = "1.0.0"

from coinairank.config import Settings
from coinairank.service import ListingService

__all__ = ["Settings", "ListingService", "__version__"]
