"""
Command-line interface for the listing service.

Provides the server entry point plus small tools for validating
configuration and running a one-off listing query.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from coinairank import __version__
from coinairank.config import Settings, validate_environment
from coinairank.datastore import MemoryTokenStore, PostgresTokenStore, TokenStore
from coinairank.exceptions import CoinAIRankError
from coinairank.logging_config import resolve_log_level, setup_logging
from coinairank.models import ListingPage, ScoredToken
from coinairank.service import ListingService

logger = logging.getLogger(__name__)

# CLI option -> query-string parameter, for the list command
LIST_OPTION_PARAMS = {
    "page": "page",
    "limit": "limit",
    "sort_by": "sortBy",
    "sort_order": "sortOrder",
    "min_score": "minScore",
    "max_score": "maxScore",
    "network": "network",
    "networks": "networks",
    "tier": "tier",
    "search": "search",
    "token_type": "tokenType",
    "min_liquidity": "minLiquidity",
    "max_liquidity": "maxLiquidity",
    "min_market_cap": "minMarketCap",
    "max_market_cap": "maxMarketCap",
    "min_age": "minAge",
    "max_age": "maxAge",
    "hide_imposters": "hideImposters",
    "verified_only": "verifiedOnly",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="coinairank",
        description="CoinAIRank listing service - scored crypto tokens over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve                          Serve from DATABASE_URL
  %(prog)s serve --fixtures tokens.json   Serve rows from a JSON file
  %(prog)s list --network solana -n 10    Print the top 10 Solana tokens
  %(prog)s validate                       Check configuration

Environment Variables:
  DATABASE_URL     Postgres connection string (required unless --fixtures)
  LISTING_TABLE    Table of scored tokens (default: crypto_projects_rated)
  MAX_PAGE_SIZE    Upper bound for the limit parameter (default: 100)
  SERVER_HOST      Bind address (default: 0.0.0.0)
  SERVER_PORT      Bind port (default: 8080)
        """,
    )

    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    log_group = parser.add_argument_group("Logging")
    log_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    log_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    log_group.add_argument(
        "--log-file",
        type=Path,
        metavar="FILE",
        help="Log file path (default: LOG_FILE or coinairank.log)",
    )

    # Serve options, so running without a subcommand behaves like "serve"
    parser.set_defaults(host=None, port=None, fixtures=None)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server (default)")
    serve_parser.add_argument("--host", metavar="ADDR", help="Bind address")
    serve_parser.add_argument("--port", type=int, metavar="PORT", help="Bind port")
    serve_parser.add_argument(
        "--fixtures",
        type=Path,
        metavar="FILE",
        help="Serve rows from a JSON file instead of Postgres",
    )

    subparsers.add_parser("validate", help="Validate configuration without starting")

    list_parser = subparsers.add_parser("list", help="Run one listing query and print it")
    list_parser.add_argument("--fixtures", type=Path, metavar="FILE", help="Query a JSON file instead of Postgres")
    list_parser.add_argument("--page", metavar="N")
    list_parser.add_argument("-n", "--limit", metavar="N")
    list_parser.add_argument("--sort-by", metavar="COLUMN")
    list_parser.add_argument("--sort-order", choices=("asc", "desc"))
    list_parser.add_argument("--min-score", metavar="SCORE")
    list_parser.add_argument("--max-score", metavar="SCORE")
    list_parser.add_argument("--network", metavar="NAME")
    list_parser.add_argument("--networks", metavar="A,B", help="Comma-separated networks ('other' for non-standard)")
    list_parser.add_argument("--tier", metavar="TIER")
    list_parser.add_argument("--search", metavar="TEXT")
    list_parser.add_argument("--token-type", metavar="TYPE")
    list_parser.add_argument("--min-liquidity", metavar="USD")
    list_parser.add_argument("--max-liquidity", metavar="USD")
    list_parser.add_argument("--min-market-cap", metavar="USD")
    list_parser.add_argument("--max-market-cap", metavar="USD")
    list_parser.add_argument("--min-age", metavar="YEARS")
    list_parser.add_argument("--max-age", metavar="YEARS")
    list_parser.add_argument("--hide-imposters", action="store_const", const="true", help="Exclude tokens flagged as imposters")
    list_parser.add_argument("--verified-only", action="store_const", const="true", help="Only contracts found on the project site")

    return parser


def build_store(settings: Settings, fixtures: Optional[Path] = None) -> TokenStore:
    """
    Pick the datastore: fixtures file if given, Postgres otherwise.

    Raises:
        ValidationError: If DATABASE_URL is missing or invalid
        FixtureLoadError: If the fixtures file cannot be read
    """
    if fixtures:
        return MemoryTokenStore.from_file(fixtures)
    return PostgresTokenStore(settings.database, table=settings.listing.table)


def build_service(settings: Settings, fixtures: Optional[Path] = None) -> ListingService:
    listing = settings.listing
    return ListingService(
        build_store(settings, fixtures),
        table=listing.table,
        max_page_size=listing.max_page_size,
    )


def list_params(args: argparse.Namespace) -> dict[str, str]:
    """Collect the list command's options as query-string parameters."""
    params = {}
    for option, param in LIST_OPTION_PARAMS.items():
        value = getattr(args, option, None)
        if value is not None:
            params[param] = str(value)
    return params


def format_listing(page: ListingPage) -> str:
    """Render a listing page as a plain-text table."""
    lines = [f"{'SYMBOL':<12} {'NETWORK':<12} {'SCORE':>6} {'TIER':<8} {'LIQUIDITY':>16}"]
    for row in page.rows:
        token = ScoredToken.from_record(row)
        score = f"{token.score:.0f}" if token.score is not None else "-"
        liquidity = f"${token.liquidity_usd:,.0f}" if token.liquidity_usd is not None else "-"
        lines.append(
            f"{token.symbol[:12]:<12} {(token.network or '-')[:12]:<12} "
            f"{score:>6} {(token.tier or '-'):<8} {liquidity:>16}"
        )
    pagination = page.pagination
    lines.append(
        f"\nPage {pagination.page}/{pagination.total_pages} "
        f"({pagination.total} matching, {len(page.rows)} shown)"
    )
    return "\n".join(lines)


def validate_config() -> bool:
    """
    Validate configuration and environment.

    Returns:
        True if configuration is valid
    """
    print("Validating configuration...")

    is_valid, errors = validate_environment()

    if errors:
        print("\n❌ Configuration errors:")
        for error in errors:
            print(f"   - {error}")
        return False

    try:
        settings = Settings()
        database = settings.database
        listing = settings.listing
        server = settings.server
    except ValidationError as e:
        print(f"\n❌ Failed to load settings: {e}")
        return False

    print("\n✅ Configuration is valid:")
    print(f"   - Pool size: {database.pool_min_size}-{database.pool_max_size}")
    print(f"   - Table: {listing.table}")
    print(f"   - Max page size: {listing.max_page_size}")
    print(f"   - Listen: {server.host}:{server.port}")
    return True


def _configure_logging(args: argparse.Namespace, settings: Optional[Settings]) -> None:
    if args.log_file:
        log_file: Optional[Path] = args.log_file
    elif settings is not None:
        log_file = settings.log_path
    else:
        log_file = None
    setup_logging(log_file=log_file, log_level=resolve_log_level(args.verbose, args.quiet))


def _load_settings(args: argparse.Namespace) -> Optional[Settings]:
    fixtures = getattr(args, "fixtures", None)
    if not fixtures:
        is_valid, errors = validate_environment()
        if not is_valid:
            for error in errors:
                print(f"❌ {error}", file=sys.stderr)
            return None
    try:
        return Settings()
    except ValidationError as e:
        print(f"❌ Failed to load settings: {e}", file=sys.stderr)
        return None


async def run_server(args: argparse.Namespace, settings: Settings) -> int:
    """
    Run the HTTP server with the given arguments.

    Returns:
        Exit code (0 for success)
    """
    from coinairank.server import start_server

    server = settings.server
    host = args.host or server.host
    port = args.port or server.port

    try:
        service = build_service(settings, args.fixtures)
        await start_server(service, host, port)
        return 0
    except (CoinAIRankError, ValidationError) as e:
        logger.error(f"Failed to start server: {e}")
        return 1


async def run_list(args: argparse.Namespace, settings: Settings) -> int:
    """Run one listing query and print it."""
    try:
        service = build_service(settings, args.fixtures)
        async with service.store:
            page = await service.list_tokens(list_params(args))
    except (CoinAIRankError, ValidationError) as e:
        logger.error(f"Listing failed: {e}")
        return 1

    print(format_listing(page))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "validate":
        return 0 if validate_config() else 1

    if args.command is None:
        args.command = "serve"

    settings = _load_settings(args)
    if settings is None:
        return 1

    _configure_logging(args, settings)

    runner = run_list if args.command == "list" else run_server
    try:
        return asyncio.run(runner(args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
