"""
HTTP server for the listing service.

Routes:
    GET /listing                    Filtered, sorted, paginated tokens
    GET /api/crypto-projects-rated  Same as /listing
    GET /api/tokens/{id}            One token by id
    GET /health                     Liveness probe
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from aiohttp import web

from coinairank.constants import GENERIC_ERROR_MESSAGE, NOT_FOUND_MESSAGE
from coinairank.exceptions import CoinAIRankError, TokenNotFoundError
from coinairank.service import ListingService

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("listing_service", ListingService)

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def error_response(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=CORS_HEADERS)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn anything a handler did not handle into a generic JSON 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return error_response(GENERIC_ERROR_MESSAGE, 500)


async def list_tokens(request: web.Request) -> web.Response:
    """Listing endpoint. Bad parameters fall back to defaults; only the datastore can fail."""
    service = request.app[SERVICE_KEY]

    try:
        page = await service.list_tokens(request.query)
    except CoinAIRankError as e:
        logger.error(f"Listing query failed: {e}")
        return error_response(GENERIC_ERROR_MESSAGE, 500)

    return web.json_response(page.to_dict(), headers=CORS_HEADERS)


async def get_token(request: web.Request) -> web.Response:
    """Single token by numeric id."""
    service = request.app[SERVICE_KEY]
    token_id = int(request.match_info["token_id"])

    try:
        row = await service.get_token(token_id)
    except TokenNotFoundError:
        return error_response(NOT_FOUND_MESSAGE, 404)
    except CoinAIRankError as e:
        logger.error(f"Token lookup failed: {e}")
        return error_response(GENERIC_ERROR_MESSAGE, 500)

    return web.json_response({"data": row}, headers=CORS_HEADERS)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def _store_lifecycle(app: web.Application) -> AsyncIterator[None]:
    # One pool per process, opened on startup and closed on shutdown
    store = app[SERVICE_KEY].store
    await store.connect()
    yield
    await store.disconnect()


def create_app(service: ListingService) -> web.Application:
    """
    Create the web application.

    Args:
        service: Listing service shared by all requests

    Returns:
        Configured aiohttp application
    """
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app.cleanup_ctx.append(_store_lifecycle)

    app.router.add_get("/listing", list_tokens)
    app.router.add_get("/api/crypto-projects-rated", list_tokens)
    app.router.add_get(r"/api/tokens/{token_id:\d+}", get_token)
    app.router.add_get("/health", health)

    return app


async def start_server(service: ListingService, host: str, port: int) -> None:
    """Run the server until cancelled."""
    app = create_app(service)
    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Listing server started on http://{host}:{port}")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
        logger.info("Listing server stopped")
