"""HTTP endpoints for cached currency summaries, including an SSE stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .cache import SummaryStore
from .errors import EmptyCache, UpstreamUnavailable
from .reference import ReferenceData
from .resolver import SummaryResolver

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_currency_router(
    resolver: SummaryResolver,
    reference: ReferenceData,
    store: SummaryStore,
    stream_interval: float = 0.5,
) -> APIRouter:
    """Create the /currency router bound to the given resolver and reference data.

    This factory pattern lets us inject the core objects without globals.
    """
    router = APIRouter(prefix="/currency", tags=["currency"])

    @router.get("/all")
    async def all_currencies() -> JSONResponse:
        """Every cached summary. 404 until the first summary has been cached."""
        try:
            summaries = resolver.all_cached()
        except EmptyCache:
            return _error(404, "No data Found")
        return JSONResponse({"currencies": [s.to_dict() for s in summaries]})

    @router.get("/stream")
    async def stream_currencies(request: Request) -> StreamingResponse:
        """SSE endpoint for live summary updates.

        Streams every cached summary whenever the store changes. Events look like:

            data: {"ETHBTC": {"id": "ETHBTC", "last": 0.035, ...}, ...}
        """
        return StreamingResponse(
            _generate_events(store, request, stream_interval),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    @router.get("/{symbol}")
    async def currency_by_symbol(symbol: str) -> JSONResponse:
        """Summary for one supported symbol, fetched on a cache miss."""
        symbol = symbol.upper().strip()
        if not reference.is_supported(symbol):
            return _error(404, "Not a valid Symbol")
        try:
            summary = await resolver.lookup(symbol)
        except UpstreamUnavailable as e:
            logger.warning("Lookup %s failed: %s", symbol, e)
            return _error(502, str(e))
        return JSONResponse(summary.to_dict())

    return router


async def _generate_events(
    store: SummaryStore,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted summary events.

    Polls the store version every `interval` seconds and sends a full snapshot
    when it changed. Stops when the client disconnects.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = store.version
            if current_version != last_version:
                last_version = current_version
                try:
                    summaries = store.get_all()
                except EmptyCache:
                    summaries = []
                if summaries:
                    data = {s.symbol: s.to_dict() for s in summaries}
                    yield f"data: {json.dumps(data)}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
