"""FastAPI application: wires the exchange, the summary store and the live feed."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .quotes import (
    FeedCoordinator,
    QuoteSource,
    SummaryResolver,
    SummaryStore,
    TickerFeed,
    create_currency_router,
    create_exchange,
    load_reference_data,
)
from .quotes.factory import configured_symbols

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


def create_app(
    exchange_factory: Callable[[], tuple[QuoteSource, TickerFeed]] = create_exchange,
) -> FastAPI:
    """Build the app. Startup loads reference data, connects the feed and subscribes.

    Listing and subscription failures are logged and startup continues, so the
    server still answers lookups with whatever it managed to load.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        source, feed = exchange_factory()
        reference = await load_reference_data(source, only=configured_symbols())

        store = SummaryStore()
        resolver = SummaryResolver(store, source, reference)
        coordinator = FeedCoordinator(store, feed, reference)

        try:
            await feed.connect()
        except Exception:
            logger.exception("Ticker feed connect failed, serving lookups only")
        failures = await coordinator.start()
        if failures:
            logger.warning("%d symbols could not be subscribed", len(failures))

        app.state.store = store
        app.state.reference = reference
        app.state.resolver = resolver
        app.state.coordinator = coordinator
        app.include_router(create_currency_router(resolver, reference, store))
        logger.info("Quote server ready: %d supported symbols", len(reference.symbols))
        try:
            yield
        finally:
            await coordinator.stop()
            await feed.close()
            await source.close()
            logger.info("Quote server stopped")

    return FastAPI(title="Crypto quote server", lifespan=lifespan)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run() -> None:
    """Console entry point: configure logging and serve on :8080."""
    import uvicorn

    setup_logging(os.environ.get("QUOTES_LOG_LEVEL", "INFO"))
    port = int(os.environ.get("PORT", DEFAULT_PORT))
    logger.info("API: http://localhost:%d/currency/all", port)
    uvicorn.run(create_app(), host="0.0.0.0", port=port, log_config=None)


if __name__ == "__main__":
    run()
