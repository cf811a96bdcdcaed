"""Factory for creating exchange collaborators from environment configuration."""

from __future__ import annotations

import logging
import os

from .interface import QuoteSource, TickerFeed

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE = "hitbtc"


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def configured_symbols() -> list[str] | None:
    """Optional allow-list from QUOTES_SYMBOLS (comma separated). None when unset."""
    raw = os.environ.get("QUOTES_SYMBOLS", "").strip()
    if not raw:
        return None
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


def create_exchange() -> tuple[QuoteSource, TickerFeed]:
    """Create the quote source and ticker feed selected by environment variables.

    - QUOTES_EXCHANGE=hitbtc (default) → HitBTC REST client + websocket feed
        HITBTC_API_URL, HITBTC_WS_URL override the endpoints
        QUOTES_REQUEST_TIMEOUT bounds every REST request and RPC call (seconds)
    - QUOTES_EXCHANGE=simulator → one SimulatedExchange serving both roles

    Returns unconnected collaborators. Caller must await feed.connect().
    """
    exchange = os.environ.get("QUOTES_EXCHANGE", DEFAULT_EXCHANGE).strip().lower() or DEFAULT_EXCHANGE

    if exchange == "simulator":
        from .simulator import SimulatedExchange

        logger.info("Exchange: GBM simulator")
        simulated = SimulatedExchange()
        return simulated, simulated

    if exchange == "hitbtc":
        from .hitbtc import API_BASE, WS_URL, HitBtcRestClient, HitBtcTickerFeed

        timeout = _float_env("QUOTES_REQUEST_TIMEOUT", 10.0)
        api_url = os.environ.get("HITBTC_API_URL", "").strip() or API_BASE
        ws_url = os.environ.get("HITBTC_WS_URL", "").strip() or WS_URL

        logger.info("Exchange: HitBTC (%s)", api_url)
        return (
            HitBtcRestClient(base_url=api_url, timeout=timeout),
            HitBtcTickerFeed(url=ws_url, call_timeout=timeout),
        )

    raise ValueError(f"Unknown QUOTES_EXCHANGE: {exchange!r} (expected 'hitbtc' or 'simulator')")
