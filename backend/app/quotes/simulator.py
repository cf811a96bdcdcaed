"""GBM-based simulated exchange for running without network access."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from .channel import TickerChannel
from .errors import DecodeError, SubscriptionFailed
from .interface import QuoteSource, TickerFeed
from .models import CurrencyInfo, RawTicker, SymbolInfo
from .seed_prices import (
    CROSS_CORR,
    CURRENCY_NAMES,
    DEFAULT_PARAMS,
    HALF_SPREAD,
    SAME_BASE_CORR,
    SAME_QUOTE_CORR,
    SEED_PRICES,
    SYMBOL_PAIRS,
    SYMBOL_PARAMS,
)

logger = logging.getLogger(__name__)


class GBMSimulator:
    """Geometric Brownian Motion simulator for correlated crypto prices.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Where:
        S(t)   = current price
        mu     = annualized drift (expected return)
        sigma  = annualized volatility
        dt     = time step as fraction of a year
        Z      = correlated standard normal random variable

    Crypto markets never close, so a year is 365 * 24h of seconds.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600  # 31,536,000
    DEFAULT_DT = 0.5 / SECONDS_PER_YEAR  # ~1.59e-8

    def __init__(
        self,
        symbols: list[str],
        dt: float = DEFAULT_DT,
        event_probability: float = 0.001,
    ) -> None:
        self._dt = dt
        self._event_prob = event_probability

        self._symbols: list[str] = []
        self._prices: dict[str, float] = {}
        self._params: dict[str, dict[str, float]] = {}

        # Cholesky decomposition of the correlation matrix (for correlated moves)
        self._cholesky: np.ndarray | None = None

        for symbol in symbols:
            self._add_symbol(symbol)
        self._rebuild_cholesky()

    # --- Public API ---

    def step(self) -> dict[str, float]:
        """Advance every symbol by one time step. Returns {symbol: new_price}."""
        n = len(self._symbols)
        if n == 0:
            return {}

        z_independent = np.random.standard_normal(n)
        if self._cholesky is not None:
            z_correlated = self._cholesky @ z_independent
        else:
            z_correlated = z_independent

        result: dict[str, float] = {}
        for i, symbol in enumerate(self._symbols):
            params = self._params[symbol]
            mu = params["mu"]
            sigma = params["sigma"]

            drift = (mu - 0.5 * sigma**2) * self._dt
            diffusion = sigma * math.sqrt(self._dt) * z_correlated[i]
            self._prices[symbol] *= math.exp(drift + diffusion)

            # Random event: a sudden 2-5% jump, the way thin crypto books move
            if random.random() < self._event_prob:
                shock_magnitude = random.uniform(0.02, 0.05)
                shock_sign = random.choice([-1, 1])
                self._prices[symbol] *= 1 + shock_magnitude * shock_sign
                logger.debug(
                    "Random event on %s: %.1f%% %s",
                    symbol,
                    shock_magnitude * 100,
                    "up" if shock_sign > 0 else "down",
                )

            result[symbol] = round(self._prices[symbol], 8)

        return result

    def get_price(self, symbol: str) -> float | None:
        """Current price for a symbol, or None if not simulated."""
        return self._prices.get(symbol)

    def get_symbols(self) -> list[str]:
        return list(self._symbols)

    # --- Internals ---

    def _add_symbol(self, symbol: str) -> None:
        if symbol in self._prices:
            return
        self._symbols.append(symbol)
        self._prices[symbol] = SEED_PRICES.get(symbol, random.uniform(0.001, 100.0))
        self._params[symbol] = SYMBOL_PARAMS.get(symbol, dict(DEFAULT_PARAMS))

    def _rebuild_cholesky(self) -> None:
        n = len(self._symbols)
        if n <= 1:
            self._cholesky = None
            return

        corr = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                rho = self._pairwise_correlation(self._symbols[i], self._symbols[j])
                corr[i, j] = rho
                corr[j, i] = rho

        self._cholesky = np.linalg.cholesky(corr)

    @staticmethod
    def _pairwise_correlation(s1: str, s2: str) -> float:
        """Correlation between two symbols from their currency pairs.

        Correlation structure:
          - Same base currency:  0.6
          - Same quote currency: 0.45
          - Anything else:       0.25 (also symbols outside the listing)
        """
        p1 = SYMBOL_PAIRS.get(s1)
        p2 = SYMBOL_PAIRS.get(s2)
        if p1 is None or p2 is None:
            return CROSS_CORR
        if p1[0] == p2[0]:
            return SAME_BASE_CORR
        if p1[1] == p2[1]:
            return SAME_QUOTE_CORR
        return CROSS_CORR


@dataclass
class _Session:
    """Rolling session statistics for one simulated symbol."""

    open: float
    low: float
    high: float
    volume: float = 0.0
    volume_quote: float = 0.0

    def record(self, price: float, quantity: float) -> None:
        self.low = min(self.low, price)
        self.high = max(self.high, price)
        self.volume += quantity
        self.volume_quote += quantity * price


def _fmt(value: float) -> str:
    return f"{value:.8f}"


class SimulatedExchange(QuoteSource, TickerFeed):
    """QuoteSource and TickerFeed backed by the GBM simulator.

    Lists the symbols in seed_prices. A background asyncio task steps the
    simulation every `update_interval` seconds and pushes a string-encoded
    ticker to every subscribed channel, the same shape the HitBTC websocket
    delivers. A symbol outside the listing gets a one-off quote at a random
    price and is not simulated further.
    """

    def __init__(
        self,
        update_interval: float = 0.5,
        event_probability: float = 0.001,
    ) -> None:
        self._interval = update_interval
        self._sim = GBMSimulator(symbols=list(SYMBOL_PAIRS), event_probability=event_probability)
        self._sessions: dict[str, _Session] = {}
        self._channels: dict[str, TickerChannel[RawTicker]] = {}
        self._task: asyncio.Task | None = None
        self.errors: TickerChannel[DecodeError] = TickerChannel()

    # --- QuoteSource ---

    async def fetch_quote(self, symbol: str) -> RawTicker:
        symbol = symbol.upper()
        price = self._sim.get_price(symbol)
        if price is None:
            # Off-listing symbols get a one-off quote and never join the stepped set
            price = round(random.uniform(0.001, 100.0), 8)
            logger.debug("Simulator: one-off quote for unlisted symbol %s", symbol)
            return self._ticker(symbol, price, _Session(open=price, low=price, high=price))
        return self._ticker(symbol, price, self._session(symbol, price))

    async def list_symbols(self) -> list[SymbolInfo]:
        return [
            SymbolInfo(id=symbol, base_currency=base, quote_currency=quote, fee_currency=quote)
            for symbol, (base, quote) in SYMBOL_PAIRS.items()
        ]

    async def list_currencies(self) -> list[CurrencyInfo]:
        return [CurrencyInfo(id=cid, full_name=name) for cid, name in CURRENCY_NAMES.items()]

    # --- TickerFeed ---

    async def connect(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_loop(), name="simulator-loop")
        logger.info("Simulator started with %d symbols", len(self._sim.get_symbols()))

    async def subscribe(self, symbol: str) -> TickerChannel[RawTicker]:
        if self._task is None or self._task.done():
            raise SubscriptionFailed(symbol, "simulated exchange is not connected")
        if symbol not in SYMBOL_PAIRS:
            raise SubscriptionFailed(symbol, "symbol not listed")
        channel = self._channels.get(symbol)
        if channel is None:
            channel = TickerChannel()
            self._channels[symbol] = channel
        return channel

    async def unsubscribe(self, symbol: str) -> None:
        channel = self._channels.pop(symbol, None)
        if channel is not None:
            channel.close()

    async def close(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        for symbol in list(self._channels):
            await self.unsubscribe(symbol)
        self.errors.close()
        logger.info("Simulator stopped")

    def get_symbols(self) -> list[str]:
        return self._sim.get_symbols()

    # --- Internals ---

    def _ticker(self, symbol: str, price: float, session: _Session) -> RawTicker:
        return RawTicker(
            symbol=symbol,
            last=_fmt(price),
            ask=_fmt(price * (1 + HALF_SPREAD)),
            bid=_fmt(price * (1 - HALF_SPREAD)),
            open=_fmt(session.open),
            low=_fmt(session.low),
            high=_fmt(session.high),
            volume=_fmt(session.volume),
            volume_quote=_fmt(session.volume_quote),
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        )

    def _session(self, symbol: str, price: float) -> _Session:
        session = self._sessions.get(symbol)
        if session is None:
            session = _Session(open=price, low=price, high=price)
            self._sessions[symbol] = session
        return session

    async def _run_loop(self) -> None:
        """Core loop: step the simulation, push to subscribers, sleep."""
        while True:
            try:
                prices = self._sim.step()
                for symbol, price in prices.items():
                    session = self._session(symbol, price)
                    session.record(price, random.uniform(0.0, 5.0))
                    channel = self._channels.get(symbol)
                    if channel is not None:
                        channel.put(self._ticker(symbol, price, session))
            except Exception:
                logger.exception("Simulator step failed")
            await asyncio.sleep(self._interval)
