"""Fixtures for quote subsystem tests.

In-memory fakes stand in for the exchange collaborators so the store, the
resolver and the feed coordinator can be exercised without network access.
"""

from __future__ import annotations

import asyncio

import pytest

from app.quotes.cache import SummaryStore
from app.quotes.channel import TickerChannel
from app.quotes.errors import DecodeError, SubscriptionFailed, UpstreamUnavailable
from app.quotes.interface import QuoteSource, TickerFeed
from app.quotes.models import CurrencyInfo, RawTicker, SymbolInfo
from app.quotes.reference import ReferenceData


class FakeQuoteSource(QuoteSource):
    """QuoteSource serving canned tickers and recording every fetch."""

    def __init__(self, quotes: dict[str, dict] | None = None) -> None:
        self.quotes: dict[str, dict] = quotes or {}
        self.symbols: list[SymbolInfo] = []
        self.currencies: list[CurrencyInfo] = []
        self.fetch_calls: list[str] = []
        self.fail_with: Exception | None = None
        self.delay = 0.0
        self.closed = False

    async def fetch_quote(self, symbol: str) -> RawTicker:
        self.fetch_calls.append(symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        if symbol not in self.quotes:
            raise UpstreamUnavailable("Symbol not found", symbol=symbol)
        return RawTicker.from_dict({"symbol": symbol, **self.quotes[symbol]})

    async def list_symbols(self) -> list[SymbolInfo]:
        return list(self.symbols)

    async def list_currencies(self) -> list[CurrencyInfo]:
        return list(self.currencies)

    async def close(self) -> None:
        self.closed = True


class FakeTickerFeed(TickerFeed):
    """TickerFeed whose channels are driven directly by the test."""

    def __init__(self) -> None:
        self.channels: dict[str, TickerChannel[RawTicker]] = {}
        self.subscribe_calls: list[str] = []
        self.unsubscribe_calls: list[str] = []
        self.refuse: set[str] = set()
        self.connected = False
        self.errors: TickerChannel[DecodeError] = TickerChannel()

    async def connect(self) -> None:
        self.connected = True

    async def subscribe(self, symbol: str) -> TickerChannel[RawTicker]:
        self.subscribe_calls.append(symbol)
        if symbol in self.refuse:
            raise SubscriptionFailed(symbol, "refused by exchange")
        channel: TickerChannel[RawTicker] = TickerChannel()
        self.channels[symbol] = channel
        return channel

    async def unsubscribe(self, symbol: str) -> None:
        self.unsubscribe_calls.append(symbol)
        channel = self.channels.pop(symbol, None)
        if channel is not None:
            channel.close()

    async def close(self) -> None:
        self.connected = False
        for symbol in list(self.channels):
            self.channels.pop(symbol).close()
        self.errors.close()

    def push(self, symbol: str, **fields: str) -> bool:
        """Deliver a ticker update for a symbol, as the transport would."""
        channel = self.channels.get(symbol)
        if channel is None:
            return False
        return channel.put(RawTicker.from_dict({"symbol": symbol, **fields}))

    def drop(self, symbol: str) -> None:
        """Close a channel from the transport side, like a lost connection."""
        self.channels.pop(symbol).close()


@pytest.fixture
def reference() -> ReferenceData:
    return ReferenceData(
        symbols=("ETHBTC", "LTCBTC"),
        fee_currencies={"ETHBTC": "BTC", "LTCBTC": "BTC", "XRPBTC": "BTC"},
        full_names={"BTC": "Bitcoin", "ETH": "Ethereum"},
    )


@pytest.fixture
def store() -> SummaryStore:
    return SummaryStore()


@pytest.fixture
def source() -> FakeQuoteSource:
    return FakeQuoteSource(
        quotes={
            "ETHBTC": {"last": "0.033", "ask": "0.034", "bid": "0.032", "timestamp": "2021-04-01T10:00:00.000Z"},
            "LTCBTC": {"last": "0.0021", "ask": "0.0022", "bid": "0.0020"},
            "XRPBTC": {"last": "0.0000095", "ask": "0.0000096", "bid": "0.0000094"},
        }
    )


@pytest.fixture
def feed() -> FakeTickerFeed:
    return FakeTickerFeed()
