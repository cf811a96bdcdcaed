"""Abstract interfaces for the exchange collaborators the core depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .channel import TickerChannel
from .errors import DecodeError
from .models import CurrencyInfo, RawTicker, SymbolInfo


class QuoteSource(ABC):
    """Pull side of an exchange: single-symbol quotes and one-time listings.

    Every method raises UpstreamUnavailable when the exchange cannot answer.
    """

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> RawTicker:
        """Fetch the current ticker for one symbol."""

    @abstractmethod
    async def list_symbols(self) -> list[SymbolInfo]:
        """Return every symbol the exchange trades, with its fee currency."""

    @abstractmethod
    async def list_currencies(self) -> list[CurrencyInfo]:
        """Return every currency the exchange knows, with its display name."""

    @abstractmethod
    async def close(self) -> None:
        """Release network resources. Safe to call multiple times."""


class TickerFeed(ABC):
    """Push side of an exchange: one ticker channel per subscribed symbol.

    Lifecycle:
        await feed.connect()
        channel = await feed.subscribe("ETHBTC")
        # ... updates arrive on channel ...
        await feed.unsubscribe("ETHBTC")   # closes channel
        await feed.close()                 # closes every remaining channel

    Messages that cannot be decoded are reported on `errors` and do not affect
    any subscription.
    """

    errors: TickerChannel[DecodeError]

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying transport. Must be called before subscribe()."""

    @abstractmethod
    async def subscribe(self, symbol: str) -> TickerChannel[RawTicker]:
        """Start receiving ticker updates for a symbol.

        Raises SubscriptionFailed if the exchange does not acknowledge.
        """

    @abstractmethod
    async def unsubscribe(self, symbol: str) -> None:
        """Stop updates for a symbol and close its channel.

        The channel is closed even if the exchange rejects the request.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the transport and every open channel. Safe to call multiple times."""
