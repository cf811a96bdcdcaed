"""Error taxonomy for the quote service."""

from __future__ import annotations

from typing import Any


class QuoteServiceError(Exception):
    """Base class for all quote service errors."""


class UpstreamUnavailable(QuoteServiceError):
    """The remote quote source could not produce a result.

    Raised by quote sources and propagated unchanged to callers of
    SummaryResolver.lookup(). Never retried internally.
    """

    def __init__(self, reason: str, symbol: str | None = None) -> None:
        self.reason = reason
        self.symbol = symbol
        if symbol:
            super().__init__(f"quote source unavailable for {symbol}: {reason}")
        else:
            super().__init__(f"quote source unavailable: {reason}")


class SubscriptionFailed(QuoteServiceError):
    """A push subscription for one symbol could not be opened."""

    def __init__(self, symbol: str, reason: str) -> None:
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"subscription to {symbol} failed: {reason}")


class DecodeError(QuoteServiceError):
    """A single push message could not be parsed.

    Reported on the feed's error channel; the subscription keeps running.
    """

    def __init__(self, reason: str, payload: Any = None) -> None:
        self.reason = reason
        self.payload = payload
        super().__init__(f"could not decode ticker message: {reason}")


class EmptyCache(QuoteServiceError):
    """The summary store holds no entries yet. Expected before the first write."""

    def __init__(self) -> None:
        super().__init__("no data present")
