"""Thread-safe in-memory summary store with striped locking."""

from __future__ import annotations

from threading import Lock

from .errors import EmptyCache
from .models import TickerSummary

DEFAULT_STRIPES = 16


class _Stripe:
    """One shard of the store: its own lock and its own dict."""

    __slots__ = ("lock", "entries", "writes")

    def __init__(self) -> None:
        self.lock = Lock()
        self.entries: dict[str, TickerSummary] = {}
        self.writes = 0


class SummaryStore:
    """Latest TickerSummary per symbol, shared by the resolver and the feed coordinator.

    Writers: SummaryResolver (cache misses) and FeedCoordinator (push updates).
    Readers: HTTP lookups, the SSE stream.

    Symbols hash onto independent stripes, so a writer for one symbol never
    blocks readers or writers that land on another stripe. Records are frozen,
    so a reader always sees a whole record. Conflicts are last-write-wins with
    no timestamp comparison.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._stripes = [_Stripe() for _ in range(stripes)]

    def _stripe(self, symbol: str) -> _Stripe:
        return self._stripes[hash(symbol) % len(self._stripes)]

    def get(self, symbol: str) -> TickerSummary | None:
        """Latest summary for a symbol, or None if nothing has been written."""
        stripe = self._stripe(symbol)
        with stripe.lock:
            return stripe.entries.get(symbol)

    def set(self, symbol: str, summary: TickerSummary) -> TickerSummary | None:
        """Replace the entry for a symbol. Returns the previous summary, if any."""
        stripe = self._stripe(symbol)
        with stripe.lock:
            previous = stripe.entries.get(symbol)
            stripe.entries[symbol] = summary
            stripe.writes += 1
            return previous

    def get_all(self) -> list[TickerSummary]:
        """Every stored summary, in no particular order.

        Raises EmptyCache when nothing has been stored yet.
        """
        summaries: list[TickerSummary] = []
        for stripe in self._stripes:
            with stripe.lock:
                summaries.extend(stripe.entries.values())
        if not summaries:
            raise EmptyCache()
        return summaries

    @property
    def version(self) -> int:
        """Total number of writes so far. Useful for SSE change detection."""
        return sum(stripe.writes for stripe in self._stripes)

    def __len__(self) -> int:
        total = 0
        for stripe in self._stripes:
            with stripe.lock:
                total += len(stripe.entries)
        return total

    def __contains__(self, symbol: str) -> bool:
        stripe = self._stripe(symbol)
        with stripe.lock:
            return symbol in stripe.entries
