"""Read-through resolver: serves lookups from the store, fills misses from the quote source."""

from __future__ import annotations

import logging

from .cache import SummaryStore
from .errors import UpstreamUnavailable
from .interface import QuoteSource
from .models import TickerSummary
from .reference import ReferenceData

logger = logging.getLogger(__name__)


class SummaryResolver:
    """Lookup entry point for the HTTP layer.

    A hit returns the cached summary as-is; the only freshness mechanism is
    the push feed overwriting entries. A miss fetches from the quote source,
    enriches, and caches the result only for supported symbols.

    The miss path is a plain check-then-act: two concurrent misses for the
    same symbol both fetch and both write, and the later write wins.
    """

    def __init__(
        self,
        store: SummaryStore,
        source: QuoteSource,
        reference: ReferenceData,
    ) -> None:
        self._store = store
        self._source = source
        self._reference = reference

    async def lookup(self, symbol: str) -> TickerSummary:
        """Summary for a symbol. Raises UpstreamUnavailable if a miss cannot be filled."""
        symbol = symbol.upper().strip()

        cached = self._store.get(symbol)
        if cached is not None:
            return cached

        try:
            raw = await self._source.fetch_quote(symbol)
        except UpstreamUnavailable:
            raise
        except Exception as e:
            raise UpstreamUnavailable(str(e) or type(e).__name__, symbol=symbol) from e

        summary = TickerSummary.from_raw(raw, self._reference)
        if self._reference.is_supported(summary.symbol):
            self._store.set(summary.symbol, summary)
        else:
            logger.debug("Not caching %s: not a supported symbol", summary.symbol)
        return summary

    def all_cached(self) -> list[TickerSummary]:
        """Every cached summary. Raises EmptyCache before the first write."""
        return self._store.get_all()
