"""Read-only reference data: the supported symbol set and enrichment lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .errors import UpstreamUnavailable
from .interface import QuoteSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceData:
    """Supported symbols plus the fee-currency and full-name lookups.

    Built once at startup and shared by reference with the resolver and the
    feed coordinator. Never mutated afterwards, so readers need no locking.
    """

    symbols: tuple[str, ...] = ()
    fee_currencies: Mapping[str, str] = field(default_factory=dict)
    full_names: Mapping[str, str] = field(default_factory=dict)
    _supported: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbols", tuple(self.symbols))
        object.__setattr__(self, "fee_currencies", MappingProxyType(dict(self.fee_currencies)))
        object.__setattr__(self, "full_names", MappingProxyType(dict(self.full_names)))
        object.__setattr__(self, "_supported", frozenset(self.symbols))

    def is_supported(self, symbol: str) -> bool:
        return symbol in self._supported

    def enrich(self, symbol: str) -> tuple[str, str]:
        """Return (fee_currency, full_name) for a symbol. Empty strings when unknown."""
        fee_currency = self.fee_currencies.get(symbol, "")
        full_name = self.full_names.get(fee_currency, "")
        return fee_currency, full_name


async def load_reference_data(
    source: QuoteSource,
    only: Iterable[str] | None = None,
) -> ReferenceData:
    """Populate ReferenceData from the exchange's symbol and currency listings.

    A failed listing is logged and leaves its part empty; startup carries on
    with whatever was loaded. `only` narrows the supported set to symbols that
    are both listed by the exchange and named in the allow-list.
    """
    allow = {s.strip().upper() for s in only if s.strip()} if only else None

    symbols: list[str] = []
    fee_currencies: dict[str, str] = {}
    try:
        for info in await source.list_symbols():
            fee_currencies[info.id] = info.fee_currency
            if allow is None or info.id in allow:
                symbols.append(info.id)
    except UpstreamUnavailable as e:
        logger.error("Could not load symbol listing: %s", e)

    full_names: dict[str, str] = {}
    try:
        for currency in await source.list_currencies():
            full_names[currency.id] = currency.full_name
    except UpstreamUnavailable as e:
        logger.error("Could not load currency listing: %s", e)

    logger.info(
        "Reference data loaded: %d supported symbols, %d currencies",
        len(symbols),
        len(full_names),
    )
    return ReferenceData(symbols=symbols, fee_currencies=fee_currencies, full_names=full_names)
