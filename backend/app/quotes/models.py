"""Data models for ticker summaries and exchange listings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .reference import ReferenceData


def parse_decimal(value: Any) -> float:
    """Convert a wire-encoded number to float. Missing or malformed values become 0.0.

    Partial ticker data is still useful, so a bad field degrades instead of
    failing the whole record.
    """
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 exchange timestamp ("2017-05-12T14:57:19.999Z")."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class RawTicker:
    """Ticker exactly as the exchange sends it: every field string-encoded."""

    symbol: str
    last: str | None = None
    ask: str | None = None
    bid: str | None = None
    open: str | None = None
    low: str | None = None
    high: str | None = None
    volume: str | None = None
    volume_quote: str | None = None
    timestamp: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawTicker:
        """Build from a REST ticker body or a websocket `ticker` params object.

        Raises KeyError when the payload has no symbol, TypeError when it is
        not a mapping.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a ticker object, got {type(data).__name__}")
        symbol = data["symbol"]
        if not symbol:
            raise KeyError("symbol")
        return cls(
            symbol=str(symbol),
            last=data.get("last"),
            ask=data.get("ask"),
            bid=data.get("bid"),
            open=data.get("open"),
            low=data.get("low"),
            high=data.get("high"),
            volume=data.get("volume"),
            volume_quote=data.get("volumeQuote"),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True, slots=True)
class TickerSummary:
    """Immutable market summary for one symbol, as held in the SummaryStore."""

    symbol: str
    last: float = 0.0
    ask: float = 0.0
    bid: float = 0.0
    open: float = 0.0
    low: float = 0.0
    high: float = 0.0
    volume: float = 0.0
    volume_quote: float = 0.0
    timestamp: datetime | None = None
    fee_currency: str = ""
    full_name: str = ""

    @property
    def id(self) -> str:
        """Same as symbol; kept for the external JSON shape."""
        return self.symbol

    @classmethod
    def from_raw(cls, raw: RawTicker, reference: ReferenceData) -> TickerSummary:
        """Convert a wire ticker to numeric form and enrich it from reference data."""
        fee_currency, full_name = reference.enrich(raw.symbol)
        return cls(
            symbol=raw.symbol,
            last=parse_decimal(raw.last),
            ask=parse_decimal(raw.ask),
            bid=parse_decimal(raw.bid),
            open=parse_decimal(raw.open),
            low=parse_decimal(raw.low),
            high=parse_decimal(raw.high),
            volume=parse_decimal(raw.volume),
            volume_quote=parse_decimal(raw.volume_quote),
            timestamp=parse_timestamp(raw.timestamp),
            fee_currency=fee_currency,
            full_name=full_name,
        )

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "fullName": self.full_name,
            "feeCurrency": self.fee_currency,
            "last": self.last,
            "ask": self.ask,
            "bid": self.bid,
            "open": self.open,
            "low": self.low,
            "high": self.high,
            "volume": self.volume,
            "volumeQuote": self.volume_quote,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True, slots=True)
class SymbolInfo:
    """One entry of the exchange's symbol listing."""

    id: str
    base_currency: str = ""
    quote_currency: str = ""
    fee_currency: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SymbolInfo:
        return cls(
            id=data["id"],
            base_currency=data.get("baseCurrency", ""),
            quote_currency=data.get("quoteCurrency", ""),
            fee_currency=data.get("feeCurrency", ""),
        )


@dataclass(frozen=True, slots=True)
class CurrencyInfo:
    """One entry of the exchange's currency listing."""

    id: str
    full_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CurrencyInfo:
        return cls(id=data["id"], full_name=data.get("fullName", ""))
