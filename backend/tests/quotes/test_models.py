"""Tests for the ticker data models."""

from datetime import datetime, timezone

import pytest

from app.quotes.models import (
    CurrencyInfo,
    RawTicker,
    SymbolInfo,
    TickerSummary,
    parse_decimal,
    parse_timestamp,
)
from app.quotes.reference import ReferenceData


class TestParsing:
    """Unit tests for wire value conversion."""

    def test_parse_decimal(self):
        """Test that decimal strings parse to floats."""
        assert parse_decimal("100.5") == 100.5
        assert parse_decimal("0.00000095") == 0.00000095

    def test_parse_decimal_degrades_to_zero(self):
        """Malformed or missing numbers become 0.0 instead of failing."""
        assert parse_decimal("abc") == 0.0
        assert parse_decimal("") == 0.0
        assert parse_decimal(None) == 0.0
        assert parse_decimal({"nested": 1}) == 0.0

    def test_parse_timestamp(self):
        """Test that ISO-8601 Z timestamps parse as aware datetimes."""
        ts = parse_timestamp("2017-05-12T14:57:19.999Z")
        assert ts == datetime(2017, 5, 12, 14, 57, 19, 999000, tzinfo=timezone.utc)

    def test_parse_timestamp_invalid(self):
        """Test that unparseable timestamps become None."""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None


class TestRawTicker:
    """Unit tests for RawTicker decoding."""

    def test_from_dict(self):
        """Test that wire keys map onto RawTicker fields."""
        raw = RawTicker.from_dict(
            {
                "ask": "0.050043",
                "bid": "0.050042",
                "last": "0.050042",
                "open": "0.047800",
                "low": "0.047052",
                "high": "0.051679",
                "volume": "36456.720",
                "volumeQuote": "1782.625000",
                "timestamp": "2017-05-12T14:57:19.999Z",
                "symbol": "ETHBTC",
            }
        )
        assert raw.symbol == "ETHBTC"
        assert raw.volume_quote == "1782.625000"
        assert raw.timestamp == "2017-05-12T14:57:19.999Z"

    def test_missing_symbol_rejected(self):
        """Test that a ticker without a symbol raises KeyError."""
        with pytest.raises(KeyError):
            RawTicker.from_dict({"last": "1.0"})
        with pytest.raises(KeyError):
            RawTicker.from_dict({"symbol": "", "last": "1.0"})

    def test_non_mapping_rejected(self):
        """Test that a non-mapping payload raises TypeError."""
        with pytest.raises(TypeError):
            RawTicker.from_dict(["ETHBTC"])


class TestTickerSummary:
    """Unit tests for the TickerSummary model."""

    def test_from_raw_converts_and_enriches(self):
        """Test that from_raw() parses numbers and adds enrichment."""
        reference = ReferenceData(
            symbols=("ETHBTC",),
            fee_currencies={"ETHBTC": "BTC"},
            full_names={"BTC": "Bitcoin"},
        )
        raw = RawTicker(symbol="ETHBTC", last="100.5", ask="101.0", bid="100.0", volume_quote="12")
        summary = TickerSummary.from_raw(raw, reference)

        assert summary.last == 100.5
        assert summary.ask == 101.0
        assert summary.bid == 100.0
        assert summary.volume_quote == 12.0
        assert summary.fee_currency == "BTC"
        assert summary.full_name == "Bitcoin"
        assert summary.timestamp is None

    def test_partial_data_is_kept(self):
        """A bad field becomes zero; the rest of the record survives."""
        raw = RawTicker(symbol="ETHBTC", last="0.035", ask="not-a-number")
        summary = TickerSummary.from_raw(raw, ReferenceData())
        assert summary.last == 0.035
        assert summary.ask == 0.0
        assert summary.fee_currency == ""
        assert summary.full_name == ""

    def test_id_mirrors_symbol(self):
        """Test that id is the symbol."""
        assert TickerSummary(symbol="ETHBTC").id == "ETHBTC"

    def test_to_dict(self):
        """Test that to_dict() uses the external key names."""
        summary = TickerSummary(
            symbol="ETHBTC",
            last=0.033,
            volume_quote=5.0,
            timestamp=datetime(2021, 4, 1, 10, 0, tzinfo=timezone.utc),
            fee_currency="BTC",
            full_name="Bitcoin",
        )
        result = summary.to_dict()

        assert result["id"] == "ETHBTC"
        assert result["symbol"] == "ETHBTC"
        assert result["last"] == 0.033
        assert result["volumeQuote"] == 5.0
        assert result["feeCurrency"] == "BTC"
        assert result["fullName"] == "Bitcoin"
        assert result["timestamp"] == "2021-04-01T10:00:00+00:00"

    def test_to_dict_without_timestamp(self):
        """Test that a missing timestamp serializes as None."""
        assert TickerSummary(symbol="ETHBTC").to_dict()["timestamp"] is None

    def test_immutability(self):
        """Test that TickerSummary is frozen."""
        summary = TickerSummary(symbol="ETHBTC", last=0.033)
        with pytest.raises(AttributeError):
            summary.last = 0.04


class TestListings:
    """Unit tests for listing records."""

    def test_symbol_info_from_dict(self):
        """Test that SymbolInfo reads the listing keys."""
        info = SymbolInfo.from_dict(
            {"id": "ETHBTC", "baseCurrency": "ETH", "quoteCurrency": "BTC", "feeCurrency": "BTC"}
        )
        assert info == SymbolInfo(id="ETHBTC", base_currency="ETH", quote_currency="BTC", fee_currency="BTC")

    def test_currency_info_from_dict(self):
        """Test that CurrencyInfo ignores extra keys."""
        info = CurrencyInfo.from_dict({"id": "BTC", "fullName": "Bitcoin", "crypto": True})
        assert info == CurrencyInfo(id="BTC", full_name="Bitcoin")
