"""Tests for SummaryResolver (read-through miss path)."""

import asyncio

import pytest

from app.quotes.errors import EmptyCache, UpstreamUnavailable
from app.quotes.models import TickerSummary
from app.quotes.resolver import SummaryResolver


@pytest.mark.asyncio
class TestSummaryResolver:
    """Unit tests for lookups against a fake quote source."""

    async def test_miss_fetches_and_caches(self, store, source, reference):
        """Test that a miss fetches, enriches and caches the summary."""
        resolver = SummaryResolver(store, source, reference)

        summary = await resolver.lookup("ETHBTC")

        assert summary.last == 0.033
        assert summary.ask == 0.034
        assert summary.fee_currency == "BTC"
        assert summary.full_name == "Bitcoin"
        assert summary.timestamp is not None
        assert store.get("ETHBTC") == summary
        assert source.fetch_calls == ["ETHBTC"]

    async def test_hit_skips_fetch(self, store, source, reference):
        """A cached summary is returned as-is, with no freshness check."""
        cached = TickerSummary(symbol="ETHBTC", last=0.031)
        store.set("ETHBTC", cached)
        resolver = SummaryResolver(store, source, reference)

        assert await resolver.lookup("ETHBTC") is cached
        assert source.fetch_calls == []

    async def test_second_lookup_is_served_from_cache(self, store, source, reference):
        """Test that a repeated lookup does not fetch again."""
        resolver = SummaryResolver(store, source, reference)
        first = await resolver.lookup("ETHBTC")
        second = await resolver.lookup("ETHBTC")
        assert first is second
        assert source.fetch_calls == ["ETHBTC"]

    async def test_symbol_is_normalized(self, store, source, reference):
        """Test that symbols are stripped and upper-cased."""
        resolver = SummaryResolver(store, source, reference)
        summary = await resolver.lookup("  ethbtc ")
        assert summary.symbol == "ETHBTC"
        assert source.fetch_calls == ["ETHBTC"]

    async def test_unsupported_symbol_is_returned_but_not_cached(self, store, source, reference):
        """Unsupported symbols are resolved but never stored."""
        resolver = SummaryResolver(store, source, reference)

        summary = await resolver.lookup("XRPBTC")

        assert summary.last == 0.0000095
        assert summary.fee_currency == "BTC"
        assert "XRPBTC" not in store
        with pytest.raises(EmptyCache):
            resolver.all_cached()

    async def test_unsupported_symbol_fetches_every_time(self, store, source, reference):
        """Test that unsupported symbols are fetched on every lookup."""
        resolver = SummaryResolver(store, source, reference)
        await resolver.lookup("XRPBTC")
        await resolver.lookup("XRPBTC")
        assert source.fetch_calls == ["XRPBTC", "XRPBTC"]

    async def test_upstream_error_propagates(self, store, source, reference):
        """Test that UpstreamUnavailable reaches the caller unchanged."""
        error = UpstreamUnavailable("HTTP 503", symbol="ETHBTC")
        source.fail_with = error
        resolver = SummaryResolver(store, source, reference)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await resolver.lookup("ETHBTC")

        assert exc_info.value is error
        assert "ETHBTC" not in store

    async def test_unexpected_source_error_is_wrapped(self, store, source, reference):
        """Test that other source errors are wrapped in UpstreamUnavailable."""
        source.fail_with = ConnectionResetError("peer reset")
        resolver = SummaryResolver(store, source, reference)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await resolver.lookup("ETHBTC")

        assert exc_info.value.symbol == "ETHBTC"
        assert isinstance(exc_info.value.__cause__, ConnectionResetError)

    async def test_concurrent_misses_each_fetch(self, store, source, reference):
        """No request coalescing: every concurrent miss fetches; one entry remains."""
        source.delay = 0.01
        resolver = SummaryResolver(store, source, reference)

        results = await asyncio.gather(*(resolver.lookup("ETHBTC") for _ in range(5)))

        assert len(source.fetch_calls) == 5
        assert all(r == results[0] for r in results)
        assert len(store) == 1
        assert store.get("ETHBTC") == results[0]

    async def test_all_cached_empty(self, store, source, reference):
        """Test that all_cached() raises EmptyCache before any write."""
        resolver = SummaryResolver(store, source, reference)
        with pytest.raises(EmptyCache):
            resolver.all_cached()

    async def test_all_cached(self, store, source, reference):
        """Test that all_cached() returns every stored summary."""
        resolver = SummaryResolver(store, source, reference)
        await resolver.lookup("ETHBTC")
        await resolver.lookup("LTCBTC")
        assert {s.symbol for s in resolver.all_cached()} == {"ETHBTC", "LTCBTC"}
