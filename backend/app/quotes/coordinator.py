"""Per-symbol supervision of the live ticker feed."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from .cache import SummaryStore
from .channel import TickerChannel
from .errors import SubscriptionFailed
from .interface import TickerFeed
from .models import RawTicker, TickerSummary
from .reference import ReferenceData

logger = logging.getLogger(__name__)


class FeedState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    CLOSING = "closing"


@dataclass
class _Subscription:
    symbol: str
    channel: TickerChannel[RawTicker]
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None


class FeedCoordinator:
    """Keeps one listening task per subscribed symbol and merges updates into the store.

    Push updates always overwrite the stored summary (no read before write),
    gated only by supported-symbol membership. Each listener talks to the rest
    of the system through the store, its channel and its stop event.

    Lifecycle:
        coordinator = FeedCoordinator(store, feed, reference)
        failures = await coordinator.start()   # every supported symbol
        # ... app runs ...
        await coordinator.unsubscribe("ETHBTC")
        # ... app shutting down ...
        await coordinator.stop()
    """

    def __init__(
        self,
        store: SummaryStore,
        feed: TickerFeed,
        reference: ReferenceData,
    ) -> None:
        self._store = store
        self._feed = feed
        self._reference = reference
        self._subscriptions: dict[str, _Subscription] = {}
        # Stop events for subscribes still waiting on the transport
        self._subscribing: dict[str, asyncio.Event] = {}
        self._states: dict[str, FeedState] = {}
        self._error_task: asyncio.Task | None = None
        self.decode_errors = 0

    # --- Public API ---

    async def start(self, symbols: Iterable[str] | None = None) -> dict[str, SubscriptionFailed]:
        """Subscribe to every given symbol (default: every supported symbol).

        A failed subscription is logged and returned; it never stops the
        remaining symbols from being subscribed.
        """
        if symbols is None:
            symbols = self._reference.symbols

        if self._error_task is None or self._error_task.done():
            self._error_task = asyncio.create_task(self._drain_errors(), name="ticker-decode-errors")

        failures: dict[str, SubscriptionFailed] = {}
        requested = 0
        for symbol in symbols:
            requested += 1
            try:
                await self.subscribe(symbol)
            except SubscriptionFailed as e:
                logger.warning("Feed: %s", e)
                failures[symbol] = e

        logger.info(
            "Feed coordinator started: %d/%d symbols active",
            requested - len(failures),
            requested,
        )
        return failures

    async def subscribe(self, symbol: str) -> None:
        """Open the push subscription for a symbol and start its listener.

        No-op if the symbol is already subscribed or subscribing. Raises
        SubscriptionFailed if the transport refuses. If unsubscribe() or stop()
        arrives while the transport is still answering, the new subscription is
        torn down as soon as it is granted and no listener is started.
        """
        if self.state(symbol) is not FeedState.UNSUBSCRIBED:
            return

        self._states[symbol] = FeedState.SUBSCRIBING
        stop = asyncio.Event()
        self._subscribing[symbol] = stop
        try:
            channel = await self._feed.subscribe(symbol)
        except SubscriptionFailed:
            self._states[symbol] = FeedState.UNSUBSCRIBED
            raise
        except Exception as e:
            self._states[symbol] = FeedState.UNSUBSCRIBED
            raise SubscriptionFailed(symbol, str(e) or type(e).__name__) from e
        finally:
            self._subscribing.pop(symbol, None)

        sub = _Subscription(symbol=symbol, channel=channel, stop=stop)
        self._subscriptions[symbol] = sub
        if stop.is_set():
            logger.debug("Feed: %s stopped while subscribing", symbol)
            await self._teardown(sub)
            return
        self._states[symbol] = FeedState.ACTIVE
        sub.task = asyncio.create_task(self._listen(sub), name=f"ticker-feed-{symbol}")
        logger.debug("Feed: subscribed %s", symbol)

    async def unsubscribe(self, symbol: str) -> None:
        """Stop the listener for a symbol and tear down its subscription. No-op if absent.

        A subscribe still in flight is only flagged; it tears itself down once granted.
        """
        pending = self._subscribing.get(symbol)
        if pending is not None:
            pending.set()
            return
        sub = self._subscriptions.get(symbol)
        if sub is None:
            return
        sub.stop.set()
        if sub.task is not None:
            await asyncio.gather(sub.task, return_exceptions=True)

    async def stop(self) -> None:
        """Shut down every listener. Safe to call multiple times."""
        for pending in self._subscribing.values():
            pending.set()
        subs = list(self._subscriptions.values())
        for sub in subs:
            sub.stop.set()
        tasks = [sub.task for sub in subs if sub.task is not None]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, Exception):
                logger.error("Feed: listener %s failed: %s", task.get_name(), result)

        if self._error_task and not self._error_task.done():
            self._error_task.cancel()
            try:
                await self._error_task
            except asyncio.CancelledError:
                pass
        self._error_task = None
        if subs:
            logger.info("Feed coordinator stopped: %d subscriptions closed", len(subs))

    def state(self, symbol: str) -> FeedState:
        return self._states.get(symbol, FeedState.UNSUBSCRIBED)

    def active_symbols(self) -> list[str]:
        return [s for s, state in self._states.items() if state is FeedState.ACTIVE]

    # --- Internals ---

    async def _listen(self, sub: _Subscription) -> None:
        """Drain one symbol's channel until stopped or closed by the transport."""
        stopped = asyncio.create_task(sub.stop.wait())
        received: asyncio.Task | None = None
        try:
            while True:
                received = asyncio.create_task(sub.channel.get())
                await asyncio.wait({received, stopped}, return_when=asyncio.FIRST_COMPLETED)

                # Shutdown wins over a record that became ready at the same time
                if sub.stop.is_set():
                    received.cancel()
                    break

                update = received.result()
                if update is None:
                    logger.warning("Feed: channel for %s closed by transport", sub.symbol)
                    break
                self._apply(sub.symbol, update)
        finally:
            stopped.cancel()
            if received is not None:
                received.cancel()
            await self._teardown(sub)

    def _apply(self, symbol: str, update: RawTicker) -> None:
        summary = TickerSummary.from_raw(update, self._reference)
        if self._reference.is_supported(summary.symbol):
            self._store.set(summary.symbol, summary)
            logger.debug("Feed: %s last=%s", summary.symbol, summary.last)

    async def _teardown(self, sub: _Subscription) -> None:
        self._states[sub.symbol] = FeedState.CLOSING
        # A channel the transport already closed has nothing left to unsubscribe
        if not sub.channel.closed:
            try:
                await self._feed.unsubscribe(sub.symbol)
            except Exception as e:
                logger.warning("Feed: unsubscribe %s failed: %s", sub.symbol, e)
        sub.channel.close()

        if self._subscriptions.get(sub.symbol) is sub:
            del self._subscriptions[sub.symbol]
        self._states[sub.symbol] = FeedState.UNSUBSCRIBED
        logger.debug("Feed: unsubscribed %s", sub.symbol)

    async def _drain_errors(self) -> None:
        """Log decode errors reported by the transport. They never end a subscription."""
        async for error in self._feed.errors:
            self.decode_errors += 1
            logger.warning("Feed: %s", error)
