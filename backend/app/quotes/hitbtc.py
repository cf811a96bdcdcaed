"""HitBTC API v2 collaborators: REST quote source and JSON-RPC websocket ticker feed."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any

import httpx
import websockets

from .channel import TickerChannel
from .errors import DecodeError, SubscriptionFailed, UpstreamUnavailable
from .interface import QuoteSource, TickerFeed
from .models import CurrencyInfo, RawTicker, SymbolInfo

logger = logging.getLogger(__name__)

API_BASE = "https://api.hitbtc.com/api/2"
WS_URL = "wss://api.hitbtc.com/api/2/ws"


def _error_message(payload: Any) -> str | None:
    """Extract the message of a HitBTC error body ({"error": {"message": ...}})."""
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    error = payload["error"]
    if isinstance(error, dict):
        return str(error.get("message") or error.get("description") or error)
    return str(error)


class HitBtcRestClient(QuoteSource):
    """QuoteSource backed by the public HitBTC REST API.

    The request timeout bounds every fetch; there is no retry.
    """

    def __init__(
        self,
        base_url: str = API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
        )

    async def fetch_quote(self, symbol: str) -> RawTicker:
        symbol = symbol.upper()
        payload = await self._get(f"public/ticker/{symbol}", symbol=symbol)
        try:
            return RawTicker.from_dict(payload)
        except (KeyError, TypeError) as e:
            raise UpstreamUnavailable(f"malformed ticker: {e}", symbol=symbol) from e

    async def list_symbols(self) -> list[SymbolInfo]:
        payload = await self._get("public/symbol")
        try:
            return [SymbolInfo.from_dict(item) for item in payload]
        except (KeyError, TypeError) as e:
            raise UpstreamUnavailable(f"malformed symbol listing: {e}") from e

    async def list_currencies(self) -> list[CurrencyInfo]:
        payload = await self._get("public/currency")
        try:
            return [CurrencyInfo.from_dict(item) for item in payload]
        except (KeyError, TypeError) as e:
            raise UpstreamUnavailable(f"malformed currency listing: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, symbol: str | None = None) -> Any:
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{type(e).__name__}: {e}", symbol=symbol) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"invalid JSON from {path} (HTTP {response.status_code})", symbol=symbol
            ) from e

        message = _error_message(payload)
        if message is not None:
            raise UpstreamUnavailable(message, symbol=symbol)
        if response.is_error:
            raise UpstreamUnavailable(f"HTTP {response.status_code}", symbol=symbol)
        return payload


class HitBtcTickerFeed(TickerFeed):
    """TickerFeed over the HitBTC JSON-RPC 2.0 websocket.

    One socket carries every subscription. A reader task matches call results
    to pending requests by id and routes `ticker` notifications to the channel
    of their symbol. When the socket closes, pending calls fail and every
    channel is closed; reconnecting is left to whoever owns the feed.
    """

    def __init__(self, url: str = WS_URL, call_timeout: float = 10.0) -> None:
        self._url = url
        self._call_timeout = call_timeout
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future] = {}
        self._channels: dict[str, TickerChannel[RawTicker]] = {}
        self.errors: TickerChannel[DecodeError] = TickerChannel()

    async def connect(self) -> None:
        self._ws = await websockets.connect(self._url)
        self._reader = asyncio.create_task(self._read_loop(), name="hitbtc-ws-reader")
        logger.info("HitBTC websocket connected: %s", self._url)

    async def subscribe(self, symbol: str) -> TickerChannel[RawTicker]:
        # Register first: the first notification can arrive right behind the ack
        channel = self._channels.get(symbol)
        if channel is None:
            channel = TickerChannel()
            self._channels[symbol] = channel
        try:
            acknowledged = await self._call("subscribeTicker", {"symbol": symbol})
        except UpstreamUnavailable as e:
            self._drop_channel(symbol)
            raise SubscriptionFailed(symbol, e.reason) from e
        if acknowledged is not True:
            self._drop_channel(symbol)
            raise SubscriptionFailed(symbol, "subscription not acknowledged")
        return channel

    async def unsubscribe(self, symbol: str) -> None:
        try:
            acknowledged = await self._call("unsubscribeTicker", {"symbol": symbol})
            if acknowledged is not True:
                raise UpstreamUnavailable("unsubscribe not acknowledged", symbol=symbol)
        finally:
            self._drop_channel(symbol)

    async def close(self) -> None:
        if self._reader and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._reader = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._shutdown(UpstreamUnavailable("websocket closed"))
        self.errors.close()
        logger.info("HitBTC websocket closed")

    # --- Internal ---

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        """Send one JSON-RPC request and wait for its result."""
        if self._ws is None:
            raise UpstreamUnavailable("websocket is not connected")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._ws.send(json.dumps({"method": method, "params": params, "id": request_id}))
            return await asyncio.wait_for(future, self._call_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable(f"{method} timed out") from e
        except websockets.WebSocketException as e:
            raise UpstreamUnavailable(f"{method} failed: {e}") from e
        finally:
            self._pending.pop(request_id, None)

    async def _read_loop(self) -> None:
        try:
            async for message in self._ws:
                try:
                    self._dispatch(message)
                except Exception as e:
                    self.errors.put(DecodeError(f"{type(e).__name__}: {e}", payload=message))
        except websockets.ConnectionClosed as e:
            logger.warning("HitBTC websocket connection lost: %s", e)
        finally:
            self._shutdown(UpstreamUnavailable("websocket connection lost"))

    def _dispatch(self, message: str | bytes) -> None:
        """Route one incoming frame: call result, ticker notification, or decode error."""
        try:
            data = json.loads(message)
        except ValueError as e:
            self.errors.put(DecodeError(str(e), payload=message))
            return
        if not isinstance(data, dict):
            self.errors.put(DecodeError("frame is not an object", payload=data))
            return

        request_id = data.get("id")
        if request_id is not None:
            if not isinstance(request_id, int) or isinstance(request_id, bool):
                self.errors.put(DecodeError(f"bad call id: {request_id!r}", payload=data))
                return
            future = self._pending.get(request_id)
            if future is None or future.done():
                return
            error = _error_message(data)
            if error is not None:
                future.set_exception(UpstreamUnavailable(error))
            else:
                future.set_result(data.get("result"))
            return

        if data.get("method") == "ticker":
            try:
                update = RawTicker.from_dict(data.get("params"))
            except (KeyError, TypeError) as e:
                self.errors.put(DecodeError(f"bad ticker params: {e}", payload=data))
                return
            channel = self._channels.get(update.symbol)
            if channel is not None:
                channel.put(update)

    def _drop_channel(self, symbol: str) -> None:
        channel = self._channels.pop(symbol, None)
        if channel is not None:
            channel.close()

    def _shutdown(self, reason: UpstreamUnavailable) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(reason)
        self._pending.clear()
        for symbol in list(self._channels):
            self._drop_channel(symbol)
