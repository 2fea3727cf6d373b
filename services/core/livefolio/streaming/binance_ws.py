"""Binance WebSocket ticker channel feeding the price table."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Iterable

import websockets

from ..errors import StreamError, StreamTransportError, StreamUnexpectedClose
from ..providers.base import AssetType, PriceRecord, PriceSource, is_valid_price
from ..providers.symbols import binance_pair, normalize
from .status import StreamState
from .table import PriceTable


logger = logging.getLogger(__name__)


class BinanceTickerStream:
    """
    Maintains one combined-stream connection subscribed to ``<pair>@miniTicker``.

    State machine: disconnected -> connecting -> connected -> error -> (backoff)
    -> connecting ... ; ``close()`` moves to the terminal closed state. Every
    (re)connect resends the full symbol set.
    """

    def __init__(
        self,
        table: PriceTable,
        on_state: Callable[[StreamState], None] | None = None,
        url: str = "wss://stream.binance.com:9443/stream",
        quote: str = "USDT",
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        connect: Callable[..., Any] = websockets.connect,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """
        Args:
            table: Price table receiving ticks tagged ``stream``
            on_state: Called synchronously on every state transition
            url: Combined stream endpoint
            quote: Quote asset for pairs (BTC -> BTCUSDT)
            base_delay: First reconnect delay in seconds
            max_delay: Reconnect delay cap in seconds
            connect: websockets.connect compatible factory
            sleep: Backoff sleeper
        """
        self.table = table
        self.on_state = on_state
        self.url = url
        self.quote = quote.upper()
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._connect = connect
        self._sleep = sleep

        self.state = StreamState.DISCONNECTED
        self.reconnect_attempt = 0
        self.last_error: StreamError | None = None
        self._pairs: dict[str, str] = {}  # BTCUSDT -> BTC
        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._closed = False
        self._request_id = 0

    @property
    def symbols(self) -> set[str]:
        return set(self._pairs.values())

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect ``attempt`` (1-based): base * 2**(attempt-1), capped."""
        if attempt <= 0:
            return 0.0
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def _set_state(self, state: StreamState) -> None:
        if state == self.state:
            return
        logger.info(f"Binance stream {self.state.value} -> {state.value}")
        self.state = state
        if self.on_state is not None:
            self.on_state(state)

    async def start(self, symbols: Iterable[str]) -> None:
        """Open the channel for ``symbols`` (replacing any previous set)."""
        self._pairs = {binance_pair(s, self.quote): normalize(s) for s in symbols if s.strip()}
        self._closed = False

        if not self._pairs:
            logger.warning("No crypto symbols to stream. Binance stream not started.")
            return

        if self._task is not None and not self._task.done():
            if self.state == StreamState.CONNECTED and self._ws is not None:
                try:
                    await self._subscribe(self._ws)
                except (websockets.exceptions.WebSocketException, OSError) as e:
                    # The run loop reconnects and resends the full set
                    logger.warning(f"Binance resubscribe failed, waiting for reconnect: {e}")
            return

        self.reconnect_attempt = 0
        self._task = asyncio.create_task(self._run())

    async def close(self) -> None:
        """Close the channel; no further reconnects."""
        self._closed = True
        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing Binance WebSocket: {e}")
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._ws = None
        self._set_state(StreamState.CLOSED)

    async def _subscribe(self, ws: Any) -> None:
        self._request_id += 1
        params = [f"{pair.lower()}@miniTicker" for pair in sorted(self._pairs)]
        await ws.send(json.dumps({"method": "SUBSCRIBE", "params": params, "id": self._request_id}))
        logger.info(f"Subscribed to {len(params)} Binance tickers")

    async def _run(self) -> None:
        while not self._closed:
            self._set_state(StreamState.CONNECTING)
            try:
                async with self._connect(
                    self.url,
                    open_timeout=10,
                    close_timeout=10,
                    ping_interval=20,
                    ping_timeout=20,
                ) as ws:
                    self._ws = ws
                    await self._subscribe(ws)
                    self._set_state(StreamState.CONNECTED)
                    self.reconnect_attempt = 0

                    async for message in ws:
                        self.handle_message(message)

                    if self._closed:
                        break
                    raise StreamUnexpectedClose("server closed the stream")

            except asyncio.CancelledError:
                raise
            except StreamUnexpectedClose as e:
                self.last_error = e
            except (
                websockets.exceptions.WebSocketException,
                asyncio.TimeoutError,
                OSError,
            ) as e:
                self.last_error = StreamTransportError(str(e) or type(e).__name__)
            except Exception as e:
                logger.error(f"Unexpected error in Binance stream: {e}", exc_info=True)
                self.last_error = StreamTransportError(str(e))
            finally:
                self._ws = None

            if self._closed:
                break

            self._set_state(StreamState.ERROR)
            self.reconnect_attempt += 1
            delay = self.backoff_delay(self.reconnect_attempt)
            logger.warning(
                f"Binance stream error: {self.last_error}. "
                f"Reconnecting in {delay:.1f}s (attempt {self.reconnect_attempt})..."
            )
            await self._sleep(delay)

    def handle_message(self, message: str | bytes) -> PriceRecord | None:
        """Parse one frame and write it to the table. Malformed frames are logged and dropped."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse Binance message: {e}")
            return None

        if not isinstance(data, dict):
            return None

        # Subscription acks look like {"result": null, "id": 1}
        if "id" in data and "result" in data:
            return None

        payload = data.get("data", data)
        if not isinstance(payload, dict) or payload.get("e") != "24hrMiniTicker":
            return None

        try:
            pair = str(payload["s"]).upper()
            raw_price = payload["c"]
            event_ms = int(payload["E"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected message format from Binance: {e}")
            return None

        symbol = self._pairs.get(pair)
        if symbol is None or not is_valid_price(raw_price):
            return None

        record = PriceRecord(
            symbol=symbol,
            price=float(raw_price),
            source=PriceSource.STREAM,
            observed_at=event_ms / 1000.0,
            asset_type=AssetType.CRYPTO,
            provider="binance-ws",
            currency="USD",
        )
        self.table.apply(record)
        return record
