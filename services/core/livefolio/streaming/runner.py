"""Price service: owns the price engine components and their lifecycle."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable

from ..cache.fetch_cache import FetchCache
from ..config import Settings
from ..providers.adapters import PriceAdapter, build_adapters
from ..providers.base import (
    AssetType,
    HoldingRef,
    HoldingsRepository,
    PriceRecord,
    PriceSource,
    PriceUpdate,
    is_valid_price,
)
from ..providers.http import HttpClient
from .aggregator import HasSymbol, PollingAggregator
from .binance_ws import BinanceTickerStream
from .status import ConnectionStatus, ConnectionStatusPublisher
from .table import PriceTable


logger = logging.getLogger(__name__)


@dataclass
class PriceSnapshot:
    """What UI collaborators see: prices plus connectivity and offline markers."""
    prices: dict[str, float]
    records: dict[str, PriceRecord]
    status: ConnectionStatus
    offline: bool
    stale: list[str] = field(default_factory=list)
    as_of: float = 0.0


class PriceService:
    """
    Explicitly constructed price engine.

    Polling and streaming both write into one PriceTable; consumers read only
    from the table via ``get_price`` / ``get_all_prices`` / subscriptions.
    ``dispose()`` closes the stream, stops every timer and the HTTP session.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: HoldingsRepository | None = None,
        table: PriceTable | None = None,
        cache: FetchCache | None = None,
        http: HttpClient | None = None,
        adapters: dict[AssetType, PriceAdapter] | None = None,
        stream: BinanceTickerStream | None = None,
        publisher: ConnectionStatusPublisher | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.store = store
        self.clock = clock
        self.table = table or PriceTable(settings.reconcile_tolerance_seconds, clock)
        self.cache = cache or FetchCache(settings.cache_sweep_seconds, clock)
        self.http = http or HttpClient(settings.request_timeout_seconds)
        self.publisher = publisher or ConnectionStatusPublisher()
        self.adapters = adapters if adapters is not None else build_adapters(settings, self.http, self.cache, clock)
        self.aggregator = PollingAggregator(self.adapters, self.table, settings.max_concurrency_per_class)
        self.stream = stream or BinanceTickerStream(
            self.table,
            url=settings.stream_url,
            quote=settings.crypto_quote,
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
        )
        self.stream.on_state = self.publisher.set_stream_state

        self.tasks: list[asyncio.Task] = []
        self._active = asyncio.Event()
        self._active.set()
        self._started = False
        self.offline = False

    @classmethod
    def create(cls, settings: Settings, store: HoldingsRepository | None = None) -> "PriceService":
        return cls(settings, store=store)

    async def __aenter__(self) -> "PriceService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.dispose()

    # Lifecycle

    async def start(self) -> None:
        """Start the cache sweep and, with a holdings store, eager refresh, stream and polling loop."""
        if self._started:
            return
        self._started = True
        logger.info("Starting price service...")

        await self.cache.start()

        if self.store is None:
            logger.info("No holdings store configured; polling loop not started.")
            return

        await self.seed_from_store()

        if self.settings.poll_on_start:
            await self._safe_refresh()

        if self.settings.stream_enabled:
            holdings = await self.store.list_holdings()
            crypto = sorted({h.symbol for h in holdings if h.asset_type == AssetType.CRYPTO})
            if crypto:
                await self.initialize_streaming_connection(crypto)

        self.tasks.append(asyncio.create_task(self._poll_loop()))
        logger.info(f"Price service started (poll every {self.settings.poll_interval_seconds}s).")

    async def dispose(self) -> None:
        """Stop all timers and close every connection."""
        logger.info("Stopping price service...")
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()

        await self.stream.close()
        await self.cache.stop()
        await self.http.close()
        self._started = False
        logger.info("Price service stopped.")

    def set_active(self, active: bool) -> None:
        """Host-driven pause/resume of the polling loop (e.g. page hidden/visible)."""
        if active:
            self._active.set()
        else:
            self._active.clear()
        logger.info(f"Polling {'resumed' if active else 'paused'}")

    @property
    def active(self) -> bool:
        return self._active.is_set()

    # Operations

    async def fetch_multiple_prices(self, holdings: Iterable[HasSymbol]) -> dict[str, float]:
        """Run one polling cycle and return merged current prices for the fetched symbols."""
        prices = await self.aggregator.refresh_all(holdings)
        report = self.aggregator.last_report
        if report.attempted:
            self.offline = report.all_failed
            self.publisher.set_upstream_available(not self.offline)
        return prices

    async def refresh_holdings(self) -> dict[str, float]:
        """Poll every stored holding and push changed prices back to the store."""
        if self.store is None:
            return {}
        holdings = await self.store.list_holdings()
        prices = await self.fetch_multiple_prices(
            HoldingRef(symbol=h.symbol, asset_type=h.asset_type) for h in holdings
        )

        if self.settings.sync_holdings:
            for holding in holdings:
                record = self.table.get_record(holding.symbol)
                if record is None or holding.symbol not in prices:
                    continue
                if holding.current_price == record.price:
                    continue
                await self.store.update_holding_price(holding.id, record.price, record.observed_at)
        return prices

    async def seed_from_store(self) -> int:
        """
        Load last-known prices from the holdings store into the table.

        Seeded records are tagged ``cache`` and keep the stored ``updated_at``,
        so any fresher poll or stream write supersedes them.

        Returns:
            Number of symbols seeded
        """
        if self.store is None:
            return 0
        try:
            holdings = await self.store.list_holdings()
        except Exception as e:
            logger.error(f"Could not read holdings for price seeding: {e}", exc_info=True)
            return 0

        seeded = 0
        for holding in holdings:
            if not is_valid_price(holding.current_price) or holding.updated_at is None:
                continue
            record = PriceRecord(
                symbol=holding.symbol,
                price=float(holding.current_price),
                source=PriceSource.CACHE,
                observed_at=holding.updated_at,
                asset_type=holding.asset_type,
                provider="store",
            )
            if self.table.apply(record):
                seeded += 1
        if seeded:
            logger.info(f"Seeded {seeded} last-known prices from holdings store")
        return seeded

    async def initialize_streaming_connection(self, symbols: Iterable[str]) -> None:
        await self.stream.start(symbols)

    async def close_streaming_connection(self) -> None:
        await self.stream.close()

    def subscribe_to_connection_status(self, callback: Callable[[ConnectionStatus], None]) -> Callable[[], None]:
        return self.publisher.subscribe(callback)

    def subscribe_to_price_updates(self, callback: Callable[[PriceUpdate], None]) -> Callable[[], None]:
        return self.table.subscribe(callback)

    def get_price(self, symbol: str) -> float | None:
        return self.table.get_price(symbol)

    def get_all_prices(self) -> dict[str, float]:
        return self.table.get_all_prices()

    def snapshot(self) -> PriceSnapshot:
        records = self.table.snapshot()
        return PriceSnapshot(
            prices={symbol: record.price for symbol, record in records.items()},
            records=records,
            status=self.publisher.status,
            offline=self.offline,
            stale=self.table.stale_symbols(self.settings.stale_after_seconds),
            as_of=self.clock(),
        )

    # Internals

    async def _safe_refresh(self) -> None:
        try:
            await self.refresh_holdings()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Polling cycle failed: {e}", exc_info=True)

    async def _poll_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.settings.poll_interval_seconds)
                await self._active.wait()
                await self._safe_refresh()
        except asyncio.CancelledError:
            logger.info("Polling loop cancelled.")
            raise
