"""Polling aggregator: one batched refresh across every held symbol."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from ..errors import UpstreamUnavailable
from ..providers.adapters import PriceAdapter
from ..providers.base import AssetType, PriceRecord
from .table import PriceTable


logger = logging.getLogger(__name__)


class HasSymbol(Protocol):
    symbol: str
    asset_type: AssetType


@dataclass
class CycleReport:
    """Outcome of one polling cycle."""
    attempted: int = 0
    fetched: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    unsupported: list[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return self.attempted > 0 and not self.fetched


class PollingAggregator:
    """
    Partitions holdings by asset type and dispatches each partition to its
    adapter concurrently, with at most ``max_concurrency`` in-flight fetches
    per asset class. Failed symbols are omitted from the result and their
    table entries are left untouched.
    """

    def __init__(
        self,
        adapters: dict[AssetType, PriceAdapter],
        table: PriceTable,
        max_concurrency: int = 5,
    ):
        self.adapters = adapters
        self.table = table
        self.max_concurrency = max(1, max_concurrency)
        self._semaphores: dict[AssetType, asyncio.Semaphore] = {}
        self.last_report = CycleReport()

    def _semaphore(self, asset_type: AssetType) -> asyncio.Semaphore:
        if asset_type not in self._semaphores:
            self._semaphores[asset_type] = asyncio.Semaphore(self.max_concurrency)
        return self._semaphores[asset_type]

    @staticmethod
    def partition(holdings: Iterable[HasSymbol]) -> dict[AssetType, list[str]]:
        """Group unique symbols by asset type, preserving first-seen order."""
        groups: dict[AssetType, list[str]] = defaultdict(list)
        for holding in holdings:
            symbols = groups[holding.asset_type]
            if holding.symbol not in symbols:
                symbols.append(holding.symbol)
        return dict(groups)

    async def refresh_all(self, holdings: Iterable[HasSymbol]) -> dict[str, float]:
        """
        Run one polling cycle.

        Returns:
            Current table price for every symbol fetched successfully this cycle
        """
        report = CycleReport()
        tasks: list[asyncio.Task] = []

        for asset_type, symbols in self.partition(holdings).items():
            adapter = self.adapters.get(asset_type)
            if adapter is None:
                logger.debug(f"No adapter for {asset_type.value}; skipping {symbols}")
                report.unsupported.extend(symbols)
                continue
            semaphore = self._semaphore(asset_type)
            for symbol in symbols:
                report.attempted += 1
                tasks.append(asyncio.create_task(self._fetch_one(adapter, symbol, semaphore, report)))

        if tasks:
            await asyncio.gather(*tasks)

        self.last_report = report
        if report.failed:
            logger.warning(
                f"Polling cycle: {len(report.fetched)}/{report.attempted} fetched, "
                f"failed: {report.failed}"
            )

        prices: dict[str, float] = {}
        for symbol in report.fetched:
            price = self.table.get_price(symbol)
            if price is not None:
                prices[symbol] = price
        return prices

    async def _fetch_one(
        self,
        adapter: PriceAdapter,
        symbol: str,
        semaphore: asyncio.Semaphore,
        report: CycleReport,
    ) -> None:
        async with semaphore:
            try:
                record: PriceRecord = await adapter.fetch_price(symbol)
            except UpstreamUnavailable as e:
                logger.warning(str(e))
                report.failed.append(symbol)
                return
            except Exception as e:
                logger.error(f"Adapter error for {symbol}: {e}", exc_info=True)
                report.failed.append(symbol)
                return

        report.fetched.append(symbol)
        if not self.table.apply(record):
            report.rejected.append(symbol)
