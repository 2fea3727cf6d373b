"""Shared price table reconciling streaming and polled updates."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from typing import Callable

from ..providers.base import PriceRecord, PriceUpdate


logger = logging.getLogger(__name__)

PriceListener = Callable[[PriceUpdate], None]


class PriceTable:
    """
    Canonical last-known price per symbol.

    A record replaces the current entry only if its ``observed_at`` is not
    older than the current entry's ``observed_at`` minus ``tolerance_seconds``.
    Stream and poll are peers: among non-stale writes the last arrival wins.
    Unknown prices are never stored, so a symbol never regresses to zero.
    """

    def __init__(self, tolerance_seconds: float = 1.0, clock: Callable[[], float] = time.time):
        self.tolerance_seconds = tolerance_seconds
        self.clock = clock
        self._records: dict[str, PriceRecord] = {}
        self._listeners: list[PriceListener] = []
        self._lock = threading.RLock()
        self.rejected = 0

    def apply(self, record: PriceRecord) -> bool:
        """Apply a record. Returns True if the table changed."""
        if not record.is_known:
            logger.debug(f"Ignoring unknown price for {record.symbol}")
            return False

        with self._lock:
            current = self._records.get(record.symbol)
            if current is not None:
                if record.observed_at < current.observed_at - self.tolerance_seconds:
                    self.rejected += 1
                    logger.debug(
                        f"Rejected stale {record.source.value} price for {record.symbol}: "
                        f"observed_at={record.observed_at:.3f} < {current.observed_at:.3f}"
                    )
                    return False
                if record.observed_at < current.observed_at:
                    # Accepted within tolerance: keep the symbol's timeline monotonic
                    record = dataclasses.replace(record, observed_at=current.observed_at)

            self._records[record.symbol] = record
            self._notify(PriceUpdate(
                symbol=record.symbol,
                price=record.price,
                source=record.source,
                observed_at=record.observed_at,
            ))
            return True

    def _notify(self, update: PriceUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as e:
                logger.error(f"Price listener failed for {update.symbol}: {e}", exc_info=True)

    def subscribe(self, listener: PriceListener) -> Callable[[], None]:
        """Register a listener fired on every accepted write. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get_price(self, symbol: str) -> float | None:
        record = self._records.get(symbol)
        return record.price if record is not None else None

    def get_record(self, symbol: str) -> PriceRecord | None:
        return self._records.get(symbol)

    def get_all_prices(self) -> dict[str, float]:
        with self._lock:
            return {symbol: record.price for symbol, record in self._records.items()}

    def snapshot(self) -> dict[str, PriceRecord]:
        with self._lock:
            return dict(self._records)

    def age(self, symbol: str) -> float | None:
        """Seconds since the symbol's price was observed, or None if never seen."""
        record = self._records.get(symbol)
        if record is None:
            return None
        return max(0.0, self.clock() - record.observed_at)

    def stale_symbols(self, max_age: float) -> list[str]:
        now = self.clock()
        with self._lock:
            return sorted(
                symbol for symbol, record in self._records.items()
                if now - record.observed_at > max_age
            )

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._records
