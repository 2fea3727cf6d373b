"""Tests for the price reconciliation table."""

import math
import random

import pytest

from livefolio.providers.base import AssetType, PriceRecord, PriceSource
from livefolio.streaming.table import PriceTable


def record(symbol="BTC", price=65000.0, observed_at=100.0, source=PriceSource.POLL):
    return PriceRecord(
        symbol=symbol,
        price=price,
        source=source,
        observed_at=observed_at,
        asset_type=AssetType.CRYPTO,
    )


class TestPriceRecord:

    @pytest.mark.parametrize("price", [0, 0.0, -5.0, math.nan, math.inf])
    def test_invalid_prices_rejected(self, price):
        with pytest.raises(ValueError):
            record(price=price)

    def test_unknown_price_allowed(self):
        r = record(price=None)
        assert not r.is_known


class TestReconciliation:

    def test_first_write_accepted(self):
        table = PriceTable()
        assert table.apply(record(price=65000.0)) is True
        assert table.get_price("BTC") == 65000.0

    def test_stream_tick_not_clobbered_by_older_poll(self):
        """Poll issued at t=90 arriving after a stream tick at t=100 is rejected."""
        table = PriceTable(tolerance_seconds=1.0)
        table.apply(record(price=65010.0, observed_at=100.0, source=PriceSource.STREAM))

        accepted = table.apply(record(price=64900.0, observed_at=90.0, source=PriceSource.POLL))

        assert accepted is False
        assert table.get_price("BTC") == 65010.0
        assert table.get_record("BTC").source == PriceSource.STREAM
        assert table.rejected == 1

    def test_poll_not_clobbered_by_older_stream(self):
        table = PriceTable(tolerance_seconds=1.0)
        table.apply(record(price=65000.0, observed_at=200.0, source=PriceSource.POLL))
        assert table.apply(record(price=64000.0, observed_at=150.0, source=PriceSource.STREAM)) is False
        assert table.get_price("BTC") == 65000.0

    def test_newer_write_wins_regardless_of_source(self):
        table = PriceTable()
        table.apply(record(price=1.0, observed_at=100.0, source=PriceSource.STREAM))
        table.apply(record(price=2.0, observed_at=101.5, source=PriceSource.POLL))
        assert table.get_price("BTC") == 2.0

    def test_equal_timestamp_last_arrival_wins(self):
        table = PriceTable()
        table.apply(record(price=1.0, observed_at=100.0, source=PriceSource.POLL))
        table.apply(record(price=2.0, observed_at=100.0, source=PriceSource.STREAM))
        assert table.get_price("BTC") == 2.0

    def test_within_tolerance_accepted_without_backdating(self):
        table = PriceTable(tolerance_seconds=1.0)
        table.apply(record(price=1.0, observed_at=100.0))

        assert table.apply(record(price=2.0, observed_at=99.5)) is True
        assert table.get_price("BTC") == 2.0
        assert table.get_record("BTC").observed_at == 100.0

    def test_unknown_price_never_overwrites(self):
        table = PriceTable()
        table.apply(record(price=65000.0, observed_at=100.0))
        assert table.apply(record(price=None, observed_at=200.0)) is False
        assert table.get_price("BTC") == 65000.0

    def test_interleaved_writes_final_value_is_latest_observation(self):
        rng = random.Random(7)
        observations = [(float(t * 10), float(1000 + t)) for t in range(50)]
        shuffled = observations[:]
        rng.shuffle(shuffled)

        table = PriceTable(tolerance_seconds=1.0)
        for i, (observed_at, price) in enumerate(shuffled):
            source = PriceSource.STREAM if i % 2 else PriceSource.POLL
            table.apply(record(price=price, observed_at=observed_at, source=source))

        latest_observed_at, latest_price = max(observations)
        assert table.get_price("BTC") == latest_price
        assert table.get_record("BTC").observed_at == latest_observed_at

    def test_symbols_are_independent(self):
        table = PriceTable()
        table.apply(record(symbol="BTC", price=1.0, observed_at=500.0))
        assert table.apply(record(symbol="ETH", price=2.0, observed_at=1.0)) is True
        assert table.get_all_prices() == {"BTC": 1.0, "ETH": 2.0}


class TestQueries:

    def test_get_price_unknown_symbol(self):
        assert PriceTable().get_price("NOPE") is None

    def test_snapshot_is_a_copy(self):
        table = PriceTable()
        table.apply(record())
        snap = table.snapshot()
        snap.clear()
        assert "BTC" in table
        assert len(table) == 1

    def test_age_and_stale_symbols(self):
        now = [1000.0]
        table = PriceTable(clock=lambda: now[0])
        table.apply(record(symbol="BTC", observed_at=990.0))
        table.apply(record(symbol="ETH", observed_at=600.0))

        assert table.age("BTC") == pytest.approx(10.0)
        assert table.age("NOPE") is None
        assert table.stale_symbols(max_age=300) == ["ETH"]


class TestListeners:

    def test_listener_receives_every_accepted_write(self):
        table = PriceTable()
        updates = []
        table.subscribe(updates.append)

        table.apply(record(price=1.0, observed_at=100.0, source=PriceSource.POLL))
        table.apply(record(price=2.0, observed_at=50.0, source=PriceSource.STREAM))  # rejected
        table.apply(record(price=3.0, observed_at=110.0, source=PriceSource.STREAM))

        assert [(u.price, u.source) for u in updates] == [
            (1.0, PriceSource.POLL),
            (3.0, PriceSource.STREAM),
        ]

    def test_unsubscribe(self):
        table = PriceTable()
        updates = []
        unsubscribe = table.subscribe(updates.append)
        unsubscribe()
        unsubscribe()
        table.apply(record())
        assert updates == []

    def test_failing_listener_does_not_block_write_or_others(self):
        table = PriceTable()
        seen = []

        def broken(update):
            raise RuntimeError("boom")

        table.subscribe(broken)
        table.subscribe(seen.append)

        assert table.apply(record(price=5.0)) is True
        assert table.get_price("BTC") == 5.0
        assert len(seen) == 1
