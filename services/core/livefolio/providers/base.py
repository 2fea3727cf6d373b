"""Base types and protocols for price providers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class AssetType(Enum):
    """Asset classes a holding can belong to."""
    STOCK = "stock"
    CRYPTO = "crypto"
    CURRENCY = "currency"
    FUND = "fund"
    EUROBOND = "eurobond"
    COMMODITY = "commodity"


class PriceSource(Enum):
    """Where a price record came from."""
    STREAM = "stream"
    POLL = "poll"
    CACHE = "cache"
    FALLBACK = "fallback"


def is_valid_price(value: float | None) -> bool:
    """True for positive finite numbers. Zero is the 'no data' sentinel, never a price."""
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


@dataclass(frozen=True)
class PriceRecord:
    """Canonical last-known price for a symbol."""
    symbol: str
    price: float | None  # None = unknown
    source: PriceSource
    observed_at: float  # Unix timestamp in seconds
    asset_type: AssetType
    provider: str | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        if self.price is not None and not is_valid_price(self.price):
            raise ValueError(f"Invalid price for {self.symbol}: {self.price!r}")

    @property
    def is_known(self) -> bool:
        return self.price is not None


@dataclass(frozen=True)
class Quote:
    """One provider answer, before it becomes a PriceRecord."""
    provider: str
    price: float
    observed_at: float
    cached: bool = False
    primary: bool = True


@dataclass(frozen=True)
class PriceUpdate:
    """Notification payload fired on every accepted table write."""
    symbol: str
    price: float
    source: PriceSource
    observed_at: float


@dataclass(frozen=True)
class HoldingRef:
    """The part of a holding the price engine needs."""
    symbol: str
    asset_type: AssetType


@dataclass
class Holding:
    """Holding row owned by the persistence collaborator."""
    id: str
    symbol: str
    asset_type: AssetType
    quantity: float
    purchase_price: float
    current_price: float | None = None
    updated_at: float | None = None


class PriceProvider(Protocol):
    """Protocol for a single upstream price source."""

    name: str

    async def fetch_price(self, symbol: str) -> float:
        """
        Return a positive finite price for ``symbol``.

        Must raise a ProviderError subclass on any failure, including schema
        deviations. Never returns 0 or NaN.
        """
        ...


class HoldingsRepository(Protocol):
    """Persistence collaborator consumed by the price service."""

    async def list_holdings(self) -> list[Holding]:
        ...

    async def update_holding_price(self, holding_id: str, price: float, updated_at: float) -> None:
        ...
