"""Per-asset-class price adapters.

An adapter turns a holding symbol into a canonical PriceRecord by running the
asset class's fallback chain. Multi-leg prices (foreign-listed equities, gram
gold) multiply a native quote by an FX rate; if any leg fails the whole fetch
fails with UpstreamUnavailable.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from ..cache.fetch_cache import FetchCache
from ..config import Settings
from ..errors import UnsupportedSymbol, UpstreamUnavailable
from .base import AssetType, PriceRecord, PriceSource, Quote
from .binance_rest import BinanceTickerProvider
from .chain import FallbackChain
from .coingecko import CoinGeckoProvider
from .collectapi import CollectApiProvider
from .exchangerate import exchangerate_api, open_er_api
from .http import HttpClient
from .metals import GoldPriceOrgProvider, MetalsLiveProvider
from .symbols import GRAM_GOLD_SYMBOLS, METALS, bist_ticker, currency_pair, european_ticker, normalize
from .yahoo import YahooChartProvider, YahooQuoteProvider, YahooQuoteSummaryProvider


logger = logging.getLogger(__name__)

TROY_OUNCE_GRAMS = 31.1034768


def source_of(quote: Quote) -> PriceSource:
    if quote.cached:
        return PriceSource.CACHE
    return PriceSource.POLL if quote.primary else PriceSource.FALLBACK


class PriceAdapter:
    """Single-chain adapter: one fetch, no conversion."""

    asset_type: AssetType = AssetType.STOCK
    currency: str | None = None

    def __init__(self, chain: FallbackChain, clock: Callable[[], float] = time.time):
        self.chain = chain
        self.clock = clock

    async def fetch_price(self, symbol: str) -> PriceRecord:
        """
        Fetch a fresh (or cached) price record.

        Raises:
            UpstreamUnavailable: every provider failed
        """
        quote = await self._fetch_leg(self.chain, symbol, normalize(symbol))
        return self._record(symbol, quote, quote.price, self.currency)

    async def _fetch_leg(self, chain: FallbackChain, symbol: str, leg_symbol: str) -> Quote:
        try:
            return await chain.fetch(leg_symbol)
        except UpstreamUnavailable as e:
            raise UpstreamUnavailable(symbol, e.attempts, self.asset_type.value) from e

    def _record(self, symbol: str, quote: Quote, price: float, currency: str | None) -> PriceRecord:
        return PriceRecord(
            symbol=symbol,
            price=price,
            source=source_of(quote),
            observed_at=quote.observed_at,
            asset_type=self.asset_type,
            provider=quote.provider,
            currency=currency,
        )

    def _compose(self, symbol: str, native: Quote, fx: Quote, price: float, currency: str) -> PriceRecord:
        """Combine two legs; the composite is only as fresh as its oldest leg."""
        composite = Quote(
            provider=f"{native.provider}*{fx.provider}",
            price=price,
            observed_at=min(native.observed_at, fx.observed_at),
            cached=native.cached and fx.cached,
            primary=native.primary and fx.primary,
        )
        return self._record(symbol, composite, price, currency)


class CryptoAdapter(PriceAdapter):
    asset_type = AssetType.CRYPTO
    currency = "USD"


class CurrencyAdapter(PriceAdapter):
    """Prices a currency holding as units of base currency per unit held."""

    asset_type = AssetType.CURRENCY

    def __init__(self, chain: FallbackChain, base_currency: str, clock: Callable[[], float] = time.time):
        super().__init__(chain, clock)
        self.base_currency = base_currency.upper()

    async def rate(self, from_currency: str, to_currency: str, symbol: str | None = None) -> Quote:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Quote(provider="identity", price=1.0, observed_at=self.clock())
        return await self._fetch_leg(self.chain, symbol or from_currency, f"{from_currency}/{to_currency}")

    async def fetch_price(self, symbol: str) -> PriceRecord:
        from_currency, to_currency = currency_pair(symbol, self.base_currency)
        quote = await self.rate(from_currency, to_currency, symbol)
        return self._record(symbol, quote, quote.price, to_currency)


class StockAdapter(PriceAdapter):
    """
    Borsa Istanbul equities are quoted in TRY; a fixed set of European
    listings are quoted in EUR. Either is converted to the base currency
    when the listing currency differs.
    """

    asset_type = AssetType.STOCK

    def __init__(
        self,
        chain: FallbackChain,
        european_chain: FallbackChain,
        fx: CurrencyAdapter,
        base_currency: str,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(chain, clock)
        self.european_chain = european_chain
        self.fx = fx
        self.base_currency = base_currency.upper()

    async def fetch_price(self, symbol: str) -> PriceRecord:
        normalized = normalize(symbol)
        if european_ticker(normalized) is not None:
            native = await self._fetch_leg(self.european_chain, symbol, normalized)
            listing_currency = "EUR"
        else:
            native = await self._fetch_leg(self.chain, symbol, normalized)
            listing_currency = "TRY"

        if listing_currency == self.base_currency:
            return self._record(symbol, native, native.price, listing_currency)

        fx = await self.fx.rate(listing_currency, self.base_currency, symbol)
        return self._compose(symbol, native, fx, native.price * fx.price, self.base_currency)


class CommodityAdapter(PriceAdapter):
    """Gold and silver per troy ounce in USD; gram gold in the base currency."""

    asset_type = AssetType.COMMODITY
    currency = "USD"

    def __init__(
        self,
        chain: FallbackChain,
        fx: CurrencyAdapter,
        base_currency: str,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(chain, clock)
        self.fx = fx
        self.base_currency = base_currency.upper()

    async def fetch_price(self, symbol: str) -> PriceRecord:
        normalized = normalize(symbol)

        if normalized in GRAM_GOLD_SYMBOLS:
            ounce = await self._fetch_leg(self.chain, symbol, "XAU")
            fx = await self.fx.rate("USD", self.base_currency, symbol)
            price = ounce.price / TROY_OUNCE_GRAMS * fx.price
            return self._compose(symbol, ounce, fx, price, self.base_currency)

        metal = METALS.get(normalized)
        if metal is None:
            raise UpstreamUnavailable(
                symbol,
                [UnsupportedSymbol(self.chain.name, symbol, "no commodity provider")],
                self.asset_type.value,
            )
        quote = await self._fetch_leg(self.chain, symbol, metal)
        return self._record(symbol, quote, quote.price, self.currency)


def build_adapters(
    settings: Settings,
    http: HttpClient,
    cache: FetchCache,
    clock: Callable[[], float] = time.time,
) -> dict[AssetType, PriceAdapter]:
    """Wire every adapter with its provider chain, in fallback order."""
    timeout = settings.request_timeout_seconds
    base_currency = settings.get_base_currency()

    def chain(name: str, providers: list, asset_type: AssetType) -> FallbackChain:
        return FallbackChain(name, providers, cache, settings.ttl_for(asset_type), timeout, clock)

    bist_providers: list = [
        YahooQuoteProvider(http, bist_ticker),
        YahooChartProvider(http, bist_ticker),
        YahooQuoteSummaryProvider(http, bist_ticker),
    ]
    if settings.collectapi_key:
        bist_providers.append(CollectApiProvider(http, settings.collectapi_key))

    def resolve_european(symbol: str) -> str:
        return european_ticker(symbol) or symbol

    european_providers: list = [
        YahooChartProvider(http, resolve_european, name="yahoo-v8-eu"),
        YahooQuoteProvider(http, resolve_european, name="yahoo-v7-eu"),
    ]

    fx = CurrencyAdapter(
        chain("fx", [exchangerate_api(http), open_er_api(http)], AssetType.CURRENCY),
        base_currency,
        clock,
    )

    return {
        AssetType.STOCK: StockAdapter(
            chain("bist", bist_providers, AssetType.STOCK),
            chain("europe", european_providers, AssetType.STOCK),
            fx,
            base_currency,
            clock,
        ),
        AssetType.CRYPTO: CryptoAdapter(
            chain(
                "crypto",
                [BinanceTickerProvider(http, settings.crypto_quote), CoinGeckoProvider(http)],
                AssetType.CRYPTO,
            ),
            clock,
        ),
        AssetType.CURRENCY: fx,
        AssetType.COMMODITY: CommodityAdapter(
            chain("metals", [GoldPriceOrgProvider(http), MetalsLiveProvider(http)], AssetType.COMMODITY),
            fx,
            base_currency,
            clock,
        ),
    }
