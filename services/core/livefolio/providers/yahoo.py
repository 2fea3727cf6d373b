"""Yahoo Finance equity quote providers (v7 quote, v8 chart, v10 quoteSummary)."""

from __future__ import annotations

import logging
from typing import Callable

from .http import HttpClient, dig, positive_price


logger = logging.getLogger(__name__)

Resolver = Callable[[str], str]


def _identity(symbol: str) -> str:
    return symbol


class YahooQuoteProvider:
    """Yahoo v7 ``/finance/quote`` endpoint."""

    def __init__(self, http: HttpClient, resolve: Resolver = _identity, name: str = "yahoo-v7"):
        self.http = http
        self.resolve = resolve
        self.name = name
        self.url = "https://query1.finance.yahoo.com/v7/finance/quote"

    async def fetch_price(self, symbol: str) -> float:
        ticker = self.resolve(symbol)
        data = await self.http.get_json(
            self.url,
            provider=self.name,
            symbol=symbol,
            params={
                "symbols": ticker,
                "fields": "regularMarketPrice,regularMarketPreviousClose",
            },
        )
        price = dig(data, "quoteResponse", "result", 0, "regularMarketPrice", provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)


class YahooChartProvider:
    """Yahoo v8 ``/finance/chart`` endpoint (reads ``meta.regularMarketPrice``)."""

    def __init__(self, http: HttpClient, resolve: Resolver = _identity, name: str = "yahoo-v8"):
        self.http = http
        self.resolve = resolve
        self.name = name
        self.base_url = "https://query2.finance.yahoo.com/v8/finance/chart"

    async def fetch_price(self, symbol: str) -> float:
        ticker = self.resolve(symbol)
        data = await self.http.get_json(
            f"{self.base_url}/{ticker}",
            provider=self.name,
            symbol=symbol,
            params={"interval": "1m", "range": "1d"},
        )
        price = dig(data, "chart", "result", 0, "meta", "regularMarketPrice", provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)


class YahooQuoteSummaryProvider:
    """Yahoo v10 ``/finance/quoteSummary`` endpoint (``price`` module)."""

    def __init__(self, http: HttpClient, resolve: Resolver = _identity, name: str = "yahoo-v10"):
        self.http = http
        self.resolve = resolve
        self.name = name
        self.base_url = "https://query1.finance.yahoo.com/v10/finance/quoteSummary"

    async def fetch_price(self, symbol: str) -> float:
        ticker = self.resolve(symbol)
        data = await self.http.get_json(
            f"{self.base_url}/{ticker}",
            provider=self.name,
            symbol=symbol,
            params={"modules": "price,summaryDetail"},
        )
        price = dig(
            data, "quoteSummary", "result", 0, "price", "regularMarketPrice", "raw",
            provider=self.name, symbol=symbol,
        )
        return positive_price(price, provider=self.name, symbol=symbol)
