"""Foreign exchange rate providers.

Both upstreams publish ``{"rates": {...}}`` keyed by the quote currency for a
given base currency, so one class serves both with different URL templates.
"""

from __future__ import annotations

from ..errors import ProviderMalformedResponse, UnsupportedSymbol
from .http import HttpClient, dig, positive_price


EXCHANGERATE_API_URL = "https://api.exchangerate-api.com/v4/latest/{base}"
OPEN_ER_API_URL = "https://open.er-api.com/v6/latest/{base}"


class ExchangeRateProvider:
    """Prices a ``FROM/TO`` pair symbol as the number of TO units per FROM unit."""

    def __init__(self, http: HttpClient, name: str, url_template: str):
        self.http = http
        self.name = name
        self.url_template = url_template

    async def fetch_price(self, symbol: str) -> float:
        try:
            base, quote = symbol.upper().split("/", 1)
        except ValueError as e:
            raise UnsupportedSymbol(self.name, symbol, "expected FROM/TO pair") from e
        data = await self.http.get_json(
            self.url_template.format(base=base),
            provider=self.name,
            symbol=symbol,
        )
        if isinstance(data, dict) and data.get("result") == "error":
            raise ProviderMalformedResponse(self.name, symbol, str(data.get("error-type", "error result")))
        rate = dig(data, "rates", quote, provider=self.name, symbol=symbol)
        return positive_price(rate, provider=self.name, symbol=symbol)


def exchangerate_api(http: HttpClient) -> ExchangeRateProvider:
    return ExchangeRateProvider(http, "exchangerate-api", EXCHANGERATE_API_URL)


def open_er_api(http: HttpClient) -> ExchangeRateProvider:
    return ExchangeRateProvider(http, "open-er-api", OPEN_ER_API_URL)
