"""Precious metal spot providers (USD per troy ounce)."""

from __future__ import annotations

from ..errors import UnsupportedSymbol
from .http import HttpClient, dig, positive_price


class GoldPriceOrgProvider:
    """goldprice.org rates feed: ``items[0].xauPrice`` / ``items[0].xagPrice``."""

    name = "goldprice-org"
    fields = {"XAU": "xauPrice", "XAG": "xagPrice"}

    def __init__(self, http: HttpClient):
        self.http = http
        self.url = "https://data-asg.goldprice.org/dbXRates/USD"

    async def fetch_price(self, symbol: str) -> float:
        field = self.fields.get(symbol.upper())
        if field is None:
            raise UnsupportedSymbol(self.name, symbol, "only XAU and XAG are published")
        data = await self.http.get_json(self.url, provider=self.name, symbol=symbol)
        price = dig(data, "items", 0, field, provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)


class MetalsLiveProvider:
    """metals.live spot endpoint; answers either ``[{"price": ..}]`` or ``{"price": ..}``."""

    name = "metals-live"
    paths = {"XAU": "gold", "XAG": "silver"}

    def __init__(self, http: HttpClient):
        self.http = http
        self.base_url = "https://api.metals.live/v1/spot"

    async def fetch_price(self, symbol: str) -> float:
        path = self.paths.get(symbol.upper())
        if path is None:
            raise UnsupportedSymbol(self.name, symbol, "unknown metal")
        data = await self.http.get_json(f"{self.base_url}/{path}", provider=self.name, symbol=symbol)
        if isinstance(data, list):
            price = dig(data, 0, "price", provider=self.name, symbol=symbol)
        else:
            price = dig(data, "price", provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)
