"""CoinGecko simple-price provider (crypto fallback)."""

from __future__ import annotations

from ..errors import UnsupportedSymbol
from .http import HttpClient, dig, positive_price
from .symbols import COINGECKO_IDS, normalize


class CoinGeckoProvider:
    name = "coingecko"

    def __init__(self, http: HttpClient, vs_currency: str = "usd", ids: dict[str, str] | None = None):
        self.http = http
        self.vs_currency = vs_currency.lower()
        self.ids = ids if ids is not None else COINGECKO_IDS
        self.url = "https://api.coingecko.com/api/v3/simple/price"

    async def fetch_price(self, symbol: str) -> float:
        coin_id = self.ids.get(normalize(symbol))
        if coin_id is None:
            raise UnsupportedSymbol(self.name, symbol, "no CoinGecko id")
        data = await self.http.get_json(
            self.url,
            provider=self.name,
            symbol=symbol,
            params={"ids": coin_id, "vs_currencies": self.vs_currency},
        )
        price = dig(data, coin_id, self.vs_currency, provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)
