"""CollectAPI Borsa Istanbul quote provider (last resort for BIST equities)."""

from __future__ import annotations

from ..errors import ProviderMalformedResponse
from .http import HttpClient, dig, positive_price
from .symbols import normalize


class CollectApiProvider:
    """``/economy/hisseSenedi`` endpoint; needs an API key."""

    name = "collectapi"

    def __init__(self, http: HttpClient, api_key: str):
        self.http = http
        self.api_key = api_key
        self.url = "https://api.collectapi.com/economy/hisseSenedi"

    async def fetch_price(self, symbol: str) -> float:
        code = normalize(symbol).removesuffix(".IS")
        data = await self.http.get_json(
            self.url,
            provider=self.name,
            symbol=symbol,
            params={"code": code},
            headers={
                "authorization": f"apikey {self.api_key}",
                "content-type": "application/json",
            },
        )
        if not isinstance(data, dict) or not data.get("success"):
            raise ProviderMalformedResponse(self.name, symbol, "success flag not set")
        price = dig(data, "result", "price", provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)
