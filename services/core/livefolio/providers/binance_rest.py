"""Binance REST ticker provider (primary crypto price source)."""

from __future__ import annotations

import logging

from ..errors import ProviderMalformedResponse
from .http import HttpClient, dig, positive_price
from .symbols import binance_pair


logger = logging.getLogger(__name__)


class BinanceTickerProvider:
    """Reads the last traded price from ``/api/v3/ticker/price``."""

    name = "binance"

    def __init__(self, http: HttpClient, quote: str = "USDT", base_url: str = "https://api.binance.com"):
        """
        Args:
            http: Shared HTTP client
            quote: Quote asset appended to holding symbols (e.g., BTC -> BTCUSDT)
            base_url: REST host
        """
        self.http = http
        self.quote = quote.upper()
        self.url = f"{base_url}/api/v3/ticker/price"

    async def fetch_price(self, symbol: str) -> float:
        pair = binance_pair(symbol, self.quote)
        data = await self.http.get_json(
            self.url,
            provider=self.name,
            symbol=symbol,
            params={"symbol": pair},
        )
        returned = dig(data, "symbol", provider=self.name, symbol=symbol)
        if str(returned).upper() != pair:
            raise ProviderMalformedResponse(self.name, symbol, f"asked for {pair}, got {returned}")
        price = dig(data, "price", provider=self.name, symbol=symbol)
        return positive_price(price, provider=self.name, symbol=symbol)
