"""Ordered provider fallback chain."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Sequence

from ..cache.fetch_cache import FetchCache
from ..errors import ProviderError, ProviderMalformedResponse, ProviderTimeout, UpstreamUnavailable
from .base import PriceProvider, Quote


logger = logging.getLogger(__name__)


class FallbackChain:
    """
    Tries providers in order until one yields a valid price.

    Each provider call goes through the fetch cache keyed ``provider:symbol``
    and carries its own timeout. The provider list is plain data: reorder,
    append or remove providers without touching the iteration.
    """

    def __init__(
        self,
        name: str,
        providers: Sequence[PriceProvider],
        cache: FetchCache,
        ttl: float,
        timeout: float = 8.0,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.providers = list(providers)
        self.cache = cache
        self.ttl = ttl
        self.timeout = timeout
        self.clock = clock

    @staticmethod
    def cache_key(provider: PriceProvider, symbol: str) -> str:
        return f"{provider.name}:{symbol}"

    async def fetch(self, symbol: str) -> Quote:
        """
        Return the first usable quote.

        Raises:
            UpstreamUnavailable: after every configured provider has been tried
        """
        failures: list[ProviderError] = []

        for index, provider in enumerate(self.providers):
            key = self.cache_key(provider, symbol)
            entry = self.cache.get_entry(key)
            if entry is not None:
                quote: Quote = entry.payload
                return Quote(
                    provider=quote.provider,
                    price=quote.price,
                    observed_at=quote.observed_at,
                    cached=True,
                    primary=quote.primary,
                )

            requested_at = self.clock()
            try:
                price = await asyncio.wait_for(provider.fetch_price(symbol), self.timeout)
            except asyncio.TimeoutError:
                error: ProviderError = ProviderTimeout(provider.name, symbol, f"no answer within {self.timeout}s")
            except ProviderError as e:
                error = e
            except Exception as e:
                logger.error(f"{self.name}: unexpected error from {provider.name} for {symbol}: {e}", exc_info=True)
                error = ProviderMalformedResponse(provider.name, symbol, f"{type(e).__name__}: {e}")
            else:
                quote = Quote(
                    provider=provider.name,
                    price=price,
                    observed_at=requested_at,
                    primary=index == 0,
                )
                self.cache.set(key, quote, self.ttl)
                if failures:
                    logger.info(f"{self.name}: {symbol} served by fallback provider {provider.name}")
                return quote

            failures.append(error)
            logger.warning(f"{self.name}: {error}")

        raise UpstreamUnavailable(symbol, failures)
