"""Shared aiohttp client that maps transport problems onto provider errors."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from ..errors import ProviderHTTPError, ProviderMalformedResponse, ProviderTimeout
from .base import is_valid_price


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Cache-Control": "no-cache",
}


class HttpClient:
    """Lazily opened aiohttp session shared by every provider."""

    def __init__(self, timeout_seconds: float = 8.0):
        self.timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout, headers=DEFAULT_HEADERS)
        return self._session

    async def get_json(
        self,
        url: str,
        *,
        provider: str,
        symbol: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        GET a JSON document.

        Raises:
            ProviderHTTPError: non-200 status or transport failure
            ProviderTimeout: request exceeded the client timeout
            ProviderMalformedResponse: body is not JSON
        """
        session = self._get_session()
        try:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status != 200:
                    text = await response.text(errors="replace")
                    raise ProviderHTTPError(provider, symbol, response.status, text[:200])
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ProviderMalformedResponse(provider, symbol, f"invalid JSON: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(provider, symbol, "request timed out") from e
        except aiohttp.ClientError as e:
            raise ProviderHTTPError(provider, symbol, None, str(e)) from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def dig(payload: Any, *path: str | int, provider: str, symbol: str) -> Any:
    """Walk ``payload`` along ``path``; any schema deviation is a malformed response."""
    node = payload
    for key in path:
        try:
            node = node[key]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderMalformedResponse(provider, symbol, f"missing {key!r}") from e
        if node is None:
            raise ProviderMalformedResponse(provider, symbol, f"null at {key!r}")
    return node


def positive_price(value: Any, *, provider: str, symbol: str) -> float:
    """Coerce a provider value into a price, treating 0/negative/NaN as a parse failure."""
    if not is_valid_price(value):
        raise ProviderMalformedResponse(provider, symbol, f"invalid price {value!r}")
    return float(value)
