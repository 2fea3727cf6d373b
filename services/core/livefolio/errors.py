"""Error taxonomy for price acquisition.

Provider-level errors never escape an adapter: the fallback chain converts
exhaustion into ``UpstreamUnavailable``. Stream errors never escape the
stream manager: they become connection status changes.
"""

from __future__ import annotations


class PriceError(Exception):
    """Base class for all price acquisition errors."""
    pass


class ProviderError(PriceError):
    """A single upstream provider failed to produce a usable price."""

    def __init__(self, provider: str, symbol: str, message: str = ""):
        self.provider = provider
        self.symbol = symbol
        super().__init__(f"{provider} failed for {symbol}: {message}" if message else f"{provider} failed for {symbol}")


class ProviderTimeout(ProviderError):
    """Provider call exceeded its timeout."""
    pass


class ProviderHTTPError(ProviderError):
    """Non-2xx response, or a transport failure when ``status`` is None."""

    def __init__(self, provider: str, symbol: str, status: int | None, message: str = ""):
        self.status = status
        detail = f"HTTP {status}" if status is not None else "transport error"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(provider, symbol, detail)


class ProviderMalformedResponse(ProviderError):
    """Response did not match the expected schema or carried an invalid price."""
    pass


class UnsupportedSymbol(ProviderError):
    """Provider has no mapping for the requested symbol."""
    pass


class UpstreamUnavailable(PriceError):
    """Every provider in a fallback chain failed for a symbol."""

    def __init__(self, symbol: str, attempts: list[ProviderError] | None = None, asset_type: str | None = None):
        self.symbol = symbol
        self.attempts = list(attempts or [])
        self.asset_type = asset_type
        tried = ", ".join(e.provider for e in self.attempts) or "no providers"
        super().__init__(f"No upstream price for {symbol} (tried: {tried})")


class StreamError(PriceError):
    """Base class for streaming channel failures."""
    pass


class StreamTransportError(StreamError):
    """Connection could not be established or broke with a transport error."""
    pass


class StreamUnexpectedClose(StreamError):
    """Server closed a connected stream without being asked to."""
    pass
