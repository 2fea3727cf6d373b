"""Symbol mapping between holdings and provider-specific tickers."""

from __future__ import annotations


# European listings quoted in EUR on Yahoo Finance
EUROPEAN_STOCKS: dict[str, str] = {
    "ASML": "ASML.AS",
    "LVMH": "MC.PA",
    "SAP": "SAP.DE",
    "TTE": "TTE.PA",
    "OR": "OR.PA",
    "SAN": "SAN.PA",
    "AIR": "AIR.PA",
    "SU": "SU.PA",
    "NOKIA": "NOKIA.HE",
    "BMW": "BMW.DE",
    "SIEMENS": "SIE.DE",
    "ADYEN": "ADYEN.AS",
    "PROSUS": "PRX.AS",
}

COINGECKO_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "XRP": "ripple",
    "LINK": "chainlink",
    "ADA": "cardano",
    "AVAX": "avalanche-2",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "BNB": "binancecoin",
    "DOGE": "dogecoin",
    "USDT": "tether",
    "USDC": "usd-coin",
}

# Commodity aliases -> metal code
METALS: dict[str, str] = {
    "GOLD": "XAU",
    "XAU": "XAU",
    "ALTIN": "XAU",
    "SILVER": "XAG",
    "XAG": "XAG",
    "GUMUS": "XAG",
}

GRAM_GOLD_SYMBOLS = frozenset({"GRAM_GOLD", "GRAMALTIN", "GRAM_ALTIN"})

CURRENCY_ALIASES: dict[str, str] = {
    "DOLLAR": "USD",
    "DOLAR": "USD",
    "EURO": "EUR",
    "POUND": "GBP",
    "STERLIN": "GBP",
    "LIRA": "TRY",
}


def normalize(symbol: str) -> str:
    return symbol.strip().upper()


def bist_ticker(symbol: str) -> str:
    """THYAO -> THYAO.IS"""
    symbol = normalize(symbol)
    return symbol if symbol.endswith(".IS") else f"{symbol}.IS"


def european_ticker(symbol: str) -> str | None:
    return EUROPEAN_STOCKS.get(normalize(symbol))


def binance_pair(symbol: str, quote: str = "USDT") -> str:
    """BTC -> BTCUSDT; already-paired symbols pass through."""
    symbol = normalize(symbol)
    quote = normalize(quote)
    if symbol.endswith(quote) and symbol != quote:
        return symbol
    return f"{symbol}{quote}"


def currency_pair(symbol: str, base_currency: str) -> tuple[str, str]:
    """
    Resolve a currency holding to a (from, to) pair.

    Accepts ``USD``, ``DOLLAR``, ``USD/TRY``, ``USDTRY`` and ``USD_TRY``.
    """
    symbol = normalize(symbol)
    base_currency = normalize(base_currency)
    for separator in ("/", "_", "-"):
        if separator in symbol:
            left, right = symbol.split(separator, 1)
            return CURRENCY_ALIASES.get(left, left), CURRENCY_ALIASES.get(right, right)
    if symbol in CURRENCY_ALIASES:
        return CURRENCY_ALIASES[symbol], base_currency
    if len(symbol) == 6 and symbol.isalpha():
        return symbol[:3], symbol[3:]
    return CURRENCY_ALIASES.get(symbol, symbol), base_currency
