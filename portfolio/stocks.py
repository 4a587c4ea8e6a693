"""
Static symbol directory for search and portfolio autocomplete.

Not a market data source: names only, no prices.
"""

from __future__ import annotations

from typing import NamedTuple


class Stock(NamedTuple):
    symbol: str
    name: str


STOCKS: list[Stock] = [
    Stock("AAPL", "Apple Inc."),
    Stock("ABNB", "Airbnb Inc."),
    Stock("AMD", "Advanced Micro Devices Inc."),
    Stock("AMZN", "Amazon.com Inc."),
    Stock("ARM", "Arm Holdings plc"),
    Stock("AVGO", "Broadcom Inc."),
    Stock("BAC", "Bank of America Corp."),
    Stock("BRK.B", "Berkshire Hathaway Inc."),
    Stock("BTC-USD", "Bitcoin"),
    Stock("COIN", "Coinbase Global Inc."),
    Stock("COST", "Costco Wholesale Corp."),
    Stock("CRM", "Salesforce Inc."),
    Stock("DIS", "The Walt Disney Co."),
    Stock("ETH-USD", "Ethereum"),
    Stock("GLD", "SPDR Gold Shares"),
    Stock("GME", "GameStop Corp."),
    Stock("GOOGL", "Alphabet Inc."),
    Stock("INTC", "Intel Corp."),
    Stock("JNJ", "Johnson & Johnson"),
    Stock("JPM", "JPMorgan Chase & Co."),
    Stock("KO", "The Coca-Cola Co."),
    Stock("META", "Meta Platforms Inc."),
    Stock("MSFT", "Microsoft Corp."),
    Stock("MSTR", "MicroStrategy Inc."),
    Stock("NFLX", "Netflix Inc."),
    Stock("NVDA", "NVIDIA Corp."),
    Stock("PLTR", "Palantir Technologies Inc."),
    Stock("PG", "Procter & Gamble Co."),
    Stock("QQQ", "Invesco QQQ Trust"),
    Stock("SMCI", "Super Micro Computer Inc."),
    Stock("SPY", "SPDR S&P 500 ETF Trust"),
    Stock("TSLA", "Tesla Inc."),
    Stock("TSM", "Taiwan Semiconductor Manufacturing Co."),
    Stock("UNH", "UnitedHealth Group Inc."),
    Stock("V", "Visa Inc."),
    Stock("WMT", "Walmart Inc."),
    Stock("XOM", "Exxon Mobil Corp."),
]

_BY_SYMBOL = {s.symbol: s for s in STOCKS}


def lookup_name(symbol: str) -> str | None:
    """Company name for an exact (case-insensitive) symbol, or None."""
    stock = _BY_SYMBOL.get(symbol.strip().upper()) if symbol else None
    return stock.name if stock else None


def suggest(text: str, limit: int = 8) -> list[Stock]:
    """Stocks whose symbol or name contains *text*, sorted by symbol."""
    if not text or not text.strip():
        return []
    needle = text.strip().lower()
    matches = [
        s for s in STOCKS
        if needle in s.symbol.lower() or needle in s.name.lower()
    ]
    return sorted(matches, key=lambda s: s.symbol)[:limit]
