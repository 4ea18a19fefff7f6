# Data module
"""Market-data collaborators feeding the accounting engine."""

from folio.data.sources import (
    IHistoricalPriceSource,
    ILatestPriceSource,
    ISymbolCatalog,
    InMemoryMarketData,
    load_price_history,
)
from folio.data.providers import BinanceRestProvider

__all__ = [
    "IHistoricalPriceSource",
    "ILatestPriceSource",
    "ISymbolCatalog",
    "InMemoryMarketData",
    "load_price_history",
    "BinanceRestProvider",
]
