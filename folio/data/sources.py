"""Collaborator interfaces for symbols and prices.

The accounting engine never fetches anything itself. Callers resolve
symbols and quotes through these interfaces first and pass plain data in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from folio.accounting.models import PriceQuote, Symbol


class ISymbolCatalog(ABC):
    """Interface for symbol lookup."""

    @abstractmethod
    def get_symbols(self, symbol_ids: Optional[Iterable[str]] = None) -> List[Symbol]:
        """Get catalog entries.

        Args:
            symbol_ids: Ids to look up, or None for the whole catalog

        Returns:
            Known symbols; unknown ids are left out
        """
        ...


class ILatestPriceSource(ABC):
    """Interface for latest price lookup."""

    @abstractmethod
    def get_latest(self, symbol_ids: Iterable[str]) -> List[PriceQuote]:
        """Get the latest quote of each symbol.

        Args:
            symbol_ids: Symbols to price

        Returns:
            One quote per symbol that could be priced; others are omitted
        """
        ...


class IHistoricalPriceSource(ABC):
    """Interface for historical price series lookup."""

    @abstractmethod
    def get_history(self, symbol_id: str, start: date, end: date) -> List[PriceQuote]:
        """Get daily quotes of a symbol between start and end, inclusive.

        Returns:
            Quotes in ascending date order, possibly empty
        """
        ...


class InMemoryMarketData(ISymbolCatalog, ILatestPriceSource, IHistoricalPriceSource):
    """Catalog and price store held in memory.

    Used to wire the engine in tests and by callers that already loaded
    their data elsewhere.
    """

    def __init__(
        self,
        symbols: Iterable[Symbol] = (),
        quotes: Iterable[PriceQuote] = (),
    ) -> None:
        self._symbols: Dict[str, Symbol] = {}
        self._quotes: Dict[str, Dict[date, PriceQuote]] = {}
        for symbol in symbols:
            self.add_symbol(symbol)
        for quote in quotes:
            self.add_quote(quote)

    def add_symbol(self, symbol: Symbol) -> None:
        self._symbols[symbol.id] = symbol

    def add_quote(self, quote: PriceQuote) -> None:
        """Store a quote; a later quote for the same date replaces it."""
        self._quotes.setdefault(quote.symbol_id, {})[quote.asof] = quote

    def update_price(self, symbol_id: str, price: float | str | Decimal, asof: Optional[date] = None) -> None:
        """Record a price observation for a symbol.

        Args:
            symbol_id: Symbol the price belongs to
            price: Price in base currency
            asof: Observation date (default: today)
        """
        self.add_quote(PriceQuote(
            symbol_id=symbol_id,
            price=Decimal(str(price)),
            asof=asof or date.today(),
        ))

    def get_symbols(self, symbol_ids: Optional[Iterable[str]] = None) -> List[Symbol]:
        if symbol_ids is None:
            return list(self._symbols.values())
        return [self._symbols[i] for i in symbol_ids if i in self._symbols]

    def get_latest(self, symbol_ids: Iterable[str]) -> List[PriceQuote]:
        latest: List[PriceQuote] = []
        for symbol_id in symbol_ids:
            by_date = self._quotes.get(symbol_id)
            if by_date:
                latest.append(by_date[max(by_date)])
        return latest

    def get_history(self, symbol_id: str, start: date, end: date) -> List[PriceQuote]:
        by_date = self._quotes.get(symbol_id, {})
        return [by_date[d] for d in sorted(by_date) if start <= d <= end]


def load_price_history(
    source: IHistoricalPriceSource,
    symbol_ids: Iterable[str],
    start: date,
    end: date,
) -> Dict[str, List[PriceQuote]]:
    """Collect historical series for several symbols.

    The result plugs straight into HistoryReconstructor.reconstruct().
    """
    return {symbol_id: source.get_history(symbol_id, start, end) for symbol_id in symbol_ids}
