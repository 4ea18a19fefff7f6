"""Reconstruction of a portfolio's value and cost over time.

The ledger is replayed left to right. After the last entry of each trade
date one point is emitted, so the series has exactly one point per distinct
transaction date. Prices come from an injected history, either a mapping of
quotes or a historical price source queried once up front.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from itertools import groupby
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .errors import CalculationIssue, MissingPriceWarning
from .models import (
    ZERO,
    LotMethod,
    PortfolioHistoryPoint,
    PriceQuote,
    Transaction,
)
from .replay import SymbolLedger, chronological, split_valid

if TYPE_CHECKING:
    from folio.data.sources import IHistoricalPriceSource

logger = logging.getLogger(__name__)


@dataclass
class HistoryResult:
    """History series with the issues met while building it.

    Attributes:
        points: One point per distinct transaction date, ascending
        issues: Non-fatal problems found during replay
        cash_balance: Net cash movement of the whole ledger, for reference
    """
    points: List[PortfolioHistoryPoint] = field(default_factory=list)
    issues: List[CalculationIssue] = field(default_factory=list)
    cash_balance: Decimal = ZERO

    def __iter__(self) -> Iterator[PortfolioHistoryPoint]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)


class PriceSeries:
    """Historical quotes of one symbol, searchable by date."""

    def __init__(self, quotes: Iterable[PriceQuote]) -> None:
        usable = sorted(
            (q for q in quotes if q.price is not None and q.price > ZERO),
            key=lambda q: q.asof,
        )
        self._dates = [q.asof for q in usable]
        self._prices = [q.price for q in usable]

    def __len__(self) -> int:
        return len(self._dates)

    def price_asof(self, day: date) -> Optional[Decimal]:
        """Latest price quoted on or before day, or None."""
        index = bisect.bisect_right(self._dates, day)
        if index == 0:
            return None
        return self._prices[index - 1]


class HistoryReconstructor:
    """Builds a value/cost time series from a transaction ledger."""

    def reconstruct(
        self,
        transactions: Iterable[Transaction],
        price_history: Optional[Mapping[str, Iterable[PriceQuote]] | IHistoricalPriceSource] = None,
        lot_method: LotMethod | str = LotMethod.FIFO,
        end_date: Optional[date] = None,
    ) -> HistoryResult:
        """Replay the ledger and snapshot it at every transaction date.

        Entries of several portfolios may be mixed; each (portfolio, symbol)
        pair keeps its own lot book, and the points sum over all of them.

        Args:
            transactions: Ledger entries in any order
            price_history: Historical quotes keyed by symbol id, or a
                historical price source queried for the traded symbols over
                the ledger's date range
            lot_method: Lot matching policy
            end_date: Optional valuation date after the last entry; when
                given, one closing point is appended for it

        Returns:
            HistoryResult with points in ascending date order
        """
        method = LotMethod.coerce(lot_method)
        valid, issues = split_valid(transactions)
        ordered = chronological(valid)
        if not ordered:
            return HistoryResult(issues=issues)

        series = self._load_series(price_history, ordered, end_date)
        ledgers: Dict[Tuple[str, str], SymbolLedger] = {}
        last_prices: Dict[str, Decimal] = {}
        unpriced: Set[str] = set()
        points: List[PortfolioHistoryPoint] = []
        cash = ZERO

        for day, day_txns in groupby(ordered, key=lambda txn: txn.trade_date):
            traded: Dict[str, Decimal] = {}
            for txn in day_txns:
                cash += txn.cash_effect
                if not txn.symbol_id or not txn.type.moves_lots:
                    continue
                key = (txn.portfolio_id, txn.symbol_id)
                ledger = ledgers.get(key)
                if ledger is None:
                    ledger = ledgers[key] = SymbolLedger(txn.symbol_id, method)
                issue = ledger.apply(txn)
                if issue is not None:
                    issues.append(issue)
                if txn.unit_price > ZERO:
                    traded[txn.symbol_id] = txn.unit_price
                    last_prices[txn.symbol_id] = txn.unit_price

            value, cost = self._snapshot(day, ledgers, series, traded, last_prices, unpriced, issues)
            points.append(PortfolioHistoryPoint(date=day, value=value, cost=cost))

        if end_date is not None and end_date > points[-1].date:
            value, cost = self._snapshot(end_date, ledgers, series, {}, last_prices, unpriced, issues)
            points.append(PortfolioHistoryPoint(date=end_date, value=value, cost=cost))

        logger.debug(f"Reconstructed {len(points)} history points from {len(ordered)} transactions")
        return HistoryResult(points=points, issues=issues, cash_balance=cash)

    @staticmethod
    def _load_series(
        price_history: Optional[Mapping[str, Iterable[PriceQuote]] | IHistoricalPriceSource],
        ordered: List[Transaction],
        end_date: Optional[date],
    ) -> Dict[str, PriceSeries]:
        if price_history is None:
            return {}
        if not isinstance(price_history, Mapping):
            from folio.data.sources import load_price_history

            symbol_ids = sorted({txn.symbol_id for txn in ordered if txn.type.moves_lots})
            last_date = ordered[-1].trade_date
            if end_date is not None and end_date > last_date:
                last_date = end_date
            price_history = load_price_history(
                price_history, symbol_ids, ordered[0].trade_date, last_date
            )
        return {symbol_id: PriceSeries(quotes) for symbol_id, quotes in price_history.items()}

    def _snapshot(
        self,
        day: date,
        ledgers: Mapping[Tuple[str, str], SymbolLedger],
        series: Mapping[str, PriceSeries],
        traded: Mapping[str, Decimal],
        last_prices: Mapping[str, Decimal],
        unpriced: Set[str],
        issues: List[CalculationIssue],
    ) -> Tuple[Decimal, Decimal]:
        value = ZERO
        cost = ZERO
        for (_, symbol_id), ledger in ledgers.items():
            quantity = ledger.book.quantity
            if quantity <= ZERO:
                continue
            cost += ledger.book.cost_basis
            price = self._price_for(symbol_id, day, series, traded, last_prices)
            if price is None:
                if symbol_id not in unpriced:
                    unpriced.add(symbol_id)
                    logger.warning(f"No price for {symbol_id} on {day}; valuing at cost")
                    issues.append(CalculationIssue.from_error(
                        MissingPriceWarning(f"No price for {symbol_id} as of {day}; valued at cost"),
                        symbol_id=symbol_id,
                    ))
                value += ledger.book.cost_basis
            else:
                value += quantity * price
        return value, cost

    @staticmethod
    def _price_for(
        symbol_id: str,
        day: date,
        series: Mapping[str, PriceSeries],
        traded: Mapping[str, Decimal],
        last_prices: Mapping[str, Decimal],
    ) -> Optional[Decimal]:
        # A trade on the day beats any quote; otherwise the latest quote,
        # then the last trade price seen.
        if symbol_id in traded:
            return traded[symbol_id]
        quotes = series.get(symbol_id)
        if quotes is not None:
            price = quotes.price_asof(day)
            if price is not None:
                return price
        return last_prices.get(symbol_id)
