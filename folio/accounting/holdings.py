"""Holdings calculation for a single portfolio."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal, getcontext, localcontext
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import CalculationIssue, IssueKind, MissingPriceWarning
from .models import (
    ZERO,
    Holding,
    LotMethod,
    PriceQuote,
    Symbol,
    Transaction,
    percent_of,
)
from .replay import SymbolLedger, chronological, split_valid

logger = logging.getLogger(__name__)


@dataclass
class HoldingsResult:
    """Holdings of a portfolio together with the issues met computing them.

    Iterating the result yields the holdings.
    """
    portfolio_id: str
    holdings: List[Holding] = field(default_factory=list)
    issues: List[CalculationIssue] = field(default_factory=list)

    def __iter__(self) -> Iterator[Holding]:
        return iter(self.holdings)

    def __len__(self) -> int:
        return len(self.holdings)

    @property
    def total_market_value(self) -> Decimal:
        return sum((h.market_value_base for h in self.holdings), ZERO)


def latest_quotes(prices: Iterable[PriceQuote]) -> Dict[str, PriceQuote]:
    """Pick the most recent quote per symbol.

    Quotes with equal dates resolve to the one given last.
    """
    latest: Dict[str, PriceQuote] = {}
    for quote in prices:
        current = latest.get(quote.symbol_id)
        if current is None or quote.asof >= current.asof:
            latest[quote.symbol_id] = quote
    return latest


def group_by_symbol(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    """Group symbol-bearing entries by symbol, in order of first appearance."""
    grouped: Dict[str, List[Transaction]] = {}
    for txn in transactions:
        if txn.symbol_id:
            grouped.setdefault(txn.symbol_id, []).append(txn)
    return grouped


def sort_holdings(holdings: List[Holding]) -> List[Holding]:
    """Order holdings by market value, largest first."""
    return sorted(
        holdings,
        key=lambda h: (-h.market_value_base, h.symbol.ticker, h.symbol_id),
    )


class IHoldingsCalculator(ABC):
    """Interface for turning a ledger into current holdings."""

    @abstractmethod
    def calculate(
        self,
        portfolio_id: str,
        transactions: Iterable[Transaction],
        symbols: Iterable[Symbol],
        prices: Iterable[PriceQuote],
        lot_method: LotMethod | str,
    ) -> HoldingsResult:
        """Calculate the current holdings of a portfolio.

        Args:
            portfolio_id: Portfolio to compute
            transactions: Ledger entries in any order; entries of other
                portfolios are ignored
            symbols: Symbol catalog
            prices: Latest quotes, possibly missing some symbols
            lot_method: Lot matching policy

        Returns:
            HoldingsResult with one holding per open symbol
        """
        ...


class HoldingsCalculator(IHoldingsCalculator):
    """Replays each symbol's entries through a fresh lot book.

    Purchase fees are capitalised: a BUY opens its lot at unit_price plus
    fee / quantity, so avg_cost_base and the cost basis include fees. Sale
    fees reduce realized P&L instead.

    Symbols are independent of each other, so with max_workers set they are
    resolved on a thread pool. Workers run under a copy of the caller's
    decimal context, so the output does not depend on the setting.
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        """Initialize the calculator.

        Args:
            max_workers: Thread count for resolving symbols concurrently;
                None or 1 resolves them one after another
        """
        self._max_workers = max_workers

    def calculate(
        self,
        portfolio_id: str,
        transactions: Iterable[Transaction],
        symbols: Iterable[Symbol],
        prices: Iterable[PriceQuote],
        lot_method: LotMethod | str,
    ) -> HoldingsResult:
        method = LotMethod.coerce(lot_method)
        own = [txn for txn in transactions if txn.portfolio_id == portfolio_id]
        valid, issues = split_valid(own, portfolio_id)

        catalog = {symbol.id: symbol for symbol in symbols}
        quotes = latest_quotes(prices)
        groups = group_by_symbol(valid)
        logger.debug(
            f"Portfolio {portfolio_id}: replaying {len(valid)} transactions "
            f"across {len(groups)} symbols ({method.value})"
        )

        # Worker threads start from the default decimal context.
        context = getcontext().copy()

        def resolve(item: Tuple[str, List[Transaction]]):
            symbol_id, symbol_txns = item
            with localcontext(context):
                return self._resolve_symbol(
                    portfolio_id, symbol_id, symbol_txns,
                    catalog.get(symbol_id), quotes.get(symbol_id), method,
                )

        if self._max_workers and self._max_workers > 1 and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                resolved = list(pool.map(resolve, groups.items()))
        else:
            resolved = [resolve(item) for item in groups.items()]

        holdings: List[Holding] = []
        for holding, symbol_issues in resolved:
            issues.extend(symbol_issues)
            if holding is not None:
                holdings.append(holding)

        total_market_value = sum((h.market_value_base for h in holdings), ZERO)
        for holding in holdings:
            holding.allocation_percent = percent_of(holding.market_value_base, total_market_value)

        return HoldingsResult(
            portfolio_id=portfolio_id,
            holdings=sort_holdings(holdings),
            issues=issues,
        )

    def calculate_many(
        self,
        portfolio_ids: Iterable[str],
        transactions: Iterable[Transaction],
        symbols: Iterable[Symbol],
        prices: Iterable[PriceQuote],
        lot_method: LotMethod | str,
    ) -> Dict[str, HoldingsResult]:
        """Calculate holdings for several portfolios sharing one ledger.

        Returns:
            Mapping of portfolio id to its HoldingsResult
        """
        transactions = list(transactions)
        symbols = list(symbols)
        prices = list(prices)
        return {
            portfolio_id: self.calculate(portfolio_id, transactions, symbols, prices, lot_method)
            for portfolio_id in portfolio_ids
        }

    def _resolve_symbol(
        self,
        portfolio_id: str,
        symbol_id: str,
        transactions: List[Transaction],
        symbol: Optional[Symbol],
        quote: Optional[PriceQuote],
        method: LotMethod,
    ) -> Tuple[Optional[Holding], List[CalculationIssue]]:
        issues: List[CalculationIssue] = []
        if symbol is None:
            logger.warning(f"Symbol not found for ID: {symbol_id}")
            issues.append(CalculationIssue(
                kind=IssueKind.UNKNOWN_SYMBOL,
                message=f"Symbol {symbol_id} is not in the catalog",
                symbol_id=symbol_id,
                portfolio_id=portfolio_id,
            ))
            return None, issues

        ledger = SymbolLedger(symbol_id, method)
        for txn in chronological(transactions):
            issue = ledger.apply(txn)
            if issue is not None:
                issues.append(issue)

        quantity = ledger.book.quantity
        had_shortfall = any(i.kind is IssueKind.INSUFFICIENT_LOTS for i in issues)
        if quantity <= ZERO and not had_shortfall:
            return None, issues

        avg_cost = ledger.book.average_cost
        cost_basis = ledger.book.cost_basis
        price_missing = quote is None or quote.price <= ZERO
        if price_missing:
            current_price = avg_cost
            market_value = cost_basis
            if quantity > ZERO:
                issues.append(CalculationIssue.from_error(
                    MissingPriceWarning(f"No price for {symbol.ticker}; valued at cost"),
                    symbol_id=symbol_id,
                    portfolio_id=portfolio_id,
                ))
        else:
            current_price = quote.price
            market_value = quantity * current_price

        unrealized_pl = market_value - cost_basis
        holding = Holding(
            portfolio_id=portfolio_id,
            symbol_id=symbol_id,
            symbol=symbol,
            quantity=quantity,
            avg_cost_base=avg_cost,
            market_value_base=market_value,
            unrealized_pl=unrealized_pl,
            unrealized_pl_percent=percent_of(unrealized_pl, cost_basis),
            current_price=current_price,
            realized_pl=ledger.realized_pl,
            price_missing=price_missing,
        )
        return holding, issues
