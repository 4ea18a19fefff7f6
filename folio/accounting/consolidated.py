"""Consolidated holdings across portfolios."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal, getcontext, localcontext
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import CalculationIssue
from .holdings import HoldingsCalculator, HoldingsResult
from .models import (
    ZERO,
    ConsolidatedHolding,
    Holding,
    LotMethod,
    PortfolioShare,
    PriceQuote,
    Symbol,
    Transaction,
    percent_of,
)

logger = logging.getLogger(__name__)


@dataclass
class ConsolidatedResult:
    """Consolidated holdings plus the issues collected from every portfolio."""
    holdings: List[ConsolidatedHolding] = field(default_factory=list)
    issues: List[CalculationIssue] = field(default_factory=list)

    def __iter__(self) -> Iterator[ConsolidatedHolding]:
        return iter(self.holdings)

    def __len__(self) -> int:
        return len(self.holdings)

    @property
    def total_market_value(self) -> Decimal:
        return sum((h.total_market_value for h in self.holdings), ZERO)


class ConsolidatedHoldingsCalculator:
    """Blends each symbol's holdings from several portfolios into one record.

    All inputs are expected in the same base currency; no conversion happens
    here.
    """

    def __init__(self, holdings_calculator: Optional[HoldingsCalculator] = None,
                 max_workers: Optional[int] = None) -> None:
        """Initialize the calculator.

        Args:
            holdings_calculator: Per-portfolio calculator used by calculate()
            max_workers: Thread count for computing portfolios concurrently;
                workers inherit the caller's decimal context
        """
        self._holdings_calculator = holdings_calculator or HoldingsCalculator()
        self._max_workers = max_workers

    def consolidate(
        self,
        holdings_by_portfolio: Mapping[str, Iterable[Holding]],
        portfolio_names: Optional[Mapping[str, str]] = None,
    ) -> ConsolidatedResult:
        """Merge per-portfolio holdings by symbol.

        Args:
            holdings_by_portfolio: Holdings keyed by portfolio id
            portfolio_names: Display names keyed by portfolio id

        Returns:
            ConsolidatedResult sorted by market value, largest first
        """
        names = portfolio_names or {}
        shares: Dict[str, List[PortfolioShare]] = {}
        symbols: Dict[str, Symbol] = {}
        totals: Dict[str, List[Decimal]] = {}

        for portfolio_id, holdings in holdings_by_portfolio.items():
            for holding in holdings:
                symbols.setdefault(holding.symbol_id, holding.symbol)
                quantity, cost, value = totals.setdefault(holding.symbol_id, [ZERO, ZERO, ZERO])
                totals[holding.symbol_id] = [
                    quantity + holding.quantity,
                    cost + holding.cost_basis,
                    value + holding.market_value_base,
                ]
                shares.setdefault(holding.symbol_id, []).append(PortfolioShare(
                    portfolio_id=portfolio_id,
                    portfolio_name=names.get(portfolio_id, portfolio_id),
                    quantity=holding.quantity,
                    avg_cost=holding.avg_cost_base,
                    market_value=holding.market_value_base,
                ))

        consolidated: List[ConsolidatedHolding] = []
        for symbol_id, (quantity, cost, value) in totals.items():
            unrealized_pl = value - cost
            consolidated.append(ConsolidatedHolding(
                symbol_id=symbol_id,
                symbol=symbols[symbol_id],
                total_quantity=quantity,
                total_cost=cost,
                blended_avg_cost=cost / quantity if quantity > ZERO else ZERO,
                total_market_value=value,
                total_unrealized_pl=unrealized_pl,
                total_unrealized_pl_percent=percent_of(unrealized_pl, cost),
                current_price=value / quantity if quantity > ZERO else ZERO,
                portfolios=shares[symbol_id],
            ))

        grand_total = sum((h.total_market_value for h in consolidated), ZERO)
        for holding in consolidated:
            holding.allocation_percent = percent_of(holding.total_market_value, grand_total)

        consolidated.sort(key=lambda h: (-h.total_market_value, h.symbol.ticker, h.symbol_id))
        return ConsolidatedResult(holdings=consolidated)

    def calculate(
        self,
        portfolios: Mapping[str, str],
        transactions: Iterable[Transaction],
        symbols: Iterable[Symbol],
        prices: Iterable[PriceQuote],
        lot_method: LotMethod | str,
    ) -> ConsolidatedResult:
        """Compute every portfolio's holdings from one ledger, then merge them.

        Args:
            portfolios: Portfolio names keyed by portfolio id
            transactions: Ledger entries of all portfolios
            symbols: Symbol catalog
            prices: Latest quotes
            lot_method: Lot matching policy

        Returns:
            ConsolidatedResult with issues from every portfolio
        """
        method = LotMethod.coerce(lot_method)
        transactions = list(transactions)
        symbols = list(symbols)
        prices = list(prices)

        # Worker threads start from the default decimal context.
        context = getcontext().copy()

        def run(portfolio_id: str) -> HoldingsResult:
            with localcontext(context):
                return self._holdings_calculator.calculate(
                    portfolio_id, transactions, symbols, prices, method
                )

        portfolio_ids = list(portfolios)
        if self._max_workers and self._max_workers > 1 and len(portfolio_ids) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(pool.map(run, portfolio_ids))
        else:
            results = [run(portfolio_id) for portfolio_id in portfolio_ids]

        logger.debug(f"Consolidating {len(results)} portfolios")
        consolidated = self.consolidate(
            {result.portfolio_id: result.holdings for result in results},
            portfolios,
        )
        for result in results:
            consolidated.issues.extend(result.issues)
        return consolidated
