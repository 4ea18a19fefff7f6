"""Portfolio-level metrics derived from holdings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .models import ZERO, Holding, PortfolioHistoryPoint, PortfolioMetrics, percent_of


class IMetricsAggregator(ABC):
    """Interface for portfolio metrics aggregation."""

    @abstractmethod
    def aggregate(
        self,
        portfolio_id: str,
        holdings: Iterable[Holding],
        prior_equity: Optional[Decimal] = None,
    ) -> PortfolioMetrics:
        """Summarize a portfolio's holdings.

        Args:
            portfolio_id: Portfolio the holdings belong to
            holdings: Current holdings
            prior_equity: Total equity of the previous valuation, if known

        Returns:
            PortfolioMetrics with totals and daily change
        """
        ...


class MetricsAggregator(IMetricsAggregator):
    """Sums holdings into equity, cost and P&L figures."""

    def aggregate(
        self,
        portfolio_id: str,
        holdings: Iterable[Holding],
        prior_equity: Optional[Decimal] = None,
    ) -> PortfolioMetrics:
        holdings = list(holdings)
        if not holdings:
            return PortfolioMetrics(portfolio_id=portfolio_id)

        total_equity = sum((h.market_value_base for h in holdings), ZERO)
        total_cost = sum((h.quantity * h.avg_cost_base for h in holdings), ZERO)
        total_pl = total_equity - total_cost

        if prior_equity is None:
            daily_pl = ZERO
            daily_pl_percent = ZERO
        else:
            daily_pl = total_equity - prior_equity
            daily_pl_percent = percent_of(daily_pl, prior_equity)

        return PortfolioMetrics(
            portfolio_id=portfolio_id,
            total_equity=total_equity,
            total_cost=total_cost,
            daily_pl=daily_pl,
            daily_pl_percent=daily_pl_percent,
            total_pl=total_pl,
            total_pl_percent=percent_of(total_pl, total_cost),
            holdings=holdings,
        )


def prior_equity_from_history(
    points: Sequence[PortfolioHistoryPoint],
    today: date,
) -> Optional[Decimal]:
    """Value of the latest history point dated before today.

    Args:
        points: History series in ascending date order
        today: Valuation date

    Returns:
        The prior value, or None when no point precedes today
    """
    prior = None
    for point in points:
        if point.date >= today:
            break
        prior = point.value
    return prior
