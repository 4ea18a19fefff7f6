"""Data models for portfolio accounting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TransactionType(Enum):
    """Kind of ledger entry."""
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    FEE = "FEE"

    @property
    def moves_lots(self) -> bool:
        """Whether entries of this type open or consume lots."""
        return self in (TransactionType.BUY, TransactionType.SELL)


class AssetType(Enum):
    """Asset class of a symbol."""
    EQUITY = "EQUITY"
    ETF = "ETF"
    CRYPTO = "CRYPTO"
    BOND = "BOND"
    FOREX = "FOREX"
    FUND = "FUND"


class LotMethod(Enum):
    """Policy deciding which lots a sale consumes first."""
    FIFO = "FIFO"
    LIFO = "LIFO"
    HIFO = "HIFO"
    AVERAGE = "AVERAGE"

    @classmethod
    def coerce(cls, value: "LotMethod | str | None") -> "LotMethod":
        """Turn a preference value into a LotMethod.

        Args:
            value: LotMethod member or its (case-insensitive) name

        Returns:
            The matching LotMethod

        Raises:
            InvalidInputError: If value is None or not a known method
        """
        from .errors import InvalidInputError

        if isinstance(value, cls):
            return value
        if value is None:
            raise InvalidInputError("Lot method is required")
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidInputError(f"Unknown lot method: {value!r}") from None


@dataclass(frozen=True)
class Transaction:
    """An immutable ledger entry.

    Attributes:
        id: Unique transaction identifier
        portfolio_id: Owning portfolio
        symbol_id: Traded symbol, or None for a pure cash movement
        type: Kind of entry
        quantity: Units traded (0 for cash-only types)
        unit_price: Price per unit in base currency
        fee: Commission charged on the entry
        trade_date: Date the entry settled on the ledger
        trade_currency: ISO code of the original trade currency
        notes: Free-form annotation
    """
    id: str
    portfolio_id: str
    symbol_id: Optional[str]
    type: TransactionType
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    fee: Decimal = ZERO
    trade_date: date = field(default_factory=date.today)
    trade_currency: str = "USD"
    notes: Optional[str] = None

    @property
    def gross_amount(self) -> Decimal:
        """Quantity times unit price, before fees."""
        return self.quantity * self.unit_price

    @property
    def cash_amount(self) -> Decimal:
        """Cash moved by the entry before fees.

        Cash-only entries are usually recorded with a zero quantity and the
        amount in unit_price.
        """
        if self.quantity > ZERO:
            return self.gross_amount
        return self.unit_price

    @property
    def cash_effect(self) -> Decimal:
        """Signed change to the cash balance caused by the entry, fees included."""
        if self.type in (TransactionType.BUY, TransactionType.WITHDRAW, TransactionType.FEE):
            return -(self.cash_amount + self.fee)
        return self.cash_amount - self.fee


@dataclass(frozen=True)
class Symbol:
    """Catalog entry for a tradable instrument."""
    id: str
    ticker: str
    asset_type: AssetType = AssetType.EQUITY
    quote_currency: str = "USD"
    name: str = ""
    exchange: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.ticker


@dataclass(frozen=True)
class PriceQuote:
    """A price observation for a symbol, already converted to base currency."""
    symbol_id: str
    price: Decimal
    asof: date
    currency: str = "USD"


@dataclass
class Lot:
    """An open purchase lot.

    Attributes:
        quantity_remaining: Units still open
        unit_cost: Cost basis per unit
        opened_at: Trade date of the originating BUY
    """
    quantity_remaining: Decimal
    unit_cost: Decimal
    opened_at: date

    @property
    def cost_basis(self) -> Decimal:
        """Total cost basis still carried by this lot."""
        return self.quantity_remaining * self.unit_cost


@dataclass
class Holding:
    """Current position of one symbol inside one portfolio.

    Attributes:
        portfolio_id: Owning portfolio
        symbol_id: Held symbol
        symbol: Catalog entry for the symbol
        quantity: Sum of remaining lot quantities
        avg_cost_base: Quantity-weighted cost of the remaining lots
        market_value_base: Quantity times current price
        unrealized_pl: Market value minus cost basis
        unrealized_pl_percent: Unrealized P&L relative to cost basis (0-100 scale)
        allocation_percent: Share of the portfolio's total market value
        current_price: Latest price, or average cost when no price is known
        realized_pl: P&L realized by the sells replayed for this symbol
        price_missing: True when current_price fell back to cost
    """
    portfolio_id: str
    symbol_id: str
    symbol: Symbol
    quantity: Decimal
    avg_cost_base: Decimal
    market_value_base: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    current_price: Decimal
    allocation_percent: Decimal = ZERO
    realized_pl: Decimal = ZERO
    price_missing: bool = False

    @property
    def cost_basis(self) -> Decimal:
        """Total cost basis of the position."""
        return self.quantity * self.avg_cost_base


@dataclass(frozen=True)
class PortfolioShare:
    """One portfolio's contribution to a consolidated holding."""
    portfolio_id: str
    portfolio_name: str
    quantity: Decimal
    avg_cost: Decimal
    market_value: Decimal


@dataclass
class ConsolidatedHolding:
    """A symbol's position blended across portfolios.

    Attributes:
        symbol_id: Held symbol
        symbol: Catalog entry for the symbol
        total_quantity: Sum of quantities across portfolios
        total_cost: Sum of per-portfolio cost bases
        blended_avg_cost: total_cost / total_quantity
        total_market_value: Sum of per-portfolio market values
        total_unrealized_pl: total_market_value - total_cost
        total_unrealized_pl_percent: P&L relative to total_cost (0-100 scale)
        allocation_percent: Share of the grand total across all symbols
        current_price: total_market_value / total_quantity
        portfolios: Per-portfolio breakdown
    """
    symbol_id: str
    symbol: Symbol
    total_quantity: Decimal
    total_cost: Decimal
    blended_avg_cost: Decimal
    total_market_value: Decimal
    total_unrealized_pl: Decimal
    total_unrealized_pl_percent: Decimal
    current_price: Decimal
    allocation_percent: Decimal = ZERO
    portfolios: List[PortfolioShare] = field(default_factory=list)


@dataclass
class PortfolioMetrics:
    """Portfolio-level totals derived from holdings."""
    portfolio_id: str
    total_equity: Decimal = ZERO
    total_cost: Decimal = ZERO
    daily_pl: Decimal = ZERO
    daily_pl_percent: Decimal = ZERO
    total_pl: Decimal = ZERO
    total_pl_percent: Decimal = ZERO
    holdings: List[Holding] = field(default_factory=list)


@dataclass(frozen=True)
class PortfolioHistoryPoint:
    """Value and cost basis of a portfolio at the end of a day."""
    date: date
    value: Decimal
    cost: Decimal


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return part / whole on a 0-100 scale, or 0 when whole is not positive."""
    if whole <= ZERO:
        return ZERO
    return part / whole * HUNDRED
