"""Errors and non-fatal issue records produced by the accounting engine.

Faults in a single transaction or symbol never abort a whole computation.
The calculators catch the exceptions defined here, turn them into
CalculationIssue records and return them next to the primary result.
Only structurally invalid calls (such as a missing lot method) propagate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class PortfolioError(Exception):
    """Base class for accounting errors."""


class InvalidInputError(PortfolioError, ValueError):
    """A transaction or argument is malformed.

    Attributes:
        transaction_id: Offending transaction, when the error is per-entry
    """

    def __init__(self, message: str, transaction_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.transaction_id = transaction_id


class InsufficientLotsError(PortfolioError):
    """A sale consumes more units than are open for the symbol.

    Attributes:
        symbol_id: Symbol whose book ran short, when known
        requested: Quantity the sale tried to consume
        available: Quantity that was open
    """

    def __init__(
        self,
        requested: Decimal,
        available: Decimal,
        symbol_id: Optional[str] = None,
    ) -> None:
        self.requested = requested
        self.available = available
        self.symbol_id = symbol_id
        super().__init__(
            f"Cannot consume {requested} units with only {available} open "
            f"(shortfall {self.shortfall})"
        )

    @property
    def shortfall(self) -> Decimal:
        """Units the sale asked for beyond what was open."""
        return self.requested - self.available


class MissingPriceWarning(UserWarning):
    """No usable price exists for a held symbol; cost basis was used instead."""


class IssueKind(Enum):
    """Category of a non-fatal calculation issue."""
    INSUFFICIENT_LOTS = "insufficient_lots"
    MISSING_PRICE = "missing_price"
    INVALID_INPUT = "invalid_input"
    UNKNOWN_SYMBOL = "unknown_symbol"


@dataclass(frozen=True)
class CalculationIssue:
    """A problem found while computing a result.

    Attributes:
        kind: Category of the issue
        message: Human-readable description
        symbol_id: Affected symbol, if any
        transaction_id: Affected transaction, if any
        portfolio_id: Affected portfolio, if any
        shortfall: Missing units for INSUFFICIENT_LOTS issues
    """
    kind: IssueKind
    message: str
    symbol_id: Optional[str] = None
    transaction_id: Optional[str] = None
    portfolio_id: Optional[str] = None
    shortfall: Optional[Decimal] = None

    @classmethod
    def from_error(
        cls,
        error: Exception,
        *,
        symbol_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
        portfolio_id: Optional[str] = None,
    ) -> "CalculationIssue":
        """Build an issue record from one of the engine's exceptions."""
        if isinstance(error, InsufficientLotsError):
            return cls(
                kind=IssueKind.INSUFFICIENT_LOTS,
                message=str(error),
                symbol_id=symbol_id or error.symbol_id,
                transaction_id=transaction_id,
                portfolio_id=portfolio_id,
                shortfall=error.shortfall,
            )
        if isinstance(error, InvalidInputError):
            return cls(
                kind=IssueKind.INVALID_INPUT,
                message=str(error),
                symbol_id=symbol_id,
                transaction_id=transaction_id or error.transaction_id,
                portfolio_id=portfolio_id,
            )
        if isinstance(error, MissingPriceWarning):
            return cls(
                kind=IssueKind.MISSING_PRICE,
                message=str(error),
                symbol_id=symbol_id,
                transaction_id=transaction_id,
                portfolio_id=portfolio_id,
            )
        raise TypeError(f"Unsupported error type: {type(error).__name__}")

    def with_portfolio(self, portfolio_id: str) -> "CalculationIssue":
        """Return a copy tagged with the given portfolio."""
        return CalculationIssue(
            kind=self.kind,
            message=self.message,
            symbol_id=self.symbol_id,
            transaction_id=self.transaction_id,
            portfolio_id=portfolio_id,
            shortfall=self.shortfall,
        )
