"""Chronological replay of ledger entries into lot books.

Shared by the holdings calculator and the history reconstructor so both
apply purchases, sales and validation identically.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .errors import CalculationIssue, InsufficientLotsError, InvalidInputError
from .lots import LotBook
from .models import ZERO, LotMethod, Transaction, TransactionType

logger = logging.getLogger(__name__)


def validate_transaction(txn: Transaction) -> None:
    """Check a ledger entry before it is replayed.

    Raises:
        InvalidInputError: If the entry is malformed
    """
    if not isinstance(txn.type, TransactionType):
        raise InvalidInputError(f"Unknown transaction type: {txn.type!r}", txn.id)
    if not isinstance(txn.trade_date, date):
        raise InvalidInputError("Trade date is missing", txn.id)
    for name in ("quantity", "unit_price", "fee"):
        value = getattr(txn, name)
        if not isinstance(value, Decimal) or not value.is_finite():
            raise InvalidInputError(f"{name} must be a finite Decimal, got {value!r}", txn.id)
        if value < ZERO:
            raise InvalidInputError(f"{name} cannot be negative: {value}", txn.id)
    if txn.type.moves_lots:
        if not txn.symbol_id:
            raise InvalidInputError(f"{txn.type.value} requires a symbol", txn.id)
        if txn.quantity <= ZERO:
            raise InvalidInputError(f"{txn.type.value} requires a positive quantity", txn.id)


def chronological(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Sort entries by trade date, keeping input order for equal dates."""
    return sorted(transactions, key=lambda txn: txn.trade_date)


def split_valid(
    transactions: Iterable[Transaction],
    portfolio_id: Optional[str] = None,
) -> tuple[List[Transaction], List[CalculationIssue]]:
    """Separate well-formed entries from malformed ones.

    Returns:
        Tuple of (valid entries in input order, issues for rejected entries)
    """
    valid: List[Transaction] = []
    issues: List[CalculationIssue] = []
    for txn in transactions:
        try:
            validate_transaction(txn)
        except InvalidInputError as e:
            logger.warning(f"Skipping transaction {txn.id}: {e}")
            issues.append(CalculationIssue.from_error(
                e, symbol_id=txn.symbol_id, portfolio_id=portfolio_id or txn.portfolio_id,
            ))
            continue
        valid.append(txn)
    return valid, issues


class SymbolLedger:
    """Running lot state for one symbol while its entries are replayed.

    Attributes:
        book: Open lots for the symbol
        realized_pl: P&L realized by the sales applied so far
    """

    def __init__(self, symbol_id: str, method: LotMethod) -> None:
        self.symbol_id = symbol_id
        self.book = LotBook(method, symbol_id=symbol_id)
        self.realized_pl = ZERO

    def apply(self, txn: Transaction) -> Optional[CalculationIssue]:
        """Apply one validated entry.

        Cash-only entries leave the book untouched. A sale larger than the
        open quantity drains the book and is reported as an issue.

        Returns:
            The issue raised by the entry, or None
        """
        if txn.type is TransactionType.BUY:
            unit_cost = txn.unit_price + txn.fee / txn.quantity
            self.book.open(txn.quantity, unit_cost, txn.trade_date)
            return None

        if txn.type is not TransactionType.SELL:
            return None

        issue = None
        try:
            consumption = self.book.consume(txn.quantity)
        except InsufficientLotsError as e:
            logger.warning(
                f"Sale {txn.id} of {self.symbol_id} exceeds open lots: {e}"
            )
            issue = CalculationIssue.from_error(
                e, symbol_id=self.symbol_id, transaction_id=txn.id,
                portfolio_id=txn.portfolio_id,
            )
            consumption = self.book.drain()

        proceeds = consumption.quantity * txn.unit_price - txn.fee
        self.realized_pl += proceeds - consumption.cost_basis
        return issue
