"""Lot book for one (portfolio, symbol) pair."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List

from .errors import InsufficientLotsError
from .models import ZERO, Lot, LotMethod


@dataclass
class LotConsumption:
    """Outcome of consuming units from a lot book.

    Attributes:
        quantity: Units consumed
        cost_basis: Cost basis released by the consumption
        lots: Slices of the lots touched, in consumption order; each slice's
            quantity_remaining is the amount taken from that lot
    """
    quantity: Decimal = ZERO
    cost_basis: Decimal = ZERO
    lots: List[Lot] = field(default_factory=list)


class LotBook:
    """Open purchase lots for a single symbol in a single portfolio.

    The lot method is fixed when the book is created: AVERAGE keeps one
    synthetic lot whose unit cost is re-averaged on every purchase, so it
    changes how lots are opened as well as how they are consumed.
    """

    def __init__(self, method: LotMethod = LotMethod.FIFO, symbol_id: str | None = None) -> None:
        """Initialize an empty book.

        Args:
            method: Lot matching policy applied on consumption
            symbol_id: Symbol the book tracks, used in error reports
        """
        self._method = LotMethod.coerce(method)
        self._symbol_id = symbol_id
        self._lots: List[Lot] = []

    @property
    def method(self) -> LotMethod:
        return self._method

    @property
    def lots(self) -> List[Lot]:
        """Copies of the open lots in opening order."""
        return [Lot(lot.quantity_remaining, lot.unit_cost, lot.opened_at) for lot in self._lots]

    @property
    def quantity(self) -> Decimal:
        """Total open units."""
        return sum((lot.quantity_remaining for lot in self._lots), ZERO)

    @property
    def cost_basis(self) -> Decimal:
        """Total cost basis of the open units."""
        return sum((lot.cost_basis for lot in self._lots), ZERO)

    @property
    def average_cost(self) -> Decimal:
        """Quantity-weighted unit cost of the open lots, 0 when empty."""
        quantity = self.quantity
        if quantity <= ZERO:
            return ZERO
        if self._method is LotMethod.AVERAGE:
            return self._lots[0].unit_cost
        return self.cost_basis / quantity

    def __len__(self) -> int:
        return len(self._lots)

    def __bool__(self) -> bool:
        return bool(self._lots)

    def open(self, quantity: Decimal, unit_cost: Decimal, opened_at: date) -> None:
        """Record a purchase.

        Args:
            quantity: Units bought (already validated as positive)
            unit_cost: Cost per unit including the purchase fee share
                (unit_price + fee / quantity); AVERAGE blends these
                fee-inclusive costs, not the bare trade prices
            opened_at: Trade date of the purchase
        """
        if self._method is LotMethod.AVERAGE and self._lots:
            lot = self._lots[0]
            old_quantity = lot.quantity_remaining
            total_quantity = old_quantity + quantity
            lot.unit_cost = (old_quantity * lot.unit_cost + quantity * unit_cost) / total_quantity
            lot.quantity_remaining = total_quantity
            return
        self._lots.append(Lot(quantity, unit_cost, opened_at))

    def consume(self, quantity: Decimal) -> LotConsumption:
        """Remove units from the book following the lot method.

        Args:
            quantity: Units sold

        Returns:
            LotConsumption describing what was taken

        Raises:
            InsufficientLotsError: If quantity exceeds the open units. The
                book is left untouched in that case.
        """
        available = self.quantity
        if quantity > available:
            raise InsufficientLotsError(quantity, available, symbol_id=self._symbol_id)

        result = LotConsumption()
        remaining = quantity
        while remaining > ZERO and self._lots:
            index = self._next_index()
            lot = self._lots[index]
            taken = min(remaining, lot.quantity_remaining)
            lot.quantity_remaining -= taken
            remaining -= taken
            result.quantity += taken
            result.cost_basis += taken * lot.unit_cost
            result.lots.append(Lot(taken, lot.unit_cost, lot.opened_at))
            if lot.quantity_remaining <= ZERO:
                del self._lots[index]
        return result

    def drain(self) -> LotConsumption:
        """Consume every open unit."""
        return self.consume(self.quantity)

    def _next_index(self) -> int:
        # Same-date lots are ordered by the position they were opened in.
        indexes = range(len(self._lots))
        if self._method is LotMethod.LIFO:
            return max(indexes, key=lambda i: (self._lots[i].opened_at, i))
        if self._method is LotMethod.HIFO:
            return min(
                indexes,
                key=lambda i: (-self._lots[i].unit_cost, self._lots[i].opened_at, i),
            )
        return min(indexes, key=lambda i: (self._lots[i].opened_at, i))
