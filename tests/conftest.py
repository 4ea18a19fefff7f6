from __future__ import annotations

from datetime import date
from decimal import Decimal
from itertools import count

import pytest

from folio.accounting.models import AssetType, Symbol, Transaction, TransactionType

_ids = count(1)


def make_txn(
    type: TransactionType | str,
    quantity="0",
    unit_price="0",
    trade_date: date = date(2024, 1, 1),
    symbol_id: str | None = "sym-acme",
    portfolio_id: str = "portfolio-1",
    fee="0",
    id: str | None = None,
) -> Transaction:
    """Build a transaction with string or numeric amounts."""
    if isinstance(type, str):
        type = TransactionType(type)
    return Transaction(
        id=id or f"txn-{next(_ids)}",
        portfolio_id=portfolio_id,
        symbol_id=symbol_id,
        type=type,
        quantity=Decimal(str(quantity)),
        unit_price=Decimal(str(unit_price)),
        fee=Decimal(str(fee)),
        trade_date=trade_date,
    )


@pytest.fixture
def acme() -> Symbol:
    return Symbol(id="sym-acme", ticker="ACME", asset_type=AssetType.EQUITY, name="Acme Corp")


@pytest.fixture
def catalog(acme) -> list[Symbol]:
    return [
        acme,
        Symbol(id="sym-btc", ticker="BTC", asset_type=AssetType.CRYPTO, name="Bitcoin"),
        Symbol(id="sym-vti", ticker="VTI", asset_type=AssetType.ETF),
        Symbol(id="sym-bnd", ticker="BND", asset_type=AssetType.BOND),
    ]


@pytest.fixture
def scenario_ledger():
    """BUY 10 @ 100, BUY 5 @ 120, SELL 8."""
    return [
        make_txn("BUY", 10, 100, date(2024, 1, 1), id="t1"),
        make_txn("BUY", 5, 120, date(2024, 2, 1), id="t2"),
        make_txn("SELL", 8, 150, date(2024, 3, 1), id="t3"),
    ]
