"""Tests for ledger serialization and signatures."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from conftest import make_txn
from folio.accounting.holdings import HoldingsCalculator
from folio.accounting.models import PortfolioHistoryPoint, PriceQuote, Transaction, TransactionType
from folio.accounting.serialization import (
    HoldingSerializer,
    SymbolSerializer,
    TransactionSerializer,
    ledger_signature,
)


@st.composite
def transaction_strategy(draw):
    """Generate a valid ledger entry."""
    txn_type = draw(st.sampled_from(list(TransactionType)))
    return Transaction(
        id=str(draw(st.uuids())),
        portfolio_id=draw(st.sampled_from(["p1", "p2"])),
        symbol_id=draw(st.one_of(st.none(), st.sampled_from(["s1", "s2"]))),
        type=txn_type,
        quantity=draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("1000"), places=8)),
        unit_price=draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=4)),
        fee=draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("50"), places=2)),
        trade_date=draw(st.dates(min_value=date(2015, 1, 1), max_value=date(2030, 12, 31))),
        trade_currency=draw(st.sampled_from(["USD", "EUR", "GBP"])),
        notes=draw(st.one_of(st.none(), st.text(max_size=20))),
    )


@given(transactions=st.lists(transaction_strategy(), max_size=10))
@settings(max_examples=100)
def test_transactions_survive_json_round_trip(transactions):
    """
    For any ledger, serializing to JSON text and back SHALL restore equal
    transactions without losing decimal precision.
    """
    text = json.dumps(TransactionSerializer.serialize_many(transactions))

    restored = TransactionSerializer.deserialize_many(json.loads(text))

    assert restored == transactions


def test_deserialize_accepts_timestamps_and_lowercase_types():
    txn = TransactionSerializer.deserialize({
        "id": "t1",
        "portfolio_id": "p1",
        "symbol_id": "s1",
        "type": "buy",
        "quantity": "1.5",
        "unit_price": "10",
        "trade_date": "2024-01-02T00:00:00Z",
    })

    assert txn.type is TransactionType.BUY
    assert txn.trade_date == date(2024, 1, 2)
    assert txn.fee == Decimal("0")


def test_deserialize_rejects_unknown_type():
    with pytest.raises(ValueError):
        TransactionSerializer.deserialize({
            "id": "t1", "portfolio_id": "p1", "type": "SPLIT", "trade_date": "2024-01-01",
        })


def test_holding_serialization_is_json_ready(scenario_ledger, catalog):
    result = HoldingsCalculator().calculate(
        "portfolio-1", scenario_ledger, catalog,
        [PriceQuote("sym-acme", Decimal("150"), date(2024, 6, 1))], "HIFO",
    )

    data = json.loads(json.dumps(HoldingSerializer.serialize(result.holdings[0])))

    assert data["quantity"] == "7"
    assert data["unrealized_pl"] == "350"
    assert data["symbol"]["ticker"] == "ACME"
    assert SymbolSerializer.deserialize(data["symbol"]) == catalog[0]


def test_history_point_serialization():
    point = PortfolioHistoryPoint(date(2024, 5, 1), Decimal("10.50"), Decimal("9"))

    assert HoldingSerializer.serialize_point(point) == {"date": "2024-05-01", "value": "10.50", "cost": "9"}


def test_signature_is_stable_and_content_sensitive():
    ledger = [make_txn("BUY", 1, 10, id="a"), make_txn("SELL", 1, 12, id="b")]
    edited = [ledger[0], make_txn("SELL", 1, 13, id="b")]

    assert ledger_signature(ledger) == ledger_signature(list(ledger))
    assert ledger_signature(ledger) != ledger_signature(edited)
    assert ledger_signature(ledger) != ledger_signature(list(reversed(ledger)))


def test_signature_can_include_portfolio():
    mine = [make_txn("BUY", 1, 10, id="a", portfolio_id="p1")]
    theirs = [make_txn("BUY", 1, 10, id="a", portfolio_id="p2")]

    assert ledger_signature(mine) == ledger_signature(theirs)
    assert ledger_signature(mine, include_portfolio=True) != ledger_signature(theirs, include_portfolio=True)
