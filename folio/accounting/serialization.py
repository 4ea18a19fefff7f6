"""Serializers for ledger entries and derived records.

Decimals are written as strings and dates as ISO strings so the output
survives a JSON round trip without losing precision.
"""

from __future__ import annotations

import hashlib
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from .models import (
    AssetType,
    Holding,
    PortfolioHistoryPoint,
    Symbol,
    Transaction,
    TransactionType,
)


class TransactionSerializer:
    """Serializer for transactions to/from JSON-compatible dictionaries."""

    @staticmethod
    def serialize(txn: Transaction) -> dict:
        """Serialize a transaction.

        Args:
            txn: Transaction to serialize

        Returns:
            Dictionary with string-encoded amounts and ISO dates
        """
        return {
            "id": txn.id,
            "portfolio_id": txn.portfolio_id,
            "symbol_id": txn.symbol_id,
            "type": txn.type.value,
            "quantity": str(txn.quantity),
            "unit_price": str(txn.unit_price),
            "fee": str(txn.fee),
            "trade_date": txn.trade_date.isoformat(),
            "trade_currency": txn.trade_currency,
            "notes": txn.notes,
        }

    @staticmethod
    def deserialize(data: dict) -> Transaction:
        """Deserialize a transaction.

        Args:
            data: Dictionary produced by serialize()

        Returns:
            Restored Transaction

        Raises:
            KeyError: If a required field is absent
            ValueError: If the type, an amount or the date cannot be parsed
        """
        return Transaction(
            id=data["id"],
            portfolio_id=data["portfolio_id"],
            symbol_id=data.get("symbol_id"),
            type=TransactionType(str(data["type"]).upper()),
            quantity=Decimal(data.get("quantity") or "0"),
            unit_price=Decimal(data.get("unit_price") or "0"),
            fee=Decimal(data.get("fee") or "0"),
            trade_date=date.fromisoformat(str(data["trade_date"])[:10]),
            trade_currency=data.get("trade_currency") or "USD",
            notes=data.get("notes"),
        )

    @classmethod
    def serialize_many(cls, transactions: Iterable[Transaction]) -> List[dict]:
        return [cls.serialize(txn) for txn in transactions]

    @classmethod
    def deserialize_many(cls, rows: Iterable[dict]) -> List[Transaction]:
        return [cls.deserialize(row) for row in rows]


class SymbolSerializer:
    """Serializer for catalog symbols."""

    @staticmethod
    def serialize(symbol: Symbol) -> dict:
        return {
            "id": symbol.id,
            "ticker": symbol.ticker,
            "name": symbol.name,
            "asset_type": symbol.asset_type.value,
            "quote_currency": symbol.quote_currency,
            "exchange": symbol.exchange,
        }

    @staticmethod
    def deserialize(data: dict) -> Symbol:
        return Symbol(
            id=data["id"],
            ticker=data["ticker"],
            asset_type=AssetType(str(data.get("asset_type") or "EQUITY").upper()),
            quote_currency=data.get("quote_currency") or "USD",
            name=data.get("name") or "",
            exchange=data.get("exchange") or "",
        )


class HoldingSerializer:
    """Serializer for computed holdings and history points (output only)."""

    @staticmethod
    def serialize(holding: Holding) -> dict:
        return {
            "portfolio_id": holding.portfolio_id,
            "symbol_id": holding.symbol_id,
            "symbol": SymbolSerializer.serialize(holding.symbol),
            "quantity": str(holding.quantity),
            "avg_cost_base": str(holding.avg_cost_base),
            "market_value_base": str(holding.market_value_base),
            "unrealized_pl": str(holding.unrealized_pl),
            "unrealized_pl_percent": str(holding.unrealized_pl_percent),
            "allocation_percent": str(holding.allocation_percent),
            "current_price": str(holding.current_price),
            "realized_pl": str(holding.realized_pl),
            "price_missing": holding.price_missing,
        }

    @staticmethod
    def serialize_point(point: PortfolioHistoryPoint) -> dict:
        return {
            "date": point.date.isoformat(),
            "value": str(point.value),
            "cost": str(point.cost),
        }


def ledger_signature(transactions: Iterable[Transaction], include_portfolio: bool = False) -> str:
    """Content hash of a ledger, for callers that cache computed results.

    Two ledgers with the same entries in the same order share a signature.

    Args:
        transactions: Ledger entries
        include_portfolio: Whether the owning portfolio is part of the key

    Returns:
        SHA-256 hex digest; the digest of no input for an empty ledger
    """
    digest = hashlib.sha256()
    for txn in transactions:
        parts = [
            txn.id,
            str(txn.quantity),
            str(txn.unit_price),
            str(txn.fee),
            txn.type.value,
            txn.trade_date.isoformat(),
            txn.symbol_id or "",
        ]
        if include_portfolio:
            parts.append(txn.portfolio_id)
        digest.update("::".join(parts).encode("utf-8"))
        digest.update(b"|")
    return digest.hexdigest()
