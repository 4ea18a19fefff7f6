from __future__ import annotations

from datetime import date
from decimal import Decimal

from conftest import make_txn
from folio.accounting.history import HistoryReconstructor
from folio.accounting.holdings import HoldingsCalculator
from folio.accounting.models import LotMethod, PriceQuote
from folio.data.sources import InMemoryMarketData, load_price_history


def test_in_memory_latest_and_history(catalog):
    market = InMemoryMarketData(catalog)
    market.update_price("sym-acme", 10, date(2024, 1, 1))
    market.update_price("sym-acme", "11.5", date(2024, 1, 3))
    market.update_price("sym-acme", 12, date(2024, 1, 2))

    latest = market.get_latest(["sym-acme", "sym-btc"])
    history = market.get_history("sym-acme", date(2024, 1, 2), date(2024, 1, 31))

    assert latest == [PriceQuote("sym-acme", Decimal("11.5"), date(2024, 1, 3))]
    assert [q.price for q in history] == [Decimal("12"), Decimal("11.5")]


def test_same_date_quote_replaces_previous(catalog):
    market = InMemoryMarketData(catalog)
    market.update_price("sym-acme", 10, date(2024, 1, 1))
    market.update_price("sym-acme", 11, date(2024, 1, 1))

    assert market.get_latest(["sym-acme"])[0].price == Decimal("11")


def test_symbol_lookup(catalog):
    market = InMemoryMarketData(catalog)

    assert [s.ticker for s in market.get_symbols(["sym-btc", "nope"])] == ["BTC"]
    assert len(market.get_symbols()) == len(catalog)


def test_sources_feed_the_engine(scenario_ledger, catalog):
    market = InMemoryMarketData(catalog, [
        PriceQuote("sym-acme", Decimal("110"), date(2024, 1, 15)),
        PriceQuote("sym-acme", Decimal("150"), date(2024, 3, 1)),
    ])
    symbol_ids = {t.symbol_id for t in scenario_ledger}

    holdings = HoldingsCalculator().calculate(
        "portfolio-1", scenario_ledger, market.get_symbols(symbol_ids),
        market.get_latest(symbol_ids), LotMethod.HIFO,
    )
    history = HistoryReconstructor().reconstruct(
        scenario_ledger,
        load_price_history(market, symbol_ids, date(2024, 1, 1), date(2024, 3, 1)),
        LotMethod.HIFO,
    )

    assert holdings.total_market_value == Decimal("1050")
    assert history.points[-1].value == holdings.total_market_value
    assert [p.value for p in history] == [Decimal("1000"), Decimal("1800"), Decimal("1050")]
