from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx

from folio.data.providers import BinanceRestProvider

JAN_1_MS = 1704067200000
DAY_MS = 86_400_000


class _Resp:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://api.binance.com")
            raise httpx.HTTPStatusError("boom", request=request, response=httpx.Response(self.status_code))
        return None

    def json(self):
        return self._payload


def _kline(open_ms: int, close: str) -> list:
    return [open_ms, "1", "2", "0.5", close, "100", open_ms + DAY_MS - 1, "1000"]


def test_latest_prices_map_to_symbol_ids(monkeypatch):
    p = BinanceRestProvider({"sym-btc": "BTC/USDT", "sym-eth": "ETHUSDT"}, timeout_s=1)
    seen = []

    def fake_get(url, params=None):
        seen.append(params["symbol"])
        if params["symbol"] == "ETHUSDT":
            return _Resp({}, status_code=500)
        return _Resp({"symbol": "BTCUSDT", "price": "43000.10"})

    monkeypatch.setattr(p, "_client", type("C", (), {"get": staticmethod(fake_get)})())

    out = p.get_latest(["sym-btc", "sym-eth", "sym-unknown"])

    assert seen == ["BTCUSDT", "ETHUSDT"]
    assert len(out) == 1
    assert out[0].symbol_id == "sym-btc"
    assert out[0].price == Decimal("43000.10")


def test_history_uses_daily_closes(monkeypatch):
    p = BinanceRestProvider({"sym-btc": "BTCUSDT"}, timeout_s=1)
    calls = []

    def fake_get(url, params=None):
        assert url == "/api/v3/klines"
        calls.append(params)
        return _Resp([
            _kline(JAN_1_MS, "42000"),
            _kline(JAN_1_MS + DAY_MS, "42500.5"),
            ["garbage"],
        ])

    monkeypatch.setattr(p, "_client", type("C", (), {"get": staticmethod(fake_get)})())

    quotes = p.get_history("sym-btc", date(2024, 1, 1), date(2024, 1, 2))

    assert [q.asof for q in quotes] == [date(2024, 1, 1), date(2024, 1, 2)]
    assert [q.price for q in quotes] == [Decimal("42000"), Decimal("42500.5")]
    assert calls[0]["interval"] == "1d"
    assert calls[0]["startTime"] == JAN_1_MS
    assert len(calls) == 1


def test_history_fetch_error_returns_empty(monkeypatch):
    p = BinanceRestProvider({"sym-btc": "BTCUSDT"}, timeout_s=1)

    def fake_get(url, params=None):
        raise httpx.ConnectError("offline")

    monkeypatch.setattr(p, "_client", type("C", (), {"get": staticmethod(fake_get)})())

    assert p.get_history("sym-btc", date(2024, 1, 1), date(2024, 1, 31)) == []
    assert p.get_history("sym-other", date(2024, 1, 1), date(2024, 1, 31)) == []
