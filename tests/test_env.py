from __future__ import annotations

from folio.accounting.models import LotMethod
from folio.util.env import Preferences, load_preferences, normalize_lot_method


def test_defaults_when_unset():
    assert load_preferences({}) == Preferences(base_currency="USD", lot_method=LotMethod.FIFO)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("FOLIO_BASE_CURRENCY", " eur ")
    monkeypatch.setenv("FOLIO_LOT_METHOD", "hifo")

    prefs = load_preferences()

    assert prefs.base_currency == "EUR"
    assert prefs.lot_method is LotMethod.HIFO


def test_unknown_lot_method_falls_back_to_fifo(caplog):
    assert normalize_lot_method("LOWEST") is LotMethod.FIFO
    assert "LOWEST" in caplog.text


def test_blank_values_use_defaults():
    prefs = load_preferences({"FOLIO_BASE_CURRENCY": "  ", "FOLIO_LOT_METHOD": ""})

    assert prefs == Preferences()
