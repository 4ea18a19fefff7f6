"""Binance REST adapter for crypto quotes.

Implements the latest-price and historical-price collaborator interfaces for
symbols that map to Binance spot pairs. Prices are taken in the pair's quote
asset (USDT is treated as USD); converting them to another base currency is
up to the caller.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional

import httpx

from folio.accounting.models import PriceQuote
from folio.data.sources import IHistoricalPriceSource, ILatestPriceSource

logger = logging.getLogger(__name__)

BINANCE_BASE = "https://api.binance.com"
KLINE_LIMIT = 1000


class BinanceRestProvider(ILatestPriceSource, IHistoricalPriceSource):
    def __init__(
        self,
        pairs: Mapping[str, str],
        timeout_s: float = 5.0,
        currency: str = "USD",
        client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            pairs: Binance pair per symbol id, e.g. {"sym-btc": "BTCUSDT"}
            timeout_s: Request timeout in seconds
            currency: Currency label attached to returned quotes
            client: Preconfigured HTTP client (default: a new one)
        """
        self._pairs = {symbol_id: self._normalize_symbol(pair) for symbol_id, pair in pairs.items()}
        self._currency = currency
        self._client = client or httpx.Client(base_url=BINANCE_BASE, timeout=timeout_s)
        self._lock = threading.Lock()

    def _normalize_symbol(self, s: str) -> str:
        s = s.replace("/", "").replace("-", "").replace(" ", "")
        return s.upper()

    def close(self) -> None:
        self._client.close()

    def get_latest(self, symbol_ids: Iterable[str]) -> List[PriceQuote]:
        today = date.today()
        out: List[PriceQuote] = []
        for symbol_id in symbol_ids:
            pair = self._pairs.get(symbol_id)
            if pair is None:
                continue
            try:
                with self._lock:
                    r = self._client.get("/api/v3/ticker/price", params={"symbol": pair})
                r.raise_for_status()
                price = Decimal(str(r.json()["price"]))
            except (httpx.HTTPError, KeyError, InvalidOperation, ValueError) as e:
                logger.error(f"Failed to fetch latest price for {pair}: {e}")
                continue
            out.append(PriceQuote(symbol_id=symbol_id, price=price, asof=today, currency=self._currency))
        return out

    def get_history(self, symbol_id: str, start: date, end: date) -> List[PriceQuote]:
        pair = self._pairs.get(symbol_id)
        if pair is None or end < start:
            return []
        rows = self.fetch_klines(pair, start, end)
        quotes: Dict[date, PriceQuote] = {}
        for row in rows:
            day = row["date"]
            if start <= day <= end:
                quotes[day] = PriceQuote(symbol_id=symbol_id, price=row["c"], asof=day, currency=self._currency)
        return [quotes[d] for d in sorted(quotes)]

    def fetch_klines(self, pair: str, start: date, end: date, interval: str = "1d") -> List[dict]:
        """Fetch candles for a pair between two dates, paging as needed.

        Returns:
            Rows with the candle's open date and Decimal OHLC values. Fetch
            errors are logged and end the paging early.
        """
        sym = self._normalize_symbol(pair)
        cursor = _to_millis(start)
        end_ms = _to_millis(end + timedelta(days=1)) - 1
        out: List[dict] = []
        while cursor <= end_ms:
            try:
                with self._lock:
                    r = self._client.get(
                        "/api/v3/klines",
                        params={
                            "symbol": sym,
                            "interval": interval,
                            "startTime": cursor,
                            "endTime": end_ms,
                            "limit": KLINE_LIMIT,
                        },
                    )
                r.raise_for_status()
                data = r.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch klines for {sym}: {e}")
                break

            if not data:
                break
            for row in data:
                try:
                    # https://binance-docs.github.io/apidocs/spot/en/#kline-candlestick-data
                    open_time = int(row[0])
                    out.append({
                        "symbol": sym,
                        "t": open_time,
                        "date": datetime.fromtimestamp(open_time / 1000, tz=timezone.utc).date(),
                        "o": Decimal(str(row[1])),
                        "h": Decimal(str(row[2])),
                        "l": Decimal(str(row[3])),
                        "c": Decimal(str(row[4])),
                    })
                except (IndexError, TypeError, ValueError, InvalidOperation):
                    continue
            if len(data) < KLINE_LIMIT:
                break
            cursor = int(data[-1][0]) + 1
        return out


def _to_millis(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp() * 1000)
