from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from folio.accounting.errors import InvalidInputError
from folio.accounting.models import LotMethod

logger = logging.getLogger(__name__)

BASE_CURRENCY_ENV = "FOLIO_BASE_CURRENCY"
LOT_METHOD_ENV = "FOLIO_LOT_METHOD"

DEFAULT_BASE_CURRENCY = "USD"
DEFAULT_LOT_METHOD = LotMethod.FIFO


@dataclass(frozen=True)
class Preferences:
    """User settings the engine needs from the profile layer."""
    base_currency: str = DEFAULT_BASE_CURRENCY
    lot_method: LotMethod = DEFAULT_LOT_METHOD


def normalize_lot_method(value: Optional[str]) -> LotMethod:
    """Coerce a stored preference, falling back to FIFO when unset or unknown."""
    if not value:
        return DEFAULT_LOT_METHOD
    try:
        return LotMethod.coerce(value)
    except InvalidInputError:
        logger.warning(f"Ignoring unknown lot method preference {value!r}; using {DEFAULT_LOT_METHOD.value}")
        return DEFAULT_LOT_METHOD


def load_preferences(environ: Optional[Mapping[str, str]] = None) -> Preferences:
    """Read preferences from environment variables.

    - FOLIO_BASE_CURRENCY: ISO code, upper-cased (default USD)
    - FOLIO_LOT_METHOD: FIFO, LIFO, HIFO or AVERAGE (default FIFO)
    """
    env = os.environ if environ is None else environ
    currency = (env.get(BASE_CURRENCY_ENV) or DEFAULT_BASE_CURRENCY).strip().upper()
    return Preferences(
        base_currency=currency or DEFAULT_BASE_CURRENCY,
        lot_method=normalize_lot_method(env.get(LOT_METHOD_ENV)),
    )
