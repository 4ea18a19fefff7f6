# Accounting module
"""Portfolio accounting engine: lot books, holdings, metrics, consolidation and history."""

from .models import (
    AssetType,
    ConsolidatedHolding,
    Holding,
    Lot,
    LotMethod,
    PortfolioHistoryPoint,
    PortfolioMetrics,
    PortfolioShare,
    PriceQuote,
    Symbol,
    Transaction,
    TransactionType,
)
from .errors import (
    CalculationIssue,
    InsufficientLotsError,
    InvalidInputError,
    IssueKind,
    MissingPriceWarning,
    PortfolioError,
)
from .lots import LotBook, LotConsumption
from .holdings import HoldingsCalculator, HoldingsResult, IHoldingsCalculator
from .metrics import IMetricsAggregator, MetricsAggregator, prior_equity_from_history
from .consolidated import ConsolidatedHoldingsCalculator, ConsolidatedResult
from .history import HistoryReconstructor, HistoryResult
from .serialization import (
    HoldingSerializer,
    SymbolSerializer,
    TransactionSerializer,
    ledger_signature,
)

__all__ = [
    "AssetType",
    "ConsolidatedHolding",
    "Holding",
    "Lot",
    "LotMethod",
    "PortfolioHistoryPoint",
    "PortfolioMetrics",
    "PortfolioShare",
    "PriceQuote",
    "Symbol",
    "Transaction",
    "TransactionType",
    "CalculationIssue",
    "InsufficientLotsError",
    "InvalidInputError",
    "IssueKind",
    "MissingPriceWarning",
    "PortfolioError",
    "LotBook",
    "LotConsumption",
    "HoldingsCalculator",
    "HoldingsResult",
    "IHoldingsCalculator",
    "IMetricsAggregator",
    "MetricsAggregator",
    "prior_equity_from_history",
    "ConsolidatedHoldingsCalculator",
    "ConsolidatedResult",
    "HistoryReconstructor",
    "HistoryResult",
    "HoldingSerializer",
    "SymbolSerializer",
    "TransactionSerializer",
    "ledger_signature",
]
