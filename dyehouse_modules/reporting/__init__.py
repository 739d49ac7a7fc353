"""
Dyehouse reporting -- read models over a batch snapshot.

Usage:
    from dyehouse_modules.reporting import QueryFacade, to_wire

    facade = QueryFacade()
    to_wire(facade.overall_totals(batches))
"""

from dyehouse_modules.reporting.config import ReportingConfig
from dyehouse_modules.reporting.models import (
    ActiveWorkBoard,
    ActiveWorkEntry,
    ActiveWorkGroup,
    BalanceMatrix,
    BalanceRow,
    DimensionSummary,
    LedgerView,
    OutlierEntry,
    OverallTotals,
)
from dyehouse_modules.reporting.serialization import to_wire
from dyehouse_modules.reporting.service import QueryFacade

__all__ = [
    "QueryFacade",
    "ReportingConfig",
    "ActiveWorkBoard",
    "ActiveWorkEntry",
    "ActiveWorkGroup",
    "BalanceMatrix",
    "BalanceRow",
    "DimensionSummary",
    "LedgerView",
    "OutlierEntry",
    "OverallTotals",
    "to_wire",
]
