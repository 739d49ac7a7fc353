"""
Pure domain layer.

Immutable batch records and value coercion with NO dependencies on:
- Persistence or document stores
- Time/clock
- I/O
"""

from dyehouse_kernel.domain.batch import (
    Batch,
    DataAnomaly,
    ProcessStage,
    TransferEvent,
)
from dyehouse_kernel.domain.values import (
    ONE,
    ZERO,
    month_key,
    month_label,
    parse_calendar_date,
    to_quantity,
)

__all__ = [
    "Batch",
    "DataAnomaly",
    "ProcessStage",
    "TransferEvent",
    "ONE",
    "ZERO",
    "month_key",
    "month_label",
    "parse_calendar_date",
    "to_quantity",
]
