"""
Wire rendering of dyehouse read models.

``to_wire`` converts any read model (or tuple of them) into plain
JSON-compatible values for a presentation collaborator:

- dataclass fields -> camelCase keys (``sent_kg`` -> ``sentKg``)
- Decimal -> float, rounded half-up to ``precision`` places when given;
  an infinite threshold -> None
- date -> ISO-8601 calendar date
- Enum -> .value
- tuples -> lists; (name, value) pair tables -> dicts
- selected derived properties are included alongside the fields
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from dyehouse_engines.ledger import LedgerCell
from dyehouse_engines.resolver import BatchSummary
from dyehouse_modules.reporting.models import (
    ActiveWorkBoard,
    DimensionSummary,
    OutlierEntry,
)

# Derived values a consumer expects next to the stored fields.
_DERIVED: dict[type, tuple[str, ...]] = {
    BatchSummary: ("outstanding",),
    LedgerCell: ("period_label", "carried_stock", "has_negative_closing"),
    DimensionSummary: ("carried_stock",),
    OutlierEntry: ("excess_days",),
    ActiveWorkBoard: ("batch_count", "sent_kg", "remaining_kg"),
}

# Fields holding (name, value) pairs rendered as objects.
_PAIR_FIELDS = frozenset({"amounts", "column_totals", "stage_counts"})


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _decimal(value: Decimal, precision: int | None) -> float | None:
    if not value.is_finite():
        return None
    if precision is not None:
        value = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    return float(value)


def to_wire(obj: Any, precision: int | None = None) -> Any:
    """Render ``obj`` as JSON-compatible values (see module docstring)."""
    if obj is None or isinstance(obj, bool):
        return obj
    if isinstance(obj, Decimal):
        return _decimal(obj, precision)
    if isinstance(obj, date):
        return obj.isoformat()[:10]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [to_wire(item, precision) for item in obj]
    if isinstance(obj, dict):
        return {str(k): to_wire(v, precision) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        rendered: dict[str, Any] = {}
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if f.name in _PAIR_FIELDS:
                value = dict(value)
            rendered[camel_case(f.name)] = to_wire(value, precision)
        for name in _DERIVED.get(type(obj), ()):
            rendered[camel_case(name)] = to_wire(getattr(obj, name), precision)
        return rendered
    if isinstance(obj, (str, int, float)):
        return obj
    return str(obj)
