"""
Dyehouse Reporting Read Models (``dyehouse_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects returned by the reporting queries:
overall totals, per-dimension summaries, ranked cycle-time outliers, the
client x facility balance matrix and the active-work board.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``queries.py`` and returned to callers through ``QueryFacade``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All quantity fields use ``Decimal`` kilograms -- NEVER ``float``.
* Sequences are tuples in a deterministic order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from dyehouse_kernel.domain.batch import ProcessStage
from dyehouse_kernel.domain.values import ZERO


# =========================================================================
# Enums
# =========================================================================


class LedgerView(str, Enum):
    """Dimensions a ledger can be built over."""

    FACTORY = "factory"
    FACILITY = "facility"
    CLIENT = "client"


# =========================================================================
# Overview
# =========================================================================


@dataclass(frozen=True)
class OverallTotals:
    """
    Snapshot-wide totals, summed directly over batch summaries.

    ``in_transit_kg`` is clamped at zero; ``scrap_pct`` is a fraction of
    ``sent_kg``.  ``outlier_threshold`` is ``Decimal("Infinity")`` below
    the minimum sample size.
    """

    batch_count: int
    sent_batch_count: int
    completed_count: int
    sent_kg: Decimal
    received_kg: Decimal
    scrap_kg: Decimal
    in_transit_kg: Decimal
    scrap_pct: Decimal
    avg_cycle_days: Decimal | None
    cycle_time_count: int
    outlier_threshold: Decimal


@dataclass(frozen=True)
class DimensionSummary:
    """Totals of one dimension (facility, client, ...) across its months."""

    dimension_key: str
    sent_kg: Decimal
    received_kg: Decimal
    scrap_kg: Decimal
    scrap_pct: Decimal
    avg_cycle_days: Decimal | None
    period_count: int
    batch_count: int
    closing_stock: Decimal

    @property
    def carried_stock(self) -> Decimal:
        return max(ZERO, self.closing_stock)


@dataclass(frozen=True)
class OutlierEntry:
    """A completed batch whose cycle time is above the fence."""

    batch_id: str
    facility: str
    client_id: str
    cycle_time_days: int
    threshold: Decimal

    @property
    def excess_days(self) -> Decimal:
        return Decimal(self.cycle_time_days) - self.threshold


# =========================================================================
# Balance matrix
# =========================================================================


@dataclass(frozen=True)
class BalanceRow:
    """Outstanding kilograms of one client, per facility."""

    client_id: str
    amounts: tuple[tuple[str, Decimal], ...]
    total: Decimal

    def amount(self, facility: str) -> Decimal:
        for name, value in self.amounts:
            if name == facility:
                return value
        return ZERO


@dataclass(frozen=True)
class BalanceMatrix:
    """
    Client x facility outstanding material.

    Guarantees
    ----------
    * ``facilities`` is sorted; every row's ``amounts`` follows it.
    * ``rows`` are sorted by ``total`` descending, then client id.
    * ``grand_total`` equals the sum of ``column_totals``.
    """

    facilities: tuple[str, ...]
    rows: tuple[BalanceRow, ...]
    column_totals: tuple[tuple[str, Decimal], ...]
    grand_total: Decimal

    def column_total(self, facility: str) -> Decimal:
        for name, value in self.column_totals:
            if name == facility:
                return value
        return ZERO


# =========================================================================
# Active work
# =========================================================================


@dataclass(frozen=True)
class ActiveWorkEntry:
    """One unfinished batch on the active-work board."""

    batch_id: str
    order_id: str
    color: str
    stage: ProcessStage | None
    sent_kg: Decimal
    received_kg: Decimal
    remaining_kg: Decimal


@dataclass(frozen=True)
class ActiveWorkGroup:
    """Unfinished batches of one client's fabric on one order."""

    client_id: str
    fabric: str
    order_id: str
    entries: tuple[ActiveWorkEntry, ...]
    sent_kg: Decimal
    received_kg: Decimal
    remaining_kg: Decimal


@dataclass(frozen=True)
class ActiveWorkBoard:
    """Everything still in progress at one facility."""

    facility: str
    stage: ProcessStage | None
    groups: tuple[ActiveWorkGroup, ...]
    stage_counts: tuple[tuple[str, int], ...]

    @property
    def batch_count(self) -> int:
        return sum(len(g.entries) for g in self.groups)

    @property
    def sent_kg(self) -> Decimal:
        return sum((g.sent_kg for g in self.groups), ZERO)

    @property
    def remaining_kg(self) -> Decimal:
        return sum((g.remaining_kg for g in self.groups), ZERO)
