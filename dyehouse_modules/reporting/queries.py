"""
Pure dyehouse query functions.

These functions turn batch snapshots, batch summaries and ledger cells into
the read models of ``models.py``.  ZERO I/O.  ZERO side effects.

All quantities are Decimal.  All inputs/outputs are frozen dataclasses or
tuples of them.

Functions in this module follow the engine purity convention:
- No clock access (``as_of`` dates are parameters)
- No file I/O
- Deterministic: same inputs always produce same outputs, in the same order
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Sequence

from dyehouse_engines.aging import LateWorkCalculator, LateWorkReport
from dyehouse_engines.ledger import LedgerCell, merge_dimensions, roll_forward
from dyehouse_engines.outliers import CycleTimeSample, CycleTimeStats, OutlierDetector
from dyehouse_engines.resolver import BatchSummary
from dyehouse_kernel.domain.batch import Batch, ProcessStage
from dyehouse_kernel.domain.values import ZERO
from dyehouse_modules.reporting.config import ReportingConfig
from dyehouse_modules.reporting.models import (
    ActiveWorkBoard,
    ActiveWorkEntry,
    ActiveWorkGroup,
    BalanceMatrix,
    BalanceRow,
    DimensionSummary,
    OutlierEntry,
    OverallTotals,
)


def _sum(values) -> Decimal:
    return sum(values, ZERO)


def _mean(values: Sequence[int]) -> Decimal | None:
    if not values:
        return None
    return Decimal(sum(values)) / Decimal(len(values))


def _label(value: str, unassigned_label: str) -> str:
    return value.strip() or unassigned_label


# =========================================================================
# Overview
# =========================================================================


def overall_totals(
    summaries: Sequence[BatchSummary],
    detector: OutlierDetector,
) -> OverallTotals:
    """
    Snapshot-wide totals summed directly over batch summaries.

    Independent of the ledger: an over-return lowers ``in_transit_kg`` here
    even though the ledger clamps the carried balance at zero.
    """
    sent = _sum(s.sent_total for s in summaries)
    received = _sum(s.received_total for s in summaries)
    scrap = _sum(s.scrap_quantity for s in summaries)
    cycle_times = [s.cycle_time_days for s in summaries if s.cycle_time_days is not None]

    return OverallTotals(
        batch_count=len(summaries),
        sent_batch_count=sum(1 for s in summaries if s.sent_total > ZERO),
        completed_count=sum(1 for s in summaries if s.is_complete),
        sent_kg=sent,
        received_kg=received,
        scrap_kg=scrap,
        in_transit_kg=max(ZERO, sent - received - scrap),
        scrap_pct=(scrap / sent) if sent > ZERO else ZERO,
        avg_cycle_days=_mean(cycle_times),
        cycle_time_count=len(cycle_times),
        outlier_threshold=detector.threshold(cycle_times),
    )


def by_dimension(ledger: Sequence[LedgerCell]) -> tuple[DimensionSummary, ...]:
    """
    Group ledger cells per dimension and rank by scrap rate.

    Ordering: ``scrap_pct`` descending, then dimension key ascending.
    ``closing_stock`` is the closing of the dimension's latest period.
    """
    groups: dict[str, list[LedgerCell]] = defaultdict(list)
    for cell in ledger:
        groups[cell.dimension_key].append(cell)

    summaries: list[DimensionSummary] = []
    for key, cells in groups.items():
        cells.sort(key=lambda c: c.period_key)
        sent = _sum(c.sent_kg for c in cells)
        scrap = _sum(c.scrap_kg for c in cells)
        cycle_times = [t for c in cells for t in c.completed_cycle_times]
        summaries.append(DimensionSummary(
            dimension_key=key,
            sent_kg=sent,
            received_kg=_sum(c.received_kg for c in cells),
            scrap_kg=scrap,
            scrap_pct=(scrap / sent) if sent > ZERO else ZERO,
            avg_cycle_days=_mean(cycle_times),
            period_count=len(cells),
            batch_count=len({i for c in cells for i in c.batch_ids}),
            closing_stock=cells[-1].closing_stock,
        ))

    summaries.sort(key=lambda s: (-s.scrap_pct, s.dimension_key))
    return tuple(summaries)


def monthly_timeline(
    ledger: Sequence[LedgerCell],
    dimension: str | None = None,
) -> tuple[LedgerCell, ...]:
    """
    Chronological cells with the running balance embedded.

    With ``dimension`` the cells of that dimension are returned as built.
    Without it, all dimensions are merged per month and the balance is
    recomputed over the merged series.
    """
    if dimension is not None:
        return roll_forward(c for c in ledger if c.dimension_key == dimension)
    return merge_dimensions(ledger)


# =========================================================================
# Cycle times
# =========================================================================


def cycle_time_samples(
    batches: Sequence[Batch],
    summaries: Sequence[BatchSummary],
) -> tuple[CycleTimeSample, ...]:
    """Pair each batch that has a cycle time with it, in input order."""
    return tuple(
        CycleTimeSample(batch=batch, cycle_time_days=summary.cycle_time_days)
        for batch, summary in zip(batches, summaries)
        if summary.cycle_time_days is not None
    )


def outliers(
    batches: Sequence[Batch],
    summaries: Sequence[BatchSummary],
    detector: OutlierDetector,
) -> tuple[OutlierEntry, ...]:
    """Batches above the fence, slowest first (ties by batch id)."""
    samples = cycle_time_samples(batches, summaries)
    fence = detector.threshold([s.cycle_time_days for s in samples])
    flagged = detector.classify(samples, fence)

    entries = [
        OutlierEntry(
            batch_id=s.batch_id,
            facility=s.batch.facility,
            client_id=s.batch.client_id,
            cycle_time_days=s.cycle_time_days,
            threshold=fence,
        )
        for s in flagged
    ]
    entries.sort(key=lambda e: (-e.cycle_time_days, e.batch_id))
    return tuple(entries)


def cycle_time_stats(
    summaries: Sequence[BatchSummary],
    detector: OutlierDetector,
) -> CycleTimeStats:
    return detector.describe(
        [s.cycle_time_days for s in summaries if s.cycle_time_days is not None]
    )


# =========================================================================
# Balance matrix
# =========================================================================


def balance_matrix(
    batches: Sequence[Batch],
    summaries: Sequence[BatchSummary],
    config: ReportingConfig,
    unassigned_label: str,
) -> BalanceMatrix:
    """
    Outstanding material per client and facility.

    Only batches that were sent contribute; each contributes its
    outstanding quantity clamped at zero.  Facilities appear as columns
    once they hold a sent batch, even when their balance is zero.
    """
    balances: dict[str, dict[str, Decimal]] = defaultdict(dict)
    facilities: set[str] = set()

    for batch, summary in zip(batches, summaries):
        if summary.sent_total <= ZERO:
            continue
        facility = _label(batch.facility, unassigned_label)
        client = _label(batch.client_id, unassigned_label)
        facilities.add(facility)
        row = balances[client]
        row[facility] = row.get(facility, ZERO) + max(ZERO, summary.outstanding)

    columns = tuple(sorted(facilities))
    rows: list[BalanceRow] = []
    for client, row in balances.items():
        total = _sum(row.values())
        if config.hide_zero_rows and total == ZERO:
            continue
        rows.append(BalanceRow(
            client_id=client,
            amounts=tuple((f, row.get(f, ZERO)) for f in columns),
            total=total,
        ))
    rows.sort(key=lambda r: (-r.total, r.client_id))

    column_totals = tuple(
        (f, _sum(r.amount(f) for r in rows)) for f in columns
    )
    return BalanceMatrix(
        facilities=columns,
        rows=tuple(rows),
        column_totals=column_totals,
        grand_total=_sum(total for _, total in column_totals),
    )


# =========================================================================
# Active work
# =========================================================================


def active_work(
    batches: Sequence[Batch],
    summaries: Sequence[BatchSummary],
    facility: str,
    stage: ProcessStage | None = None,
    unassigned_label: str = "",
) -> ActiveWorkBoard:
    """
    Unfinished, sent batches at ``facility`` grouped by client, fabric and order.

    ``stage`` narrows the board to one workflow step; ``stage_counts`` is
    always computed over the whole facility (``"UNSET"`` for no stage).
    """
    groups: dict[tuple[str, str, str], list[ActiveWorkEntry]] = defaultdict(list)
    counts: dict[str, int] = {s.value: 0 for s in ProcessStage}
    counts["UNSET"] = 0

    for batch, summary in zip(batches, summaries):
        if _label(batch.facility, unassigned_label) != facility:
            continue
        if summary.sent_total <= ZERO or summary.is_complete:
            continue
        counts[batch.stage.value if batch.stage else "UNSET"] += 1
        if stage is not None and batch.stage is not stage:
            continue
        entry = ActiveWorkEntry(
            batch_id=batch.id,
            order_id=batch.order_id,
            color=batch.color,
            stage=batch.stage,
            sent_kg=summary.sent_total,
            received_kg=summary.received_total,
            remaining_kg=max(ZERO, summary.outstanding),
        )
        key = (_label(batch.client_id, unassigned_label), batch.fabric, batch.order_id)
        groups[key].append(entry)

    board: list[ActiveWorkGroup] = []
    for client, fabric, order_id in sorted(groups):
        entries = sorted(groups[(client, fabric, order_id)], key=lambda e: e.batch_id)
        board.append(ActiveWorkGroup(
            client_id=client,
            fabric=fabric,
            order_id=order_id,
            entries=tuple(entries),
            sent_kg=_sum(e.sent_kg for e in entries),
            received_kg=_sum(e.received_kg for e in entries),
            remaining_kg=_sum(e.remaining_kg for e in entries),
        ))

    return ActiveWorkBoard(
        facility=facility,
        stage=stage,
        groups=tuple(board),
        stage_counts=tuple(counts.items()),
    )


def late_work(
    batches: Sequence[Batch],
    as_of: date,
    calculator: LateWorkCalculator,
) -> LateWorkReport:
    return calculator.generate_report(batches, as_of)
