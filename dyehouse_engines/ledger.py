"""
dyehouse_engines.ledger -- Monthly flow ledger with carried-forward stock.

Responsibility:
    Bucket resolved batches by calendar month and by a caller-supplied
    dimension (facility, client, whole factory) and compute, per bucket,
    the kilograms sent, received and scrapped, the completed cycle times,
    and an opening/closing stock balance carried from month to month.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``BatchStateResolver``; consumed by the reporting queries.

Invariants enforced:
    - Sent material is attributed once, to the month of the earliest sent
      event (or the legacy sent date).
    - Received material is attributed per receive event, to that event's
      month, so partial returns spread across months correctly.
    - Scrap and cycle times of a complete batch go to the month of its last
      receive event, falling back to the sent month.
    - ``opening_stock`` of a month is the previous month's closing stock
      clamped at zero; the month's own ``closing_stock`` is reported
      unclamped so an over-return stays visible where it happened.
    - Output is sorted by ``(dimension_key, period_key)`` and does not
      depend on the order of the input batches.

Failure modes:
    - None.  Quantities that cannot be dated are left out of the ledger and
      logged as ``ledger_unattributed_quantity``.

Usage:
    from dyehouse_engines.ledger import LedgerAggregator, by_facility

    cells = LedgerAggregator().build_ledger(batches, by_facility)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Callable, Iterable, Sequence

from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_engines.resolver import BatchStateResolver, BatchSummary
from dyehouse_engines.tracer import traced_engine
from dyehouse_kernel.domain.batch import Batch
from dyehouse_kernel.domain.values import ZERO, month_key, month_label
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")

ALL_DIMENSIONS = "ALL"

DimensionKeyFn = Callable[[Batch], str]


def dimension_key(
    attribute: str,
    unassigned_label: str = DEFAULT_PARAMETERS.unassigned_label,
) -> DimensionKeyFn:
    """Build a key function reading ``attribute`` off a batch.

    Blank values map to ``unassigned_label``.
    """

    def key_fn(batch: Batch) -> str:
        value = getattr(batch, attribute) or ""
        return value.strip() or unassigned_label

    key_fn.__qualname__ = f"dimension_key.{attribute}"
    return key_fn


by_facility = dimension_key("facility")
by_client = dimension_key("client_id")


def whole_factory(batch: Batch) -> str:
    """Single dimension covering every batch."""
    return ALL_DIMENSIONS


@dataclass(frozen=True)
class LedgerCell:
    """
    One (dimension, month) bucket of the ledger.

    Contract:
        Frozen dataclass.  Quantities are kilograms as ``Decimal``;
        ``scrap_pct`` is a fraction of ``sent_kg`` (0 when nothing was
        sent); ``avg_cycle_days`` is None when no batch completed here.
    Guarantees:
        - ``closing_stock == opening_stock + sent_kg - received_kg - scrap_kg``.
        - ``completed_cycle_times`` and ``batch_ids`` are sorted ascending.
    """

    dimension_key: str
    period_key: str
    sent_kg: Decimal = ZERO
    received_kg: Decimal = ZERO
    scrap_kg: Decimal = ZERO
    opening_stock: Decimal = ZERO
    closing_stock: Decimal = ZERO
    completed_cycle_times: tuple[int, ...] = ()
    batch_count: int = 0
    sent_batch_count: int = 0
    received_batch_count: int = 0
    scrap_batch_count: int = 0
    scrap_pct: Decimal = ZERO
    avg_cycle_days: Decimal | None = None
    batch_ids: tuple[str, ...] = ()

    @property
    def net_flow(self) -> Decimal:
        """Material added to the dyehouse stock this month."""
        return self.sent_kg - self.received_kg - self.scrap_kg

    @property
    def carried_stock(self) -> Decimal:
        """Balance handed to the next month (never negative)."""
        return max(ZERO, self.closing_stock)

    @property
    def has_negative_closing(self) -> bool:
        """True for the month in which more came back than was in stock."""
        return self.closing_stock < ZERO

    @property
    def period_label(self) -> str:
        return month_label(self.period_key)


@dataclass
class _CellAccumulator:
    """Mutable working state for one cell while a ledger is being built."""

    sent_kg: Decimal = ZERO
    received_kg: Decimal = ZERO
    scrap_kg: Decimal = ZERO
    cycle_times: list[int] = field(default_factory=list)
    batch_ids: set[str] = field(default_factory=set)
    sent_ids: set[str] = field(default_factory=set)
    received_ids: set[str] = field(default_factory=set)
    scrap_ids: set[str] = field(default_factory=set)

    def freeze(self, dimension: str, period: str) -> LedgerCell:
        return _make_cell(
            dimension=dimension,
            period=period,
            sent_kg=self.sent_kg,
            received_kg=self.received_kg,
            scrap_kg=self.scrap_kg,
            cycle_times=self.cycle_times,
            batch_ids=self.batch_ids,
            sent_batch_count=len(self.sent_ids),
            received_batch_count=len(self.received_ids),
            scrap_batch_count=len(self.scrap_ids),
        )


def _mean(values: Sequence[int]) -> Decimal | None:
    if not values:
        return None
    return Decimal(sum(values)) / Decimal(len(values))


def _make_cell(
    *,
    dimension: str,
    period: str,
    sent_kg: Decimal,
    received_kg: Decimal,
    scrap_kg: Decimal,
    cycle_times: Iterable[int],
    batch_ids: Iterable[str],
    sent_batch_count: int,
    received_batch_count: int,
    scrap_batch_count: int,
) -> LedgerCell:
    times = tuple(sorted(cycle_times))
    ids = tuple(sorted(set(batch_ids)))
    return LedgerCell(
        dimension_key=dimension,
        period_key=period,
        sent_kg=sent_kg,
        received_kg=received_kg,
        scrap_kg=scrap_kg,
        completed_cycle_times=times,
        batch_count=len(ids),
        sent_batch_count=sent_batch_count,
        received_batch_count=received_batch_count,
        scrap_batch_count=scrap_batch_count,
        scrap_pct=(scrap_kg / sent_kg) if sent_kg > ZERO else ZERO,
        avg_cycle_days=_mean(times),
        batch_ids=ids,
    )


def roll_forward(cells: Iterable[LedgerCell]) -> tuple[LedgerCell, ...]:
    """
    Fill opening/closing stock for the cells of ONE dimension.

    Preconditions:
        - All cells share a dimension key.
    Postconditions:
        - Cells are returned in ascending period order.
        - First opening is 0; each later opening is the previous closing
          clamped at 0; closings are reported unclamped.
    """
    carried = ZERO
    result: list[LedgerCell] = []
    for cell in sorted(cells, key=lambda c: c.period_key):
        opening = carried
        closing = opening + cell.net_flow
        result.append(replace(cell, opening_stock=opening, closing_stock=closing))
        carried = max(ZERO, closing)
    return tuple(result)


def merge_dimensions(
    cells: Iterable[LedgerCell],
    merged_key: str = ALL_DIMENSIONS,
) -> tuple[LedgerCell, ...]:
    """
    Collapse cells of several dimensions into one series per month.

    Flows, counts and cycle times are summed per period; the stock balance
    is recomputed over the merged series with ``roll_forward``.  Every batch
    belongs to exactly one dimension, so per-dimension counts add up.
    """
    groups: dict[str, list[LedgerCell]] = defaultdict(list)
    for cell in cells:
        groups[cell.period_key].append(cell)

    merged: list[LedgerCell] = []
    for period, group in groups.items():
        merged.append(_make_cell(
            dimension=merged_key,
            period=period,
            sent_kg=sum((c.sent_kg for c in group), ZERO),
            received_kg=sum((c.received_kg for c in group), ZERO),
            scrap_kg=sum((c.scrap_kg for c in group), ZERO),
            cycle_times=[t for c in group for t in c.completed_cycle_times],
            batch_ids=[i for c in group for i in c.batch_ids],
            sent_batch_count=sum(c.sent_batch_count for c in group),
            received_batch_count=sum(c.received_batch_count for c in group),
            scrap_batch_count=sum(c.scrap_batch_count for c in group),
        ))
    return roll_forward(merged)


class LedgerAggregator:
    """
    Build monthly ledgers from a batch snapshot.

    Contract:
        Pure functions -- no I/O.  Every call rebuilds the ledger from
        scratch; there is no incremental update path.
    Guarantees:
        - Calling ``build_ledger`` twice on the same snapshot returns
          equal results.
        - Per dimension, summed ``sent_kg``/``received_kg``/``scrap_kg``
          equal the quantities attributed from its batches.
    """

    def __init__(
        self,
        params: EngineParameters | None = None,
        resolver: BatchStateResolver | None = None,
    ):
        self._params = params or DEFAULT_PARAMETERS
        self._resolver = resolver or BatchStateResolver(self._params)

    @property
    def resolver(self) -> BatchStateResolver:
        return self._resolver

    def facility_key(self) -> DimensionKeyFn:
        return dimension_key("facility", self._params.unassigned_label)

    def client_key(self) -> DimensionKeyFn:
        return dimension_key("client_id", self._params.unassigned_label)

    def _attribute(
        self,
        batch: Batch,
        summary: BatchSummary,
        dimension: str,
        cells: dict[tuple[str, str], _CellAccumulator],
    ) -> None:
        def cell(period: str) -> _CellAccumulator:
            acc = cells.get((dimension, period))
            if acc is None:
                acc = cells[(dimension, period)] = _CellAccumulator()
            acc.batch_ids.add(batch.id)
            return acc

        sent_month = month_key(summary.earliest_sent_date)
        closing_month = month_key(summary.last_receive_date) or sent_month

        if summary.sent_total > ZERO:
            if sent_month is not None:
                acc = cell(sent_month)
                acc.sent_kg += summary.sent_total
                acc.sent_ids.add(batch.id)
            else:
                self._log_unattributed(batch, "sent", summary.sent_total)

        for event in batch.receive_events:
            period = month_key(event.date)
            if period is None:
                self._log_unattributed(batch, "received", event.quantity)
                continue
            acc = cell(period)
            acc.received_kg += event.quantity
            acc.received_ids.add(batch.id)

        if summary.is_complete and summary.scrap_quantity > ZERO:
            if closing_month is not None:
                acc = cell(closing_month)
                acc.scrap_kg += summary.scrap_quantity
                acc.scrap_ids.add(batch.id)
            else:
                self._log_unattributed(batch, "scrap", summary.scrap_quantity)

        if summary.cycle_time_days is not None and closing_month is not None:
            cell(closing_month).cycle_times.append(summary.cycle_time_days)

    def _log_unattributed(self, batch: Batch, kind: str, quantity: Decimal) -> None:
        logger.info("ledger_unattributed_quantity", extra={
            "batch_id": batch.id,
            "kind": kind,
            "quantity": str(quantity),
        })

    @traced_engine("ledger", "1.0", fingerprint_fields=("batches", "dimension_key_fn"))
    def build_ledger(
        self,
        batches: Sequence[Batch],
        dimension_key_fn: DimensionKeyFn = whole_factory,
    ) -> tuple[LedgerCell, ...]:
        """
        Build the ledger for a snapshot.

        Args:
            batches: Snapshot of batch records (any order).
            dimension_key_fn: Maps a batch to its dimension key.

        Returns:
            Cells ordered by ``(dimension_key, period_key)`` ascending.
        """
        cells: dict[tuple[str, str], _CellAccumulator] = {}

        for batch in batches:
            summary = self._resolver.resolve(batch)
            self._attribute(batch, summary, dimension_key_fn(batch), cells)

        by_dimension: dict[str, list[LedgerCell]] = defaultdict(list)
        for (dimension, period), acc in cells.items():
            by_dimension[dimension].append(acc.freeze(dimension, period))

        ledger: list[LedgerCell] = []
        for dimension in sorted(by_dimension):
            rolled = roll_forward(by_dimension[dimension])
            for c in rolled:
                if c.has_negative_closing:
                    logger.warning("ledger_negative_closing", extra={
                        "dimension_key": c.dimension_key,
                        "period_key": c.period_key,
                        "closing_stock": str(c.closing_stock),
                    })
            ledger.extend(rolled)

        logger.info("ledger_built", extra={
            "batch_count": len(batches),
            "cell_count": len(ledger),
            "dimension_count": len(by_dimension),
        })
        return tuple(ledger)
