"""
Module: dyehouse_engines.aging
Responsibility:
    Age unfinished dyehouse batches from their formation date and classify
    the overdue ones into late-work buckets ("attention", "urgent").  Feeds
    the late-work alert board.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``BatchStateResolver`` for the completion flag.

Invariants enforced:
    - Purity: ``as_of_date`` is always passed in; the engine never reads
      the clock.
    - Only batches that were sent, are not complete, have a formation date
      and are not at the ``RECEIVED`` stage are aged.
    - Deterministic ordering: oldest first, ties by batch id.

Failure modes:
    - ValueError from ``AgeBucket`` for an ill-formed bucket definition.

Usage:
    from datetime import date
    from dyehouse_engines.aging import LateWorkCalculator

    report = LateWorkCalculator().generate_report(batches, date(2025, 3, 1))
    report.count_by_bucket()  # {"attention": 3, "urgent": 1}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Sequence

from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_engines.resolver import BatchStateResolver, BatchSummary
from dyehouse_engines.tracer import traced_engine
from dyehouse_kernel.domain.batch import Batch, ProcessStage
from dyehouse_kernel.domain.values import ZERO
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("engines.aging")


class Urgency(str, Enum):
    """Late-work urgency levels."""

    ATTENTION = "attention"
    URGENT = "urgent"


@dataclass(frozen=True)
class AgeBucket:
    """
    Definition of an aging bucket.

    Contract:
        Frozen dataclass representing a contiguous range of days.
    Guarantees:
        - min_days >= 0.
        - max_days >= min_days (when bounded).
    """

    name: str
    min_days: int
    max_days: int | None  # None = unbounded

    def __post_init__(self) -> None:
        if self.min_days < 0:
            raise ValueError("min_days cannot be negative")
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days cannot be less than min_days")

    def contains(self, age_days: int) -> bool:
        """Check if age falls within this bucket."""
        if age_days < self.min_days:
            return False
        if self.max_days is None:
            return True
        return age_days <= self.max_days

    @property
    def is_unbounded(self) -> bool:
        return self.max_days is None


@dataclass(frozen=True)
class LateWorkItem:
    """An unfinished batch with its age and urgency bucket."""

    batch: Batch
    summary: BatchSummary
    age_days: int
    bucket: AgeBucket

    @property
    def batch_id(self) -> str:
        return self.batch.id

    @property
    def urgency(self) -> Urgency:
        return Urgency(self.bucket.name)

    @property
    def outstanding(self) -> Decimal:
        return self.summary.outstanding


@dataclass(frozen=True)
class LateWorkReport:
    """
    Late-work snapshot as of a date.

    Guarantees:
        - ``items`` are sorted oldest first.
        - ``count_by_bucket()`` covers every bucket in ``self.buckets``.
    """

    as_of_date: date
    buckets: tuple[AgeBucket, ...]
    items: tuple[LateWorkItem, ...]

    @property
    def item_count(self) -> int:
        return len(self.items)

    def count_by_bucket(self) -> dict[str, int]:
        counts = {b.name: 0 for b in self.buckets}
        for item in self.items:
            counts[item.bucket.name] += 1
        return counts

    def average_age(self) -> Decimal | None:
        if not self.items:
            return None
        return Decimal(sum(i.age_days for i in self.items)) / Decimal(len(self.items))

    def items_in_bucket(self, bucket_name: str) -> tuple[LateWorkItem, ...]:
        return tuple(i for i in self.items if i.bucket.name == bucket_name)

    def items_for_facility(self, facility: str) -> tuple[LateWorkItem, ...]:
        return tuple(i for i in self.items if i.batch.facility == facility)

    def outstanding_total(self) -> Decimal:
        return sum((i.outstanding for i in self.items), ZERO)


class LateWorkCalculator:
    """
    Calculate late-work aging for batches still at a dyehouse.

    Contract:
        Pure functions -- no I/O, no clock.  Thresholds come from
        ``EngineParameters`` (15 / 20 days by default).
    """

    def __init__(
        self,
        params: EngineParameters | None = None,
        resolver: BatchStateResolver | None = None,
    ):
        self._params = params or DEFAULT_PARAMETERS
        self._resolver = resolver or BatchStateResolver(self._params)

    def buckets(self) -> tuple[AgeBucket, ...]:
        """Attention: [attention, urgent - 1]; urgent: [urgent, inf)."""
        return (
            AgeBucket(
                Urgency.ATTENTION.value,
                self._params.late_attention_days,
                self._params.late_urgent_days - 1,
            ),
            AgeBucket(Urgency.URGENT.value, self._params.late_urgent_days, None),
        )

    def calculate_age(self, formation_date: date, as_of_date: date) -> int:
        """Whole days since formation (negative if formed in the future)."""
        return (as_of_date - formation_date).days

    def classify(self, age_days: int) -> AgeBucket | None:
        """Late-work bucket for an age, or None when not late yet."""
        for bucket in self.buckets():
            if bucket.contains(age_days):
                return bucket
        return None

    def is_eligible(self, batch: Batch, summary: BatchSummary) -> bool:
        """Sent, unfinished, formed, and not yet marked received."""
        return (
            batch.formation_date is not None
            and summary.sent_total > ZERO
            and not summary.is_complete
            and batch.stage is not ProcessStage.RECEIVED
        )

    @traced_engine("aging", "1.0", fingerprint_fields=("batches", "as_of_date"))
    def generate_report(
        self,
        batches: Sequence[Batch],
        as_of_date: date,
    ) -> LateWorkReport:
        """
        Build the late-work report.

        Args:
            batches: Snapshot of batch records.
            as_of_date: Date to age as of (supplied by the caller).
        """
        items: list[LateWorkItem] = []
        for batch in batches:
            summary = self._resolver.resolve(batch)
            if not self.is_eligible(batch, summary):
                continue
            age = self.calculate_age(batch.formation_date, as_of_date)
            bucket = self.classify(age)
            if bucket is None:
                continue
            items.append(LateWorkItem(batch=batch, summary=summary, age_days=age, bucket=bucket))

        items.sort(key=lambda i: (-i.age_days, i.batch_id))

        logger.info("late_work_report_generated", extra={
            "as_of_date": as_of_date.isoformat(),
            "batch_count": len(batches),
            "late_count": len(items),
        })

        return LateWorkReport(
            as_of_date=as_of_date,
            buckets=self.buckets(),
            items=tuple(items),
        )
