"""
dyehouse_engines.resolver -- Reduce one batch record to its current state.

Responsibility:
    Convert a raw ``Batch`` (with its sent/receive event logs) into a
    normalized ``BatchSummary``: sent and received totals, the unreturned
    fraction, the completion flag and the formation-to-return cycle time.
    This is the single place those figures are computed; every ledger,
    board and report consumes them from here.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import dyehouse_kernel.domain and dyehouse_config.schema.

Invariants enforced:
    - Totals come from event sums when the event log is non-empty and from
      the legacy scalar otherwise; the two sources are never added.
    - ``remaining_fraction`` is not clamped: over-returns yield negative
      values and are flagged as ``DataAnomaly.OVER_RETURN``.
    - Purity: no clock access, no I/O, the input batch is never modified.

Failure modes:
    - None.  ``resolve`` is total; missing or unparseable dates degrade the
      dependent fields (``cycle_time_days``, ``earliest_sent_date``) to None.

Usage:
    from dyehouse_engines.resolver import BatchStateResolver

    summary = BatchStateResolver().resolve(batch)
    summary.is_complete, summary.cycle_time_days
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from dyehouse_config.schema import DEFAULT_PARAMETERS, EngineParameters
from dyehouse_engines.tracer import traced_engine
from dyehouse_kernel.domain.batch import Batch, DataAnomaly, TransferEvent
from dyehouse_kernel.domain.values import ONE, ZERO
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("engines.resolver")


@dataclass(frozen=True)
class BatchSummary:
    """
    Derived state of one batch.

    Contract:
        Frozen dataclass, recomputed from the ``Batch`` on every call and
        never persisted.
    Guarantees:
        - ``sent_total == received_total + scrap_quantity + outstanding``.
        - ``cycle_time_days`` is None unless the batch is complete, has a
          formation date and a dated receive event on or after it.
    Non-goals:
        - Does not clamp anomalous figures; see ``anomalies``.
    """

    batch_id: str
    facility: str
    client_id: str
    sent_total: Decimal
    received_total: Decimal
    scrap_quantity: Decimal
    remaining_fraction: Decimal
    is_complete: bool
    cycle_time_days: int | None
    earliest_sent_date: date | None
    last_receive_date: date | None
    anomalies: tuple[DataAnomaly, ...] = ()

    @property
    def outstanding(self) -> Decimal:
        """Material still at the dyehouse: sent minus received minus scrap."""
        return self.sent_total - self.received_total - self.scrap_quantity

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)


def event_total(events: Iterable[TransferEvent]) -> Decimal:
    """Sum of raw + accessory quantity over events."""
    return sum((e.quantity for e in events), ZERO)


def dated_events(events: Iterable[TransferEvent]) -> list[TransferEvent]:
    """Events with a usable date, sorted ascending by date (stable)."""
    return sorted((e for e in events if e.date is not None), key=lambda e: e.date)


class BatchStateResolver:
    """
    Resolve batches into ``BatchSummary`` read models.

    Contract:
        Pure functions -- no I/O.  Parameters (completion tolerance) are
        injected at construction.
    Guarantees:
        - ``resolve`` never raises for a well-formed ``Batch``.
        - Identical batches always resolve to equal summaries.
    """

    def __init__(self, params: EngineParameters | None = None):
        self._params = params or DEFAULT_PARAMETERS

    @property
    def params(self) -> EngineParameters:
        return self._params

    def sent_total(self, batch: Batch) -> Decimal:
        """Event sum when any sent event exists, otherwise the legacy scalar."""
        if batch.sent_events:
            return event_total(batch.sent_events)
        return batch.legacy_sent_qty

    def received_total(self, batch: Batch) -> Decimal:
        """Event sum when any receive event exists, otherwise the legacy scalar."""
        if batch.receive_events:
            return event_total(batch.receive_events)
        return batch.legacy_received_qty

    def earliest_sent_date(self, batch: Batch) -> date | None:
        if batch.sent_events:
            dated = dated_events(batch.sent_events)
            return dated[0].date if dated else None
        return batch.legacy_sent_date

    def last_receive_date(self, batch: Batch) -> date | None:
        dated = dated_events(batch.receive_events)
        return dated[-1].date if dated else None

    def resolve(self, batch: Batch) -> BatchSummary:
        """
        Resolve one batch.

        Postconditions:
            - ``remaining_fraction`` is ``(sent - received) / sent`` when
              anything was sent, else exactly 1.
            - ``is_complete`` is the explicit override, or any scrap
              recorded, or a return within the completion tolerance.
        """
        anomalies: list[DataAnomaly] = []

        sent = self.sent_total(batch)
        received = self.received_total(batch)
        scrap = batch.scrap_quantity

        if sent > ZERO:
            remaining = (sent - received) / sent
        else:
            remaining = ONE

        if received > sent:
            anomalies.append(DataAnomaly.OVER_RETURN)

        is_complete = (
            batch.explicit_complete is True
            or scrap > ZERO
            or (received > ZERO and remaining <= self._params.completion_tolerance)
        )

        last_receive = self.last_receive_date(batch)

        cycle_time: int | None = None
        if is_complete and batch.receive_events:
            if batch.formation_date is None:
                anomalies.append(DataAnomaly.MISSING_FORMATION_DATE)
            elif last_receive is not None:
                diff = (last_receive - batch.formation_date).days
                if diff >= 0:
                    cycle_time = diff
                else:
                    anomalies.append(DataAnomaly.NEGATIVE_CYCLE_TIME)

        if any(e.date is None for e in batch.sent_events + batch.receive_events):
            anomalies.append(DataAnomaly.UNDATED_EVENT)

        summary = BatchSummary(
            batch_id=batch.id,
            facility=batch.facility,
            client_id=batch.client_id,
            sent_total=sent,
            received_total=received,
            scrap_quantity=scrap,
            remaining_fraction=remaining,
            is_complete=is_complete,
            cycle_time_days=cycle_time,
            earliest_sent_date=self.earliest_sent_date(batch),
            last_receive_date=last_receive,
            anomalies=tuple(anomalies),
        )

        if anomalies:
            logger.warning("batch_anomaly_detected", extra={
                "batch_id": batch.id,
                "facility": batch.facility,
                "anomalies": [a.value for a in anomalies],
                "sent_total": str(sent),
                "received_total": str(received),
            })
        else:
            logger.debug("batch_resolved", extra={
                "batch_id": batch.id,
                "is_complete": is_complete,
                "cycle_time_days": cycle_time,
            })

        return summary

    @traced_engine("resolver", "1.0", fingerprint_fields=("batches",))
    def resolve_all(self, batches: Sequence[Batch]) -> tuple[BatchSummary, ...]:
        """Resolve every batch of a snapshot, keeping input order."""
        return tuple(self.resolve(b) for b in batches)
