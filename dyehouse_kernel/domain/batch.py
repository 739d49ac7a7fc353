"""
Batch -- Immutable records of material sent to and returned from dyehouses.

Responsibility:
    Defines ``TransferEvent`` (one dispatch or one return) and ``Batch``
    (one color/lot of an order moving through an external dyeing step),
    plus the ``DataAnomaly`` and ``ProcessStage`` vocabularies shared by
    the engines.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, ingestion and reporting.

Invariants enforced:
    - Event logs are append-only facts; a ``Batch`` is frozen and the
      engines never build a modified copy of one.
    - Quantities are ``Decimal`` and dates are ``date | None`` after
      construction, whatever the caller passed in.

Failure modes:
    - None.  Malformed quantities coerce to zero, malformed dates to None.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from dyehouse_kernel.domain.values import ZERO, parse_calendar_date, to_quantity


class ProcessStage(str, Enum):
    """Workflow stage of a batch inside the dyehouse."""

    STORE_RAW = "STORE_RAW"
    DYEING = "DYEING"
    FINISHING = "FINISHING"
    STORE_FINISHED = "STORE_FINISHED"
    RECEIVED = "RECEIVED"


class DataAnomaly(str, Enum):
    """Non-fatal data problems surfaced on derived read models."""

    OVER_RETURN = "over_return"  # received > sent
    NEGATIVE_CYCLE_TIME = "negative_cycle_time"  # last return before formation
    UNDATED_EVENT = "undated_event"  # event without a usable date
    MISSING_FORMATION_DATE = "missing_formation_date"  # complete, no formation date


@dataclass(frozen=True)
class TransferEvent:
    """
    One dispatch to, or return from, a dyehouse.

    Contract:
        Frozen dataclass.  ``date`` is ``None`` when the recorded date was
        missing or unparseable; such an event still counts toward totals.
    """

    date: date | None
    raw_quantity: Decimal = ZERO
    accessory_quantity: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", parse_calendar_date(self.date))
        object.__setattr__(self, "raw_quantity", to_quantity(self.raw_quantity))
        object.__setattr__(
            self, "accessory_quantity", to_quantity(self.accessory_quantity)
        )

    @property
    def quantity(self) -> Decimal:
        """Raw fabric plus accessory kilograms."""
        return self.raw_quantity + self.accessory_quantity


def _as_events(events: Iterable[Any] | None) -> tuple[TransferEvent, ...]:
    if not events:
        return ()
    return tuple(events)


_TEXT_FIELDS = ("facility", "client_id", "order_id", "fabric", "color")


@dataclass(frozen=True)
class Batch:
    """
    One color/lot of a production order tracked through a dyehouse.

    Contract:
        Frozen dataclass mirroring the document-store batch record.
        ``legacy_sent_qty`` / ``legacy_received_qty`` are only consulted
        when the corresponding event log is empty.
    Guarantees:
        - ``sent_events`` / ``receive_events`` are tuples.
        - All quantities are ``Decimal``; all dates are ``date | None``.
    Non-goals:
        - Does not validate business rules (received <= sent, etc.);
          anomalies are reported by the resolver instead.
    """

    id: str
    facility: str = ""
    client_id: str = ""
    formation_date: date | None = None
    sent_events: tuple[TransferEvent, ...] = ()
    receive_events: tuple[TransferEvent, ...] = ()
    legacy_sent_qty: Decimal = ZERO
    legacy_sent_date: date | None = None
    legacy_received_qty: Decimal = ZERO
    scrap_quantity: Decimal = ZERO
    explicit_complete: bool | None = None
    order_id: str = ""
    fabric: str = ""
    color: str = ""
    stage: ProcessStage | None = None

    def __post_init__(self) -> None:
        for name in _TEXT_FIELDS:
            value = getattr(self, name)
            object.__setattr__(self, name, "" if value is None else str(value))
        object.__setattr__(self, "formation_date", parse_calendar_date(self.formation_date))
        object.__setattr__(self, "legacy_sent_date", parse_calendar_date(self.legacy_sent_date))
        object.__setattr__(self, "sent_events", _as_events(self.sent_events))
        object.__setattr__(self, "receive_events", _as_events(self.receive_events))
        for name in ("legacy_sent_qty", "legacy_received_qty", "scrap_quantity"):
            object.__setattr__(self, name, to_quantity(getattr(self, name)))
        if self.stage is not None and not isinstance(self.stage, ProcessStage):
            try:
                stage = ProcessStage(str(self.stage))
            except ValueError:
                stage = None
            object.__setattr__(self, "stage", stage)

    @property
    def has_sent_events(self) -> bool:
        return bool(self.sent_events)

    @property
    def has_receive_events(self) -> bool:
        return bool(self.receive_events)
