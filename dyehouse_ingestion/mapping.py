"""
Order document mapping (``dyehouse_ingestion.mapping``).

Responsibility:
    Translate order documents as the document store delivers them into
    ``Batch`` records.  Each order carries its dyeing plan
    (``dyeingPlan``), one entry per color/lot batch.  Field-name fallbacks
    for older records are resolved here, once, so the engines only ever
    see the normalized ``Batch`` shape.

Document shape (fields read)::

    order:  id, customerId, dyehouse, material, dyeingPlan[]
    batch:  id, color, dyehouse, colorApprovals[].dyehouseName,
            formationDate, dateSent, dyehouseStatus, isComplete,
            sentEvents[]    {date, quantity, accessorySent}
            receiveEvents[] {date, quantityRaw, quantityAccessory}
            quantitySentRaw | quantitySent, quantitySentAccessory,
            receivedQuantity, scrapRaw

Architecture position:
    Ingestion -- boundary between the document store collaborator and the
    pure engines.  Imports dyehouse_kernel only.

Failure modes:
    - ``MalformedSnapshotError`` when an order, or an entry of its dyeing
      plan, is not a mapping.
    - A missing or non-list ``dyeingPlan`` yields no batches (logged).
    - Unparseable quantities become 0 and unparseable dates None.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable

from dyehouse_kernel.domain.batch import Batch, TransferEvent
from dyehouse_kernel.domain.values import to_quantity
from dyehouse_kernel.exceptions import MalformedSnapshotError
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("ingestion.mapping")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def resolve_facility(batch: Mapping[str, Any], order: Mapping[str, Any]) -> str:
    """Batch dyehouse, else first color approval's dyehouse, else the order's."""
    facility = _text(batch.get("dyehouse"))
    if facility:
        return facility
    approvals = batch.get("colorApprovals")
    if isinstance(approvals, list) and approvals and isinstance(approvals[0], Mapping):
        facility = _text(approvals[0].get("dyehouseName"))
        if facility:
            return facility
    return _text(order.get("dyehouse"))


def _events(
    raw_events: Any,
    raw_key: str,
    accessory_key: str,
) -> tuple[TransferEvent, ...]:
    if not isinstance(raw_events, list):
        return ()
    events: list[TransferEvent] = []
    for entry in raw_events:
        if not isinstance(entry, Mapping):
            continue
        events.append(TransferEvent(
            date=entry.get("date"),
            raw_quantity=to_quantity(entry.get(raw_key)),
            accessory_quantity=to_quantity(entry.get(accessory_key)),
        ))
    return tuple(events)


def map_sent_events(raw_events: Any) -> tuple[TransferEvent, ...]:
    return _events(raw_events, "quantity", "accessorySent")


def map_receive_events(raw_events: Any) -> tuple[TransferEvent, ...]:
    return _events(raw_events, "quantityRaw", "quantityAccessory")


def legacy_sent_quantity(batch: Mapping[str, Any]) -> Decimal:
    """Pre-event sent figure: raw (new or old field name) plus accessory."""
    raw = to_quantity(batch.get("quantitySentRaw")) or to_quantity(batch.get("quantitySent"))
    return raw + to_quantity(batch.get("quantitySentAccessory"))


def batch_from_document(
    entry: Any,
    order: Mapping[str, Any],
    index: int,
    customer_id: str | None = None,
) -> Batch:
    """
    Map one dyeing-plan entry to a ``Batch``.

    Args:
        entry: The dyeing-plan entry.
        order: The owning order document.
        index: Position of the entry in the plan (for a fallback id).
        customer_id: Owning customer, overriding ``order["customerId"]``
            (the document path is authoritative when known).

    Raises:
        MalformedSnapshotError: If ``entry`` is not a mapping.
    """
    order_id = _text(order.get("id"))
    if not isinstance(entry, Mapping):
        raise MalformedSnapshotError(
            f"{order_id or '?'}[{index}]", "dyeing plan entry is not a mapping",
        )

    complete_flag = entry.get("isComplete")

    return Batch(
        id=_text(entry.get("id")) or f"{order_id}-{index}",
        facility=resolve_facility(entry, order),
        client_id=_text(customer_id) or _text(order.get("customerId")),
        formation_date=entry.get("formationDate"),
        sent_events=map_sent_events(entry.get("sentEvents")),
        receive_events=map_receive_events(entry.get("receiveEvents")),
        legacy_sent_qty=legacy_sent_quantity(entry),
        legacy_sent_date=entry.get("dateSent"),
        legacy_received_qty=to_quantity(entry.get("receivedQuantity")),
        scrap_quantity=to_quantity(entry.get("scrapRaw")),
        explicit_complete=complete_flag if isinstance(complete_flag, bool) else None,
        order_id=order_id,
        fabric=_text(order.get("material")),
        color=_text(entry.get("color")),
        stage=entry.get("dyehouseStatus"),
    )


def batches_from_order(
    order: Any,
    customer_id: str | None = None,
) -> tuple[Batch, ...]:
    """
    Map every dyeing-plan entry of one order document.

    Raises:
        MalformedSnapshotError: If ``order`` or a plan entry is not a mapping.
    """
    if not isinstance(order, Mapping):
        raise MalformedSnapshotError(repr(order)[:40], "order document is not a mapping")

    plan = order.get("dyeingPlan")
    if not isinstance(plan, list):
        logger.debug("order_without_dyeing_plan", extra={
            "order_id": _text(order.get("id")),
        })
        return ()

    return tuple(
        batch_from_document(entry, order, idx, customer_id)
        for idx, entry in enumerate(plan)
    )


def batches_from_snapshot(orders: Iterable[Any]) -> tuple[Batch, ...]:
    """Flatten a snapshot of order documents into batches, in order."""
    batches: list[Batch] = []
    order_count = 0
    for order in orders:
        order_count += 1
        batches.extend(batches_from_order(order))

    logger.info("snapshot_mapped", extra={
        "order_count": order_count,
        "batch_count": len(batches),
    })
    return tuple(batches)
