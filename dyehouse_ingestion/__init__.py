"""
dyehouse_ingestion -- from exported order documents to ``Batch`` records.

Adapters read snapshot files into order documents; ``mapping`` turns the
documents into normalized ``Batch`` records for the engines.

Usage:
    from pathlib import Path
    from dyehouse_ingestion import JsonSnapshotAdapter, batches_from_snapshot

    orders = JsonSnapshotAdapter().read(Path("orders.json"), {"format": "array"})
    batches = batches_from_snapshot(orders)
"""

from dyehouse_ingestion.adapters import JsonSnapshotAdapter, SnapshotAdapter, SnapshotProbe
from dyehouse_ingestion.mapping import (
    batch_from_document,
    batches_from_order,
    batches_from_snapshot,
    legacy_sent_quantity,
    map_receive_events,
    map_sent_events,
    resolve_facility,
)

__all__ = [
    "JsonSnapshotAdapter",
    "SnapshotAdapter",
    "SnapshotProbe",
    "batch_from_document",
    "batches_from_order",
    "batches_from_snapshot",
    "legacy_sent_quantity",
    "map_receive_events",
    "map_sent_events",
    "resolve_facility",
]
