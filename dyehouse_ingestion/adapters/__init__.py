"""Snapshot adapters for order-document ingestion (file I/O only)."""

from dyehouse_ingestion.adapters.base import SnapshotAdapter, SnapshotProbe
from dyehouse_ingestion.adapters.json_adapter import JsonSnapshotAdapter

__all__ = [
    "SnapshotAdapter",
    "SnapshotProbe",
    "JsonSnapshotAdapter",
]
