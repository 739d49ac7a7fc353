"""
Snapshot adapter protocol and probe DTO.

Contract:
    SnapshotAdapter.read() yields one order document per source record (streaming).
    SnapshotAdapter.probe() returns a quick snapshot: document count, top-level keys, sample documents.

Architecture: dyehouse_ingestion/adapters. File I/O only, no engine imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SnapshotAdapter(Protocol):
    """Protocol for reading exported order snapshots into document dicts."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Yield one order document per record."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SnapshotProbe":
        """Quick probe: document count, detected keys, sample documents."""
        ...


@dataclass(frozen=True)
class SnapshotProbe:
    """Result of probing a snapshot file."""

    document_count: int
    keys: tuple[str, ...]
    sample_documents: tuple[dict[str, Any], ...]  # First 5 documents; do not mutate
    batch_count: int = 0  # dyeing-plan entries across the sample
    encoding: str | None = None
