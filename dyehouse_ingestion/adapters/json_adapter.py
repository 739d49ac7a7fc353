"""
JSON snapshot adapter.

Handles a JSON array of order documents (file is [{...}, {...}, ...]) and
JSON Lines (one order document per line).  Configurable: ``json_path`` for
a nested array (e.g. "export.orders"), ``format`` "array" | "jsonl".
Document keys are kept verbatim; the mapping layer reads camelCase names.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from dyehouse_ingestion.adapters.base import SnapshotProbe
from dyehouse_kernel.exceptions import MalformedSnapshotError
from dyehouse_kernel.logging_config import get_logger

logger = get_logger("ingestion.json_adapter")

_SAMPLE_SIZE = 5


def _get_nested(data: Any, path: str) -> Any:
    """Follow dot-separated path into dict/list. Returns None if key missing."""
    if not path.strip():
        return data
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def _all_keys(documents: list[dict[str, Any]]) -> tuple[str, ...]:
    seen: set[str] = set()
    for doc in documents:
        seen.update(k for k in doc.keys() if isinstance(k, str))
    return tuple(sorted(seen))


def _encoding_reason(exc: UnicodeDecodeError) -> str:
    return f"invalid encoding: {exc.encoding} {exc.reason} at byte {exc.start}"


def _iter_lines(source_path: Path, encoding: str) -> Iterator[tuple[int, str]]:
    """Yield (line number, stripped text) for each non-blank line.

    Lines are decoded one at a time so a bad byte is reported with the
    line that holds it.
    """
    with source_path.open("rb") as f:
        for line_no, raw in enumerate(f, start=1):
            try:
                line = raw.decode(encoding).strip()
            except UnicodeDecodeError as exc:
                raise MalformedSnapshotError(
                    f"{source_path}:{line_no}", _encoding_reason(exc),
                ) from exc
            if line:
                yield line_no, line


def _plan_size(document: dict[str, Any]) -> int:
    plan = document.get("dyeingPlan")
    return len(plan) if isinstance(plan, list) else 0


class JsonSnapshotAdapter:
    """Read JSON array or JSON Lines snapshot files as one dict per order."""

    def _load_root(self, source_path: Path, options: dict[str, Any]) -> list[Any]:
        json_path = options.get("json_path")
        encoding = options.get("encoding", "utf-8")
        try:
            with source_path.open("r", encoding=encoding) as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise MalformedSnapshotError(str(source_path), f"invalid JSON: {exc.msg}") from exc
        except UnicodeDecodeError as exc:
            raise MalformedSnapshotError(str(source_path), _encoding_reason(exc)) from exc
        root = _get_nested(data, json_path) if json_path else data
        if not isinstance(root, list):
            raise MalformedSnapshotError(
                str(source_path),
                f"no array of orders at {json_path or 'document root'}",
            )
        return root

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """
        Yield order documents.

        Non-object entries are skipped (and logged).  A JSON Lines line that
        does not parse raises ``MalformedSnapshotError`` naming the line.
        """
        fmt = options.get("format", "array")
        encoding = options.get("encoding", "utf-8")

        if fmt == "jsonl":
            for line_no, line in _iter_lines(source_path, encoding):
                try:
                    item = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise MalformedSnapshotError(
                        f"{source_path}:{line_no}", f"invalid JSON: {exc.msg}",
                    ) from exc
                if not isinstance(item, dict):
                    logger.warning("snapshot_entry_skipped", extra={
                        "source": str(source_path),
                        "line": line_no,
                    })
                    continue
                yield item
            return

        for position, item in enumerate(self._load_root(source_path, options)):
            if not isinstance(item, dict):
                logger.warning("snapshot_entry_skipped", extra={
                    "source": str(source_path),
                    "position": position,
                })
                continue
            yield item

    def probe(self, source_path: Path, options: dict[str, Any]) -> SnapshotProbe:
        fmt = options.get("format", "array")
        encoding = options.get("encoding", "utf-8")

        if fmt == "jsonl":
            sample: list[dict[str, Any]] = []
            count = 0
            for _, line in _iter_lines(source_path, encoding):
                count += 1
                if len(sample) < _SAMPLE_SIZE:
                    try:
                        item = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if isinstance(item, dict):
                        sample.append(item)
        else:
            root = self._load_root(source_path, options)
            count = len(root)
            sample = [r for r in root[:_SAMPLE_SIZE] if isinstance(r, dict)]

        return SnapshotProbe(
            document_count=count,
            keys=_all_keys(sample),
            sample_documents=tuple(sample),
            batch_count=sum(_plan_size(doc) for doc in sample),
            encoding=encoding,
        )
