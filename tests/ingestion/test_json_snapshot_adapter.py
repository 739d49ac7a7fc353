"""
Tests for the JSON snapshot adapter.

Covers:
- JSON array and JSON Lines files
- Nested arrays via json_path
- Probing
- Invalid files
"""

import json

import pytest

from dyehouse_ingestion import JsonSnapshotAdapter, SnapshotAdapter, batches_from_snapshot
from dyehouse_kernel.exceptions import DyehouseKernelError, MalformedSnapshotError

ORDERS = [
    {"id": "O-1", "customerId": "C-1", "dyeingPlan": [{"id": "a"}, {"id": "b"}]},
    {"id": "O-2", "customerId": "C-2", "dyeingPlan": [{"id": "c"}]},
]


class TestRead:

    def setup_method(self):
        self.adapter = JsonSnapshotAdapter()

    def test_satisfies_protocol(self):
        assert isinstance(self.adapter, SnapshotAdapter)

    def test_array(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps(ORDERS))

        docs = list(self.adapter.read(path, {}))

        assert [d["id"] for d in docs] == ["O-1", "O-2"]
        assert "customerId" in docs[0]

    def test_json_path(self, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"export": {"orders": ORDERS}}))

        docs = list(self.adapter.read(path, {"json_path": "export.orders"}))

        assert len(docs) == 2

    def test_jsonl_skips_blank_and_non_objects(self, tmp_path):
        path = tmp_path / "orders.jsonl"
        path.write_text(json.dumps(ORDERS[0]) + "\n\n[1, 2]\n" + json.dumps(ORDERS[1]) + "\n")

        docs = list(self.adapter.read(path, {"format": "jsonl"}))

        assert [d["id"] for d in docs] == ["O-1", "O-2"]

    def test_feeds_mapping(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps(ORDERS))

        batches = batches_from_snapshot(self.adapter.read(path, {}))

        assert [b.id for b in batches] == ["a", "b", "c"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text("{not json")

        with pytest.raises(MalformedSnapshotError):
            list(self.adapter.read(path, {}))

    def test_invalid_jsonl_line_named(self, tmp_path):
        path = tmp_path / "orders.jsonl"
        path.write_text(json.dumps(ORDERS[0]) + "\n{broken\n")

        with pytest.raises(MalformedSnapshotError) as exc_info:
            list(self.adapter.read(path, {"format": "jsonl"}))

        assert exc_info.value.record_ref.endswith(":2")

    def test_invalid_encoding(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_bytes(b'[{"id": "o1", "material": "\xff\xfe"}]')

        with pytest.raises(DyehouseKernelError) as exc_info:
            list(self.adapter.read(path, {}))

        assert isinstance(exc_info.value, MalformedSnapshotError)
        assert exc_info.value.record_ref == str(path)
        assert exc_info.value.reason.startswith("invalid encoding")

    def test_invalid_encoding_jsonl_line_named(self, tmp_path):
        path = tmp_path / "orders.jsonl"
        path.write_bytes(json.dumps(ORDERS[0]).encode() + b'\n{"id": "\xff"}\n')

        with pytest.raises(MalformedSnapshotError) as exc_info:
            list(self.adapter.read(path, {"format": "jsonl"}))

        assert exc_info.value.record_ref == f"{path}:2"
        assert exc_info.value.reason.startswith("invalid encoding")

    def test_root_not_array(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps({"orders": ORDERS}))

        with pytest.raises(MalformedSnapshotError):
            list(self.adapter.read(path, {}))


class TestProbe:

    def setup_method(self):
        self.adapter = JsonSnapshotAdapter()

    def test_array_probe(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text(json.dumps(ORDERS))

        probe = self.adapter.probe(path, {})

        assert probe.document_count == 2
        assert probe.keys == ("customerId", "dyeingPlan", "id")
        assert probe.batch_count == 3
        assert probe.encoding == "utf-8"

    def test_jsonl_probe_counts_every_line(self, tmp_path):
        path = tmp_path / "orders.jsonl"
        path.write_text("\n".join(json.dumps(o) for o in ORDERS * 4))

        probe = self.adapter.probe(path, {"format": "jsonl"})

        assert probe.document_count == 8
        assert len(probe.sample_documents) == 5

    def test_jsonl_probe_rejects_bad_encoding(self, tmp_path):
        path = tmp_path / "orders.jsonl"
        path.write_bytes(b'{"id": "\xff"}\n')

        with pytest.raises(MalformedSnapshotError) as exc_info:
            self.adapter.probe(path, {"format": "jsonl"})

        assert exc_info.value.record_ref == f"{path}:1"
