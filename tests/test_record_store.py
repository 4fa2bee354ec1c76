"""Tests for in-memory and JSON-file record stores."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta

import pytest

from conftest import make_network

from anchor_guidance.core.errors import RecordNotFoundError
from anchor_guidance.memory import InMemoryRecordStore, PersistentRecordStore
from anchor_guidance.schemas import AnchorRecord, ARObjectRecord, WirelessFingerprint


class TestInMemoryRecordStore:
    """Tests for the dictionary-backed store."""

    def test_put_and_get_anchor(self, store, sample_anchor):
        assert store.get_anchor("anchor-1") == sample_anchor
        assert store.get_anchor("missing") is None

    def test_list_anchors_newest_first(self, anchor_point):
        store = InMemoryRecordStore()
        now = datetime.now()
        store.put_anchor(AnchorRecord(id="old", gps=anchor_point, created_at=now - timedelta(days=1)))
        store.put_anchor(AnchorRecord(id="new", gps=anchor_point, created_at=now))
        assert [a.id for a in store.list_anchors()] == ["new", "old"]

    def test_object_requires_anchor(self, sample_object):
        store = InMemoryRecordStore()
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.put_object(sample_object)
        assert exc_info.value.kind == "Anchor"
        assert str(exc_info.value) == "Anchor not found: anchor-1"

    def test_not_found_is_key_error(self, sample_object):
        with pytest.raises(KeyError):
            InMemoryRecordStore().put_object(sample_object)

    def test_fingerprint_requires_object(self):
        store = InMemoryRecordStore()
        with pytest.raises(RecordNotFoundError):
            store.put_fingerprint(WirelessFingerprint(object_id="missing"))

    def test_list_objects_by_anchor(self, store, anchor_point):
        store.put_anchor(AnchorRecord(id="anchor-2", gps=anchor_point))
        store.put_object(
            ARObjectRecord(
                id="obj-2",
                anchor_id="anchor-2",
                label="Umbrella",
                bearing_from_anchor=0.0,
                capture_heading=0.0,
                capture_gps=anchor_point,
            )
        )
        assert [o.id for o in store.list_objects("anchor-2")] == ["obj-2"]
        assert {o.id for o in store.list_objects()} == {"obj-1", "obj-2"}

    def test_fingerprint_round_trip(self, store, sample_fingerprint):
        store.put_fingerprint(sample_fingerprint)
        loaded = store.get_fingerprint("obj-1")
        assert loaded.networks == sample_fingerprint.networks
        assert loaded.id == sample_fingerprint.id
        assert loaded.room_label == "Kitchen"

    def test_fingerprint_replaced_wholesale(self, store, sample_fingerprint):
        store.put_fingerprint(sample_fingerprint)
        store.put_fingerprint(
            WirelessFingerprint(object_id="obj-1", networks=[make_network("zz", -40.0)])
        )
        loaded = store.get_fingerprint("obj-1")
        assert [n.network_id for n in loaded.networks] == ["zz"]
        assert loaded.room_label is None

    def test_malformed_fingerprint_returns_none(self, store, sample_fingerprint, caplog):
        store.put_fingerprint(sample_fingerprint)
        store._fingerprint_rows["obj-1"]["networks"] = "[{\"id\": 1"
        with caplog.at_level(logging.WARNING):
            assert store.get_fingerprint("obj-1") is None
        assert "[STORE] Malformed fingerprint for obj-1" in caplog.text

    def test_invalid_network_entry_returns_none(self, store, sample_fingerprint):
        store.put_fingerprint(sample_fingerprint)
        store._fingerprint_rows["obj-1"]["networks"] = json.dumps([{"id": "a"}])
        assert store.get_fingerprint("obj-1") is None

    def test_delete_anchor_cascades(self, store, sample_fingerprint):
        store.put_fingerprint(sample_fingerprint)
        assert store.delete_anchor("anchor-1") is True
        assert store.get_object("obj-1") is None
        assert store.get_fingerprint("obj-1") is None
        assert store.count() == {"anchors": 0, "objects": 0, "fingerprints": 0}

    def test_delete_object_cascades(self, store, sample_fingerprint):
        store.put_fingerprint(sample_fingerprint)
        assert store.delete_object("obj-1") is True
        assert store.get_fingerprint("obj-1") is None
        assert store.get_anchor("anchor-1") is not None

    def test_delete_missing(self, store):
        assert store.delete_anchor("missing") is False
        assert store.delete_object("missing") is False
        assert store.delete_fingerprint("obj-1") is False

    def test_clear(self, store):
        store.clear()
        assert store.list_anchors() == []


class TestPersistentRecordStore:
    """Tests for the JSON-file store."""

    def test_survives_reopen(self, tmp_path, sample_anchor, sample_object, sample_fingerprint):
        path = tmp_path / "store.json"
        store = PersistentRecordStore(path)
        store.put_anchor(sample_anchor)
        store.put_object(sample_object)
        store.put_fingerprint(sample_fingerprint)

        reopened = PersistentRecordStore(path)
        assert reopened.get_anchor("anchor-1").label == "Kitchen counter"
        assert reopened.get_object("obj-1").bearing_from_anchor == 90.0
        assert reopened.get_fingerprint("obj-1").networks == sample_fingerprint.networks
        assert reopened.get_fingerprint("obj-1").id == sample_fingerprint.id

    def test_wire_format_on_disk(self, tmp_path, sample_anchor):
        path = tmp_path / "store.json"
        PersistentRecordStore(path).put_anchor(sample_anchor)
        data = json.loads(path.read_text())
        assert data["anchors"][0]["isIndoor"] is True
        assert not path.with_suffix(".json.tmp").exists()

    def test_delete_persisted(self, tmp_path, sample_anchor, sample_object):
        path = tmp_path / "store.json"
        store = PersistentRecordStore(path)
        store.put_anchor(sample_anchor)
        store.put_object(sample_object)
        store.delete_anchor("anchor-1")
        reopened = PersistentRecordStore(path)
        assert reopened.count() == {"anchors": 0, "objects": 0, "fingerprints": 0}

    def test_malformed_rows_skipped(self, tmp_path, sample_anchor):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "anchors": [sample_anchor.to_wire(), {"id": "broken"}],
            "objects": [{"label": "no ids"}],
            "fingerprints": ["garbage"],
        }))
        store = PersistentRecordStore(path)
        assert [a.id for a in store.list_anchors()] == ["anchor-1"]
        assert store.list_objects() == []

    def test_malformed_fingerprint_on_disk(self, tmp_path, sample_anchor, sample_object):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "anchors": [sample_anchor.to_wire()],
            "objects": [sample_object.to_wire()],
            "fingerprints": [{
                "object_id": "obj-1",
                "captured_at": datetime.now().isoformat(),
                "networks": "not json",
                "room_label": None,
            }],
        }))
        store = PersistentRecordStore(path)
        assert store.get_object("obj-1") is not None
        assert store.get_fingerprint("obj-1") is None

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{{{")
        assert PersistentRecordStore(path).count()["anchors"] == 0

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        PersistentRecordStore(path)
        assert path.parent.is_dir()
