"""Record stores for anchors, objects and wireless fingerprints.

Fingerprint networks are kept as JSON text, the way they are persisted,
and decoded on every read. A row that fails to decode is reported as
"no fingerprint" rather than propagated to the engine.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from anchor_guidance.core.errors import RecordNotFoundError
from anchor_guidance.core.interfaces import RecordStore
from anchor_guidance.schemas import AnchorRecord, ARObjectRecord, WirelessFingerprint

logger = logging.getLogger(__name__)


def _fingerprint_to_row(fingerprint: WirelessFingerprint) -> dict[str, Any]:
    """Convert a fingerprint to its stored row."""
    return {
        "id": fingerprint.id,
        "object_id": fingerprint.object_id,
        "captured_at": fingerprint.captured_at.isoformat(),
        "networks": json.dumps([n.to_wire() for n in fingerprint.networks]),
        "room_label": fingerprint.room_label,
    }


def _row_to_fingerprint(row: dict[str, Any]) -> WirelessFingerprint:
    """Convert a stored row back to a fingerprint.

    Raises:
        ValueError: If the row or its network list is malformed.
    """
    networks = json.loads(row["networks"])
    if not isinstance(networks, list):
        raise ValueError("networks is not a list")
    extra = {"id": row["id"]} if row.get("id") else {}
    return WirelessFingerprint(
        **extra,
        object_id=row["object_id"],
        captured_at=datetime.fromisoformat(row["captured_at"]),
        networks=networks,
        room_label=row.get("room_label"),
    )


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed record store.

    Not persisted across runs. Safe to share between request threads.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._lock = threading.RLock()
        self._anchors: dict[str, AnchorRecord] = {}
        self._objects: dict[str, ARObjectRecord] = {}
        self._fingerprint_rows: dict[str, dict[str, Any]] = {}

    def _on_change(self) -> None:
        """Hook called (under the lock) after every mutation."""

    # -------------------------------------------------------------------------
    # Anchors
    # -------------------------------------------------------------------------

    def put_anchor(self, anchor: AnchorRecord) -> None:
        with self._lock:
            self._anchors[anchor.id] = anchor
            self._on_change()

    def get_anchor(self, anchor_id: str) -> AnchorRecord | None:
        with self._lock:
            return self._anchors.get(anchor_id)

    def list_anchors(self) -> list[AnchorRecord]:
        with self._lock:
            return sorted(self._anchors.values(), key=lambda a: a.created_at, reverse=True)

    def delete_anchor(self, anchor_id: str) -> bool:
        with self._lock:
            if self._anchors.pop(anchor_id, None) is None:
                return False
            orphans = [oid for oid, o in self._objects.items() if o.anchor_id == anchor_id]
            for object_id in orphans:
                del self._objects[object_id]
                self._fingerprint_rows.pop(object_id, None)
            self._on_change()

        logger.info(f"[STORE] Deleted anchor {anchor_id} and {len(orphans)} objects")
        return True

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    def put_object(self, obj: ARObjectRecord) -> None:
        with self._lock:
            if obj.anchor_id not in self._anchors:
                raise RecordNotFoundError("Anchor", obj.anchor_id)
            self._objects[obj.id] = obj
            self._on_change()

    def get_object(self, object_id: str) -> ARObjectRecord | None:
        with self._lock:
            return self._objects.get(object_id)

    def list_objects(self, anchor_id: str | None = None) -> list[ARObjectRecord]:
        with self._lock:
            objects = [
                o for o in self._objects.values()
                if anchor_id is None or o.anchor_id == anchor_id
            ]
        return sorted(objects, key=lambda o: o.created_at, reverse=True)

    def delete_object(self, object_id: str) -> bool:
        with self._lock:
            if self._objects.pop(object_id, None) is None:
                return False
            self._fingerprint_rows.pop(object_id, None)
            self._on_change()
        return True

    # -------------------------------------------------------------------------
    # Fingerprints
    # -------------------------------------------------------------------------

    def put_fingerprint(self, fingerprint: WirelessFingerprint) -> None:
        with self._lock:
            if fingerprint.object_id not in self._objects:
                raise RecordNotFoundError("Object", fingerprint.object_id)
            # Replaced wholesale, never merged
            self._fingerprint_rows[fingerprint.object_id] = _fingerprint_to_row(fingerprint)
            self._on_change()

        logger.info(
            f"[STORE] Stored fingerprint for {fingerprint.object_id} "
            f"({len(fingerprint.networks)} networks)"
        )

    def get_fingerprint(self, object_id: str) -> WirelessFingerprint | None:
        with self._lock:
            row = self._fingerprint_rows.get(object_id)
        if row is None:
            return None

        try:
            return _row_to_fingerprint(row)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"[STORE] Malformed fingerprint for {object_id}: {e}")
            return None

    def delete_fingerprint(self, object_id: str) -> bool:
        with self._lock:
            if self._fingerprint_rows.pop(object_id, None) is None:
                return False
            self._on_change()
        return True

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def count(self) -> dict[str, int]:
        """Record counts by kind."""
        with self._lock:
            return {
                "anchors": len(self._anchors),
                "objects": len(self._objects),
                "fingerprints": len(self._fingerprint_rows),
            }

    def clear(self) -> None:
        """Remove every record."""
        with self._lock:
            self._anchors.clear()
            self._objects.clear()
            self._fingerprint_rows.clear()
            self._on_change()


class PersistentRecordStore(InMemoryRecordStore):
    """Record store persisted to a single JSON file.

    The whole file is rewritten (write to a temporary file, then rename)
    after every mutation, and loaded once on construction. Malformed
    anchors and objects are skipped on load; fingerprint rows are kept
    verbatim and decoded on read.
    """

    def __init__(self, storage_path: Path) -> None:
        """Initialize the persistent store.

        Args:
            storage_path: Path to the JSON file.
        """
        super().__init__()
        self._storage_path = Path(storage_path)
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        self._load_existing()

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def _load_existing(self) -> None:
        """Load records from the storage file if it exists."""
        if not self._storage_path.exists():
            return

        with open(self._storage_path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                logger.warning(f"[STORE] Ignoring unreadable store {self._storage_path}: {e}")
                return

        for raw in data.get("anchors", []):
            try:
                anchor = AnchorRecord.model_validate(raw)
            except ValidationError:
                logger.warning("[STORE] Skipping malformed anchor row")
                continue
            self._anchors[anchor.id] = anchor

        for raw in data.get("objects", []):
            try:
                obj = ARObjectRecord.model_validate(raw)
            except ValidationError:
                logger.warning("[STORE] Skipping malformed object row")
                continue
            if obj.anchor_id in self._anchors:
                self._objects[obj.id] = obj

        for row in data.get("fingerprints", []):
            if isinstance(row, dict) and row.get("object_id") in self._objects:
                self._fingerprint_rows[row["object_id"]] = row

        logger.info(
            f"[STORE] Loaded {len(self._anchors)} anchors, {len(self._objects)} objects, "
            f"{len(self._fingerprint_rows)} fingerprints from {self._storage_path}"
        )

    def _on_change(self) -> None:
        payload = {
            "anchors": [a.to_wire() for a in self._anchors.values()],
            "objects": [o.to_wire() for o in self._objects.values()],
            "fingerprints": list(self._fingerprint_rows.values()),
        }
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, separators=(",", ":"))
        os.replace(tmp_path, self._storage_path)
