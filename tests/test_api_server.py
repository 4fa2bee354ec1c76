"""Tests for the guidance JSON API server.

Covers:
- Guidance polls and session reset over HTTP
- Fingerprint, anchor and object CRUD
- Directional scan and nearby queries from query strings
- Error mapping (400 / 404) and CORS headers
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any

import pytest

from anchor_guidance.api.server import GuidanceAPIServer
from anchor_guidance.core.engine import GuidanceEngine
from anchor_guidance.metrics.logging import GuidanceLogWriter

pytestmark = pytest.mark.integration


def call(server: GuidanceAPIServer, method: str, path: str, body: Any = None, raw: bytes | None = None):
    """Send a request; return (status, parsed JSON body, headers)."""
    data = raw if raw is not None else (json.dumps(body).encode() if body is not None else None)
    request = urllib.request.Request(f"{server.url}{path}", data=data, method=method)
    if data is not None:
        request.add_header("Content-Type", "application/json")
    try:
        with urllib.request.urlopen(request, timeout=5) as response:
            payload = response.read()
            return response.status, (json.loads(payload) if payload else None), response.headers
    except urllib.error.HTTPError as e:
        payload = e.read()
        return e.code, (json.loads(payload) if payload else None), e.headers


@pytest.fixture
def server(store):
    server = GuidanceAPIServer(GuidanceEngine(store), host="127.0.0.1", port=0)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def wire_scan(sample_scan):
    return [n.to_wire() for n in sample_scan]


class TestHealth:
    """Tests for liveness and routing."""

    def test_health(self, server):
        status, body, _ = call(server, "GET", "/api/health")
        assert status == 200
        assert body["status"] == "ok"
        assert body["sessions"]["live_sessions"] == 0

    def test_unknown_path(self, server):
        status, body, _ = call(server, "GET", "/api/nope")
        assert status == 404
        assert body["error"] == "Not found"

    def test_cors_preflight(self, server):
        status, _, headers = call(server, "OPTIONS", "/api/guidance")
        assert status == 204
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert "DELETE" in headers["Access-Control-Allow-Methods"]


class TestGuidanceEndpoints:
    """Tests for guidance polls over HTTP."""

    def test_guidance_after_fingerprint(self, server, wire_scan):
        status, body, _ = call(
            server, "POST", "/api/guidance/fingerprint/obj-1",
            {"networks": wire_scan, "roomLabel": "Pantry", "placementHeading": 370},
        )
        assert status == 201
        assert body["objectId"] == "obj-1"
        assert body["stored"] is True
        assert body["networkCount"] == 3
        assert body["roomLabel"] == "Pantry"
        assert body["id"]

        status, body, headers = call(
            server, "POST", "/api/guidance",
            {"targetObjectId": "obj-1", "currentNetworks": wire_scan, "currentHeading": 10},
        )
        assert status == 200
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert body["phase"] == "ARRIVED"
        assert body["showGhostImage"] is True
        assert body["roomMatch"]["targetRoom"] == "Pantry"
        assert body["direction"]["action"] == "FORWARD"

    def test_fingerprint_updates_object(self, server, store, wire_scan):
        call(
            server, "POST", "/api/guidance/fingerprint/obj-1",
            {"networks": wire_scan, "roomLabel": "Pantry", "placementHeading": -90},
        )
        obj = store.get_object("obj-1")
        assert obj.room_label == "Pantry"
        assert obj.placement_heading == 270.0

    def test_fingerprint_heading_key(self, server, store, wire_scan):
        """The capture heading may also arrive as plain `heading`."""
        status, _, _ = call(
            server, "POST", "/api/guidance/fingerprint/obj-1",
            {"networks": wire_scan, "heading": 45},
        )
        assert status == 201
        obj = store.get_object("obj-1")
        assert obj.placement_heading == 45.0
        assert obj.room_label == "Kitchen"

    @pytest.mark.parametrize(
        "extra",
        [{"placementHeading": "north"}, {"placementHeading": [1]}, {"networks": "not a list"}],
    )
    def test_rejected_capture_stores_nothing(self, server, store, wire_scan, extra):
        """A rejected capture leaves the fingerprint and object untouched."""
        body = {"networks": wire_scan, "roomLabel": "Pantry", **extra}
        status, response, _ = call(server, "POST", "/api/guidance/fingerprint/obj-1", body)
        assert status == 400
        assert response["error"] == "Invalid request"
        assert store.get_fingerprint("obj-1") is None
        obj = store.get_object("obj-1")
        assert obj.placement_heading is None
        assert obj.room_label == "Kitchen"

    def test_fingerprint_non_finite_heading(self, server, store, wire_scan):
        raw = json.dumps({"networks": wire_scan}).encode()[:-1] + b', "heading": NaN}'
        status, body, _ = call(server, "POST", "/api/guidance/fingerprint/obj-1", raw=raw)
        assert status == 400
        assert body["details"][0]["field"] in ("heading", "placementHeading")
        assert store.get_fingerprint("obj-1") is None

    def test_guidance_unknown_object(self, server):
        status, body, _ = call(server, "POST", "/api/guidance", {"targetObjectId": "ghost"})
        assert status == 200
        assert body["object"]["label"] == "Unregistered Object"
        assert body["direction"]["action"] == "EXPLORE"

    def test_guidance_missing_target(self, server):
        status, body, _ = call(server, "POST", "/api/guidance", {"currentNetworks": []})
        assert status == 400
        assert body["error"] == "Invalid request"
        assert body["details"][0]["field"] == "targetObjectId"

    @pytest.mark.parametrize(
        "raw",
        [
            b'{"targetObjectId": "obj-1", "currentHeading": NaN}',
            b'{"targetObjectId": "obj-1", "currentHeading": Infinity}',
            b'{"targetObjectId": "obj-1", "currentHeading": 1e400}',
            b'{"targetObjectId": "obj-1", "currentHeading": [1]}',
        ],
    )
    def test_bad_heading_is_client_error(self, server, raw):
        """Non-finite or non-numeric headings are rejected with field details."""
        status, body, _ = call(server, "POST", "/api/guidance", raw=raw)
        assert status == 400
        assert body["error"] == "Invalid request"
        assert body["details"][0]["field"] == "currentHeading"

    def test_invalid_json(self, server):
        status, body, _ = call(server, "POST", "/api/guidance", raw=b"{nope")
        assert status == 400
        assert body["error"] == "invalid JSON"

    def test_non_object_body(self, server):
        status, _, _ = call(server, "POST", "/api/guidance", [1, 2])
        assert status == 400

    def test_reset_session(self, server, wire_scan):
        call(server, "POST", "/api/guidance", {"targetObjectId": "obj-1", "sessionId": "a"})
        call(server, "POST", "/api/guidance", {"targetObjectId": "obj-1", "sessionId": "b"})
        status, body, _ = call(
            server, "POST", "/api/guidance/reset-session", {"objectId": "obj-1", "sessionId": "a"},
        )
        assert status == 200
        assert body["removed"] == 1

        _, body, _ = call(server, "POST", "/api/guidance/reset-session", {})
        assert body["removed"] == 1

    def test_fingerprint_get_and_delete(self, server, wire_scan):
        status, _, _ = call(server, "GET", "/api/guidance/fingerprint/obj-1")
        assert status == 404

        call(server, "POST", "/api/guidance/fingerprint/obj-1", {"networks": wire_scan})
        status, body, _ = call(server, "GET", "/api/guidance/fingerprint/obj-1")
        assert status == 200
        assert body["objectId"] == "obj-1"
        assert len(body["networks"]) == 3

        status, _, _ = call(server, "DELETE", "/api/guidance/fingerprint/obj-1")
        assert status == 200
        status, _, _ = call(server, "DELETE", "/api/guidance/fingerprint/obj-1")
        assert status == 404

    def test_fingerprint_for_missing_object(self, server, wire_scan):
        status, body, _ = call(server, "POST", "/api/guidance/fingerprint/ghost", {"networks": wire_scan})
        assert status == 404
        assert body["error"] == "Object not found: ghost"

    def test_guidance_logged(self, store, tmp_path):
        log_path = tmp_path / "polls.jsonl"
        with GuidanceLogWriter(log_path) as writer:
            server = GuidanceAPIServer(GuidanceEngine(store), host="127.0.0.1", port=0, log_writer=writer)
            server.start()
            try:
                call(server, "POST", "/api/guidance", {"targetObjectId": "obj-1"})
                call(server, "POST", "/api/guidance", {"targetObjectId": "obj-1"})
            finally:
                server.stop()
        lines = log_path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["request"]["targetObjectId"] == "obj-1"


class TestScanEndpoints:
    """Tests for query-string driven endpoints."""

    def test_directional_scan(self, server, anchor_point):
        status, body, _ = call(
            server, "GET",
            f"/api/objects/guidance?currentHeading=92&currentLat={anchor_point.latitude}"
            f"&currentLng={anchor_point.longitude}&anchorId=anchor-1",
        )
        assert status == 200
        guidance = body["objects"][0]["guidance"]
        assert guidance["state"] == "ALIGNED"
        assert guidance["targetHeading"] == 90
        assert guidance["distanceHint"] == "about 2m ahead"

    def test_directional_scan_missing_heading(self, server):
        status, body, _ = call(server, "GET", "/api/objects/guidance?currentLat=1&currentLng=2")
        assert status == 400
        assert body["details"][0]["field"] == "currentHeading"

    @pytest.mark.parametrize("heading", ["nan", "inf", "1e400"])
    def test_directional_scan_non_finite_heading(self, server, heading):
        status, body, _ = call(
            server, "GET",
            f"/api/objects/guidance?currentHeading={heading}&currentLat=1&currentLng=2",
        )
        assert status == 400
        assert body["details"][0]["field"] == "currentHeading"

    def test_nearby(self, server, anchor_point):
        status, body, _ = call(
            server, "GET",
            f"/api/objects/nearby?currentLat={anchor_point.latitude}"
            f"&currentLng={anchor_point.longitude}&currentHeading=200",
        )
        assert status == 200
        assert [o["id"] for o in body["objects"]] == ["obj-1"]


class TestRecordEndpoints:
    """Tests for anchor and object CRUD."""

    def test_list_anchors(self, server):
        status, body, _ = call(server, "GET", "/api/anchors")
        assert status == 200
        assert body["count"] == 1
        assert body["anchors"][0]["id"] == "anchor-1"

    def test_create_anchor_assigns_id(self, server):
        status, body, _ = call(server, "POST", "/api/anchors", {"label": "Desk", "gps": {"lat": 1, "lng": 2}})
        assert status == 201
        assert body["id"]
        status, fetched, _ = call(server, "GET", f"/api/anchors/{body['id']}")
        assert status == 200
        assert fetched["label"] == "Desk"

    def test_create_anchor_invalid(self, server):
        status, body, _ = call(server, "POST", "/api/anchors", {"label": "No gps"})
        assert status == 400
        assert body["details"][0]["field"] == "gps"

    def test_create_object_for_missing_anchor(self, server, anchor_point):
        status, _, _ = call(server, "POST", "/api/objects", {
            "anchorId": "ghost",
            "label": "Wallet",
            "bearingFromAnchor": 10,
            "captureHeading": 10,
            "captureGps": anchor_point.to_wire(),
        })
        assert status == 404

    def test_list_objects_by_anchor(self, server):
        _, body, _ = call(server, "GET", "/api/objects?anchorId=anchor-1")
        assert body["count"] == 1
        _, body, _ = call(server, "GET", "/api/objects?anchorId=other")
        assert body["count"] == 0

    def test_delete_anchor_cascades(self, server):
        status, _, _ = call(server, "DELETE", "/api/anchors/anchor-1")
        assert status == 200
        status, _, _ = call(server, "GET", "/api/objects/obj-1")
        assert status == 404
        status, _, _ = call(server, "DELETE", "/api/anchors/anchor-1")
        assert status == 404

    def test_delete_object(self, server):
        status, body, _ = call(server, "DELETE", "/api/objects/obj-1")
        assert status == 200
        assert body["deleted"] == "obj-1"
