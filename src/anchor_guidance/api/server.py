"""JSON API server for guidance clients.

Serves a REST API on a configurable port (default 3001). Built on stdlib
``http.server``, with one thread per request against a shared engine.

Endpoints
---------
GET    /api/health                          Liveness and session statistics
POST   /api/guidance                        One signal guidance poll
POST   /api/guidance/reset-session          Forget smoothing state
POST   /api/guidance/fingerprint/:objectId  Store (replace) a fingerprint
GET    /api/guidance/fingerprint/:objectId  Read a fingerprint
DELETE /api/guidance/fingerprint/:objectId  Delete a fingerprint
GET    /api/objects/guidance                Directional scan (query params)
GET    /api/objects/nearby                  Proximity gate (query params)
GET    /api/anchors                         List anchors
POST   /api/anchors                         Create or replace an anchor
GET    /api/anchors/:id                     Read an anchor
DELETE /api/anchors/:id                     Delete an anchor (cascades)
GET    /api/objects                         List objects (query: anchorId)
POST   /api/objects                         Create or replace an object
GET    /api/objects/:id                     Read an object
DELETE /api/objects/:id                     Delete an object (cascades)
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qsl, unquote, urlsplit

from pydantic import ValidationError

from anchor_guidance.core.engine import GuidanceEngine
from anchor_guidance.core.errors import RecordNotFoundError
from anchor_guidance.metrics.logging import GuidanceLogWriter
from anchor_guidance.schemas import (
    AnchorRecord,
    ARObjectRecord,
    DirectionalScanRequest,
    FingerprintUpload,
    GuidanceRequest,
    NearbyRequest,
)
from anchor_guidance.utils.config import DEFAULT_HOST, DEFAULT_PORT

logger = logging.getLogger(__name__)

_FINGERPRINT_PREFIX = "/api/guidance/fingerprint/"
_ANCHOR_PREFIX = "/api/anchors/"
_OBJECT_PREFIX = "/api/objects/"


class _BadRequest(Exception):
    """Request body could not be read as a JSON object."""


def _validation_details(error: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in error.errors()
    ]


# =====================================================================
# HTTP Request Handler
# =====================================================================

class _APIHandler(BaseHTTPRequestHandler):
    """Routes API requests to the guidance engine."""

    # Bound per server by GuidanceAPIServer
    _engine: GuidanceEngine
    _log_writer: GuidanceLogWriter | None = None
    _log_lock: threading.Lock

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(f"[API] {self.address_string()} {format % args}")

    def _send_json(self, data: Any, status: int = 200) -> None:
        body = json.dumps(data, default=str).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()
        self.wfile.write(body)

    def do_OPTIONS(self) -> None:
        """Handle CORS preflight."""
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def do_GET(self) -> None:
        self._dispatch(self._route_get)

    def do_POST(self) -> None:
        self._dispatch(self._route_post)

    def do_DELETE(self) -> None:
        self._dispatch(self._route_delete)

    def _dispatch(self, route) -> None:
        """Run a router and map failures to status codes."""
        path = unquote(urlsplit(self.path).path).rstrip("/") or "/"
        try:
            route(path)
        except _BadRequest as e:
            self._send_json({"error": str(e)}, 400)
        except ValidationError as e:
            self._send_json(
                {"error": "Invalid request", "details": _validation_details(e)},
                400,
            )
        except RecordNotFoundError as e:
            self._send_json({"error": str(e)}, 404)
        except Exception as e:
            logger.exception(f"[API] Unhandled error on {self.command} {path}")
            self._send_json({"error": str(e)}, 500)

    # ------------------------------------------------------------------
    # Routers
    # ------------------------------------------------------------------

    def _route_get(self, path: str) -> None:
        if path == "/api/health":
            self._handle_health()
        elif path.startswith(_FINGERPRINT_PREFIX):
            self._handle_fingerprint_get(path[len(_FINGERPRINT_PREFIX):])
        elif path == "/api/objects/guidance":
            self._handle_directional_scan()
        elif path == "/api/objects/nearby":
            self._handle_nearby()
        elif path == "/api/anchors":
            self._handle_anchor_list()
        elif path.startswith(_ANCHOR_PREFIX):
            self._handle_anchor_get(path[len(_ANCHOR_PREFIX):])
        elif path == "/api/objects":
            self._handle_object_list()
        elif path.startswith(_OBJECT_PREFIX):
            self._handle_object_get(path[len(_OBJECT_PREFIX):])
        else:
            self._send_json({"error": "Not found"}, 404)

    def _route_post(self, path: str) -> None:
        if path == "/api/guidance":
            self._handle_guidance()
        elif path == "/api/guidance/reset-session":
            self._handle_reset_session()
        elif path.startswith(_FINGERPRINT_PREFIX):
            self._handle_fingerprint_post(path[len(_FINGERPRINT_PREFIX):])
        elif path == "/api/anchors":
            self._handle_anchor_post()
        elif path == "/api/objects":
            self._handle_object_post()
        else:
            self._send_json({"error": "Not found"}, 404)

    def _route_delete(self, path: str) -> None:
        if path.startswith(_FINGERPRINT_PREFIX):
            self._handle_fingerprint_delete(path[len(_FINGERPRINT_PREFIX):])
        elif path.startswith(_ANCHOR_PREFIX):
            self._handle_anchor_delete(path[len(_ANCHOR_PREFIX):])
        elif path.startswith(_OBJECT_PREFIX):
            self._handle_object_delete(path[len(_OBJECT_PREFIX):])
        else:
            self._send_json({"error": "Not found"}, 404)

    # ------------------------------------------------------------------
    # Guidance
    # ------------------------------------------------------------------

    def _handle_health(self) -> None:
        self._send_json({
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "sessions": self._engine.smoothing.get_statistics(),
        })

    def _handle_guidance(self) -> None:
        request = GuidanceRequest.model_validate(self._read_body())
        response = self._engine.guide(request)

        if self._log_writer is not None:
            with self._log_lock:
                self._log_writer.write(request, response)

        self._send_json(response.to_wire())

    def _handle_reset_session(self) -> None:
        body = self._read_body()
        removed = self._engine.reset_session(
            object_id=body.get("objectId") or None,
            session_id=body.get("sessionId") or None,
        )
        self._send_json({"status": "ok", "removed": removed})

    def _handle_fingerprint_post(self, object_id: str) -> None:
        store = self._engine.store
        obj = store.get_object(object_id)
        if obj is None:
            raise RecordNotFoundError("Object", object_id)

        upload = FingerprintUpload.model_validate(self._read_body())
        fingerprint = upload.to_fingerprint(object_id)

        # The capture also refreshes the object's room context
        update: dict[str, Any] = {}
        if fingerprint.room_label:
            update["room_label"] = fingerprint.room_label
        if upload.placement_heading is not None:
            update["placement_heading"] = upload.placement_heading

        store.put_fingerprint(fingerprint)
        if update:
            store.put_object(obj.model_copy(update=update))

        self._send_json({
            "id": fingerprint.id,
            "objectId": object_id,
            "stored": True,
            "networkCount": len(fingerprint.networks),
            "roomLabel": fingerprint.room_label,
        }, 201)

    def _handle_fingerprint_get(self, object_id: str) -> None:
        fingerprint = self._engine.store.get_fingerprint(object_id)
        if fingerprint is None:
            raise RecordNotFoundError("Fingerprint", object_id)
        self._send_json(fingerprint.to_wire())

    def _handle_fingerprint_delete(self, object_id: str) -> None:
        if not self._engine.store.delete_fingerprint(object_id):
            raise RecordNotFoundError("Fingerprint", object_id)
        self._send_json({"status": "ok", "deleted": object_id})

    def _handle_directional_scan(self) -> None:
        request = DirectionalScanRequest.model_validate(self._parse_query())
        self._send_json(self._engine.directional_scan(request).to_wire())

    def _handle_nearby(self) -> None:
        request = NearbyRequest.model_validate(self._parse_query())
        self._send_json(self._engine.nearby_objects(request).to_wire())

    # ------------------------------------------------------------------
    # Anchors
    # ------------------------------------------------------------------

    def _handle_anchor_list(self) -> None:
        anchors = self._engine.store.list_anchors()
        self._send_json({"anchors": [a.to_wire() for a in anchors], "count": len(anchors)})

    def _handle_anchor_post(self) -> None:
        body = self._read_body()
        body.setdefault("id", str(uuid.uuid4()))
        anchor = AnchorRecord.model_validate(body)
        self._engine.store.put_anchor(anchor)
        logger.info(f"[API] Stored anchor {anchor.id}")
        self._send_json(anchor.to_wire(), 201)

    def _handle_anchor_get(self, anchor_id: str) -> None:
        anchor = self._engine.store.get_anchor(anchor_id)
        if anchor is None:
            raise RecordNotFoundError("Anchor", anchor_id)
        self._send_json(anchor.to_wire())

    def _handle_anchor_delete(self, anchor_id: str) -> None:
        if not self._engine.store.delete_anchor(anchor_id):
            raise RecordNotFoundError("Anchor", anchor_id)
        self._send_json({"status": "ok", "deleted": anchor_id})

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def _handle_object_list(self) -> None:
        anchor_id = self._parse_query().get("anchorId") or None
        objects = self._engine.store.list_objects(anchor_id)
        self._send_json({"objects": [o.to_wire() for o in objects], "count": len(objects)})

    def _handle_object_post(self) -> None:
        body = self._read_body()
        body.setdefault("id", str(uuid.uuid4()))
        obj = ARObjectRecord.model_validate(body)
        self._engine.store.put_object(obj)
        logger.info(f"[API] Stored object {obj.id} under anchor {obj.anchor_id}")
        self._send_json(obj.to_wire(), 201)

    def _handle_object_get(self, object_id: str) -> None:
        obj = self._engine.store.get_object(object_id)
        if obj is None:
            raise RecordNotFoundError("Object", object_id)
        self._send_json(obj.to_wire())

    def _handle_object_delete(self, object_id: str) -> None:
        if not self._engine.store.delete_object(object_id):
            raise RecordNotFoundError("Object", object_id)
        self._engine.reset_session(object_id)
        self._send_json({"status": "ok", "deleted": object_id})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_body(self) -> dict[str, Any]:
        """Read the request body as a JSON object ({} when empty)."""
        length = int(self.headers.get("Content-Length", 0))
        if not length:
            return {}
        try:
            body = json.loads(self.rfile.read(length).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise _BadRequest("invalid JSON")
        if not isinstance(body, dict):
            raise _BadRequest("request body must be a JSON object")
        return body

    def _parse_query(self) -> dict[str, str]:
        """Parse the query string; empty values are dropped."""
        return {k: v for k, v in parse_qsl(urlsplit(self.path).query) if v != ""}


# =====================================================================
# Server wrapper
# =====================================================================

class GuidanceAPIServer:
    """Serves a GuidanceEngine over HTTP.

    Parameters
    ----------
    engine : GuidanceEngine
        Engine shared by every request thread.
    host : str
        Interface to bind.
    port : int
        Port to listen on; 0 picks a free port.
    log_writer : GuidanceLogWriter, optional
        Records every guidance poll for replay.
    """

    def __init__(
        self,
        engine: GuidanceEngine,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        log_writer: GuidanceLogWriter | None = None,
    ) -> None:
        self.engine = engine
        self.host = host
        self.port = port
        self._log_writer = log_writer
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("", "0.0.0.0") else self.host
        return f"http://{host}:{self.port}"

    def _bind(self) -> ThreadingHTTPServer:
        handler = type(
            "_BoundAPIHandler",
            (_APIHandler,),
            {
                "_engine": self.engine,
                "_log_writer": self._log_writer,
                "_log_lock": threading.Lock(),
            },
        )
        server = ThreadingHTTPServer((self.host, self.port), handler)
        # Resolve an ephemeral port
        self.port = server.server_address[1]
        return server

    def start(self) -> None:
        """Serve in a daemon thread and return immediately."""
        self._server = self._bind()
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="guidance-api-server",
        )
        self._thread.start()
        logger.info(f"[API] Guidance API server started on {self.url}")

    def serve_forever(self) -> None:
        """Serve in the calling thread until interrupted."""
        self._server = self._bind()
        logger.info(f"[API] Guidance API server listening on {self.url}")
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()
            self._server = None

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("[API] Guidance API server stopped")
