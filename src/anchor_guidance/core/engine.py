"""Guidance engine - answers guidance polls.

Each signal guidance poll runs a fixed pipeline:
1. Look up the target object (unknown -> degraded FAR response)
2. Load its stored fingerprint (missing or malformed -> no fingerprint)
3. Score the live scan against the fingerprint
4. Smooth the raw similarity per (object, session)
5. Classify the phase and synthesize a direction hint

Directional scans and nearby queries use GPS and heading only and never
touch the smoothing state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from anchor_guidance.modules.direction import direction_hint, object_guidance
from anchor_guidance.modules.phase import (
    UNREGISTERED_DESCRIPTION,
    classify_phase,
    describe_phase,
    shows_directional_arrow,
    shows_ghost_image,
)
from anchor_guidance.modules.proximity_gate import gate
from anchor_guidance.modules.signal_scorer import score
from anchor_guidance.modules.smoothing import SessionSmoothingStore
from anchor_guidance.schemas import (
    DirectionAction,
    DirectionalScanRequest,
    DirectionalScanResponse,
    DirectionHint,
    GeoPoint,
    GuidancePhase,
    GuidanceRequest,
    GuidanceResponse,
    NearbyRequest,
    NearbyResponse,
    ObjectSummary,
    RoomMatch,
    ScannedObject,
)
from anchor_guidance.utils.config import EngineConfig

if TYPE_CHECKING:
    from anchor_guidance.core.interfaces import RecordStore
    from anchor_guidance.schemas import ARObjectRecord, WirelessFingerprint

logger = logging.getLogger(__name__)

UNKNOWN_ROOM = "Unknown"
UNREGISTERED_LABEL = "Unregistered Object"


def _round2(value: float) -> float:
    return round(value, 2)


class GuidanceEngine:
    """Stateless request handlers over a record store and a smoothing store.

    The smoothing store is the only mutable state. It is injected so that
    one instance can be shared by every request thread of a server.
    """

    def __init__(
        self,
        store: RecordStore,
        smoothing: SessionSmoothingStore | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Source of anchors, objects and fingerprints.
            smoothing: Shared smoothing store; built from config if None.
            config: Tunable parameters; defaults if None.
        """
        self._config = config or EngineConfig()
        self._store = store
        self._smoothing = smoothing or SessionSmoothingStore(
            window=self._config.smoothing_window,
            decay=self._config.smoothing_decay,
            room_confirmation_count=self._config.room_confirmation_count,
            idle_ttl_seconds=self._config.session_idle_ttl_seconds,
            max_sessions=self._config.max_tracked_sessions,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def smoothing(self) -> SessionSmoothingStore:
        return self._smoothing

    @property
    def config(self) -> EngineConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Signal guidance
    # -------------------------------------------------------------------------

    def guide(self, request: GuidanceRequest) -> GuidanceResponse:
        """Answer one guidance poll for a target object.

        Never raises for an unknown object or a missing fingerprint; both
        degrade to a low-confidence response.
        """
        record = self._store.get_object(request.target_object_id)
        if record is None:
            logger.info(f"[GUIDANCE] Unknown object {request.target_object_id}")
            return self._unregistered_response(request.target_object_id)

        fingerprint = self._store.get_fingerprint(record.id)
        raw = score(request.current_networks, fingerprint)
        target_room = self._target_room(record, fingerprint)

        # The target room is the only label a scan can vote for
        observed_room = target_room if raw > 0 and target_room != UNKNOWN_ROOM else None
        smoothed = self._smoothing.update(
            record.id,
            request.session_id,
            raw,
            observed_room,
        )

        confidence = smoothed.smoothed_similarity
        phase = classify_phase(confidence)
        hint = direction_hint(request.current_heading, record.heading, confidence)

        logger.debug(
            f"[GUIDANCE] object={record.id} session={request.session_id} "
            f"raw={raw:.3f} smoothed={confidence:.3f} phase={phase.value} "
            f"action={hint.action.value}"
        )

        return GuidanceResponse(
            phase=phase,
            phase_description=describe_phase(phase),
            confidence=_round2(confidence),
            raw_similarity=_round2(raw),
            room_match=RoomMatch(
                target_room=target_room,
                likely_current_room=smoothed.confirmed_room or UNKNOWN_ROOM,
                similarity=_round2(confidence),
            ),
            direction=hint.model_copy(update={"confidence": _round2(hint.confidence)}),
            object=ObjectSummary.from_record(record),
            show_ghost_image=shows_ghost_image(phase),
            show_directional_arrow=shows_directional_arrow(phase),
        )

    @staticmethod
    def _target_room(
        record: ARObjectRecord,
        fingerprint: WirelessFingerprint | None,
    ) -> str:
        if fingerprint is not None and fingerprint.room_label:
            return fingerprint.room_label
        return record.room_label or UNKNOWN_ROOM

    @staticmethod
    def _unregistered_response(object_id: str) -> GuidanceResponse:
        return GuidanceResponse(
            phase=GuidancePhase.FAR,
            phase_description=UNREGISTERED_DESCRIPTION,
            confidence=0.0,
            raw_similarity=0.0,
            room_match=RoomMatch(),
            direction=DirectionHint(
                hint="Move around to explore",
                action=DirectionAction.EXPLORE,
                relative_bearing=None,
                confidence=0.0,
            ),
            object=ObjectSummary(id=object_id, label=UNREGISTERED_LABEL),
            show_ghost_image=False,
            show_directional_arrow=True,
        )

    def reset_session(self, object_id: str | None = None, session_id: str | None = None) -> int:
        """Forget smoothing state. Returns the number of keys removed."""
        return self._smoothing.reset(object_id, session_id)

    # -------------------------------------------------------------------------
    # Directional scan
    # -------------------------------------------------------------------------

    def directional_scan(self, request: DirectionalScanRequest) -> DirectionalScanResponse:
        """Geodesic guidance toward every object of one anchor, or of all.

        Objects whose anchor has disappeared are skipped. Entries are
        sorted by distance to their anchor, closest first.
        """
        user = GeoPoint(
            latitude=request.current_latitude,
            longitude=request.current_longitude,
            heading=request.current_heading,
        )

        anchors: dict[str, GeoPoint] = {}
        entries: list[ScannedObject] = []
        for obj in self._store.list_objects(request.anchor_id):
            if obj.anchor_id not in anchors:
                anchor = self._store.get_anchor(obj.anchor_id)
                if anchor is None:
                    continue
                anchors[obj.anchor_id] = anchor.gps

            guidance = object_guidance(
                user,
                request.current_heading,
                anchors[obj.anchor_id],
                obj.bearing_from_anchor,
                distance_from_anchor=obj.distance_from_anchor,
                elevation=obj.elevation_hint,
                tolerance_degrees=self._config.aligned_tolerance_degrees,
            )
            entries.append(
                ScannedObject(
                    id=obj.id,
                    label=obj.label,
                    reference_photo=obj.reference_photo,
                    guidance=guidance,
                )
            )

        entries.sort(key=lambda e: e.guidance.distance_to_anchor)
        logger.debug(f"[GUIDANCE] Directional scan returned {len(entries)} objects")
        return DirectionalScanResponse(objects=entries)

    # -------------------------------------------------------------------------
    # Nearby objects
    # -------------------------------------------------------------------------

    def nearby_objects(self, request: NearbyRequest) -> NearbyResponse:
        """Objects within the GPS radius and the heading cone of the user."""
        user = GeoPoint(
            latitude=request.current_latitude,
            longitude=request.current_longitude,
            heading=request.current_heading,
        )
        radius = request.radius_meters or self._config.gate_radius_m
        cone = request.cone_degrees or self._config.gate_cone_degrees

        candidates = self._store.list_objects(request.anchor_id)
        gated = gate(user, request.current_heading, candidates, radius, cone)
        return NearbyResponse(objects=gated)
