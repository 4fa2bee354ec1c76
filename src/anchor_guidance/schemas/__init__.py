"""Data contracts for the guidance engine."""

from anchor_guidance.schemas.guidance import (
    DirectionAction,
    DirectionalScanRequest,
    DirectionalScanResponse,
    DirectionHint,
    GuidancePhase,
    GuidanceRequest,
    GuidanceResponse,
    GuidanceState,
    NearbyRequest,
    NearbyResponse,
    ObjectGuidance,
    ObjectSummary,
    ProximityState,
    RoomMatch,
    ScannedObject,
)
from anchor_guidance.schemas.records import AnchorRecord, ARObjectRecord, ElevationHint
from anchor_guidance.schemas.signals import (
    FingerprintUpload,
    NetworkObservation,
    WirelessFingerprint,
)
from anchor_guidance.schemas.spatial import GeoPoint, WireModel, normalize_heading

__all__ = [
    "AnchorRecord",
    "ARObjectRecord",
    "DirectionAction",
    "DirectionalScanRequest",
    "DirectionalScanResponse",
    "DirectionHint",
    "ElevationHint",
    "FingerprintUpload",
    "GeoPoint",
    "GuidancePhase",
    "GuidanceRequest",
    "GuidanceResponse",
    "GuidanceState",
    "NearbyRequest",
    "NearbyResponse",
    "NetworkObservation",
    "ObjectGuidance",
    "ObjectSummary",
    "ProximityState",
    "RoomMatch",
    "ScannedObject",
    "WireModel",
    "WirelessFingerprint",
    "normalize_heading",
]
