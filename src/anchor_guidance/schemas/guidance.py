"""Request and response contracts of the guidance engine.

Two independent flows share these types:
- Signal guidance: wireless scan + heading for one target object
- Directional scan: GPS + heading for every object of an anchor

Requests are validated on construction; a missing required identifier
raises pydantic.ValidationError, which the API layer reports as a
rejected request.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, Field, field_validator

from anchor_guidance.schemas.records import ARObjectRecord
from anchor_guidance.schemas.signals import NetworkObservation
from anchor_guidance.schemas.spatial import WireModel, normalize_heading


# =============================================================================
# ENUMS
# =============================================================================

class GuidancePhase(str, Enum):
    """Discrete proximity phase derived from smoothed similarity."""

    FAR = "FAR"
    APPROACHING = "APPROACHING"
    NEAR = "NEAR"
    ARRIVED = "ARRIVED"


class DirectionAction(str, Enum):
    """Action suggested by the signal-based direction strategy."""

    FORWARD = "FORWARD"
    TURN_LEFT = "TURN_LEFT"
    TURN_RIGHT = "TURN_RIGHT"
    TURN_AROUND = "TURN_AROUND"
    SCAN = "SCAN"
    EXPLORE = "EXPLORE"


class GuidanceState(str, Enum):
    """Rotation state from the geodesic strategy."""

    ALIGNED = "ALIGNED"
    ROTATE_LEFT = "ROTATE_LEFT"
    ROTATE_RIGHT = "ROTATE_RIGHT"
    BEHIND = "BEHIND"


class ProximityState(str, Enum):
    """Distance band to the anchor."""

    VERY_CLOSE = "VERY_CLOSE"
    CLOSE = "CLOSE"
    NEAR = "NEAR"
    FAR = "FAR"


# =============================================================================
# SIGNAL GUIDANCE
# =============================================================================

class GuidanceRequest(WireModel):
    """One guidance poll from a client (typically 1 Hz)."""

    target_object_id: str = Field(..., min_length=1)
    current_networks: list[NetworkObservation] = Field(
        default_factory=list,
        description="Live scan; empty on clients without radio access",
    )
    current_heading: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "currentHeading", "currentHeadingDegrees", "current_heading",
        ),
    )
    session_id: str | None = Field(default=None)

    @field_validator("current_networks", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value

    @field_validator("current_heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        return normalize_heading(value)


class DirectionHint(WireModel):
    """Actionable instruction for the UI arrow."""

    hint: str
    action: DirectionAction
    relative_bearing: float | None = Field(
        default=None,
        description="Signed delta to the placement heading; null when unknown",
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class RoomMatch(WireModel):
    """Target room versus the hysteresis-confirmed current room."""

    target_room: str = "Unknown"
    likely_current_room: str = "Unknown"
    similarity: float = Field(default=0.0, ge=0.0, le=1.0)


class ObjectSummary(WireModel):
    """The subset of an object the guidance UI renders."""

    id: str
    label: str
    description: str | None = None
    elevation_hint: str | None = None
    reference_photo: str | None = None

    @classmethod
    def from_record(cls, record: ARObjectRecord) -> "ObjectSummary":
        return cls(
            id=record.id,
            label=record.label,
            description=record.description,
            elevation_hint=record.elevation_hint.value if record.elevation_hint else None,
            reference_photo=record.reference_photo,
        )


class GuidanceResponse(WireModel):
    """Structured result of one guidance poll."""

    phase: GuidancePhase
    phase_description: str
    confidence: float = Field(..., ge=0.0, le=1.0, description="Smoothed similarity")
    raw_similarity: float = Field(..., ge=0.0, le=1.0)
    room_match: RoomMatch
    direction: DirectionHint
    object: ObjectSummary
    show_ghost_image: bool = False
    show_directional_arrow: bool = True


# =============================================================================
# DIRECTIONAL SCAN
# =============================================================================

class DirectionalScanRequest(WireModel):
    """Sensor-only scan over the objects of one or all anchors."""

    anchor_id: str | None = Field(default=None)
    current_heading: float = Field(
        ...,
        validation_alias=AliasChoices(
            "currentHeading", "currentHeadingDegrees", "current_heading",
        ),
    )
    current_latitude: float = Field(
        ...,
        ge=-90.0,
        le=90.0,
        validation_alias=AliasChoices(
            "currentLatitude", "currentLat", "current_latitude",
        ),
    )
    current_longitude: float = Field(
        ...,
        ge=-180.0,
        le=180.0,
        validation_alias=AliasChoices(
            "currentLongitude", "currentLng", "current_longitude",
        ),
    )

    @field_validator("current_heading")
    @classmethod
    def _normalize_heading(cls, value: float) -> float:
        return normalize_heading(value)


class ObjectGuidance(WireModel):
    """Geodesic guidance toward one object."""

    state: GuidanceState
    angle_delta: int = Field(..., description="Rounded signed rotation, degrees")
    target_heading: int = Field(..., description="Rounded compass heading to face")
    instruction: str
    proximity_state: ProximityState
    distance_to_anchor: int = Field(..., description="Rounded meters")
    distance_hint: str
    elevation_hint: str | None = None


class ScannedObject(WireModel):
    """One entry of a directional scan."""

    id: str
    label: str
    reference_photo: str | None = None
    guidance: ObjectGuidance


class DirectionalScanResponse(WireModel):
    """Scan entries sorted by distance to anchor, closest first."""

    objects: list[ScannedObject] = Field(default_factory=list)


# =============================================================================
# NEARBY OBJECTS
# =============================================================================

class NearbyRequest(WireModel):
    """Proximity-gate query around the user's position."""

    current_latitude: float = Field(
        ...,
        ge=-90.0,
        le=90.0,
        validation_alias=AliasChoices(
            "currentLatitude", "currentLat", "current_latitude",
        ),
    )
    current_longitude: float = Field(
        ...,
        ge=-180.0,
        le=180.0,
        validation_alias=AliasChoices(
            "currentLongitude", "currentLng", "current_longitude",
        ),
    )
    current_heading: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "currentHeading", "currentHeadingDegrees", "current_heading",
        ),
    )
    radius_meters: float | None = Field(default=None, gt=0.0)
    cone_degrees: float | None = Field(default=None, gt=0.0, le=360.0)
    anchor_id: str | None = Field(default=None)

    @field_validator("current_heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        return normalize_heading(value)


class NearbyResponse(WireModel):
    """Objects that passed the proximity gate."""

    objects: list[ARObjectRecord] = Field(default_factory=list)
