"""Anchor and AR object records.

These are read-only inputs to the guidance engine. The record store
creates and deletes them; the engine never mutates them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from anchor_guidance.schemas.spatial import GeoPoint, WireModel, normalize_heading


class ElevationHint(str, Enum):
    """Where to look for an object relative to eye level."""

    FLOOR = "floor"
    EYE = "eye"
    OVERHEAD = "overhead"


class AnchorRecord(WireModel):
    """A user-tagged real-world point of interest."""

    id: str = Field(..., min_length=1, description="Unique anchor ID")
    label: str | None = Field(default=None)
    description: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    gps: GeoPoint = Field(..., description="Stabilized anchor position")
    heading: float | None = Field(
        default=None,
        description="Device heading at capture, degrees [0, 360)",
    )

    image_ref: str | None = Field(default=None)
    tags: list[str] = Field(default_factory=list)
    is_indoor: bool = Field(default=False)

    # Forward-compatible extras
    extras: dict[str, Any] = Field(default_factory=dict)

    @field_validator("heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        return normalize_heading(value)


class ARObjectRecord(WireModel):
    """A sub-object placed relative to its parent anchor.

    Bearing, distance and elevation are fixed at placement time and never
    recalculated when the object is moved.
    """

    id: str = Field(..., min_length=1, description="Unique object ID")
    anchor_id: str = Field(..., min_length=1, description="Parent anchor ID")
    label: str = Field(..., min_length=1)
    description: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)

    # Spatial, relative to the parent anchor
    bearing_from_anchor: float = Field(
        ...,
        description="Direction from anchor to object at capture, degrees [0, 360)",
    )
    distance_from_anchor: float | None = Field(
        default=None,
        ge=0.0,
        description="Approximate distance from anchor in meters",
    )
    elevation_hint: ElevationHint | None = Field(default=None)

    # Capture context
    capture_heading: float = Field(
        ...,
        description="Device heading when placed, degrees [0, 360)",
    )
    capture_gps: GeoPoint = Field(
        ...,
        validation_alias=AliasChoices("captureGps", "capture_gps", "captureGeoPoint"),
    )

    # Room context
    room_label: str | None = Field(default=None)
    placement_heading: float | None = Field(
        default=None,
        description="Heading used for directional hints; capture heading if absent",
    )

    # Visual reminder only, never used for matching
    reference_photo: str | None = Field(default=None)

    @field_validator(
        "bearing_from_anchor", "capture_heading", "placement_heading",
    )
    @classmethod
    def _normalize_angles(cls, value: float | None) -> float | None:
        return normalize_heading(value)

    @property
    def position(self) -> GeoPoint:
        """Where the object was captured (used by the proximity gate)."""
        return self.capture_gps

    @property
    def heading(self) -> float:
        """Effective placement heading."""
        if self.placement_heading is not None:
            return self.placement_heading
        return self.capture_heading
