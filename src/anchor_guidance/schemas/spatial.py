"""Spatial schemas for GPS samples.

Headings follow the compass convention: degrees clockwise from north,
normalized to [0, 360).

This module provides:
- WireModel: Base for records exchanged with clients (camelCase on the wire)
- GeoPoint: A single location fix from the device sensor
"""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model for client-facing records.

    Field names are snake_case in Python and camelCase on the wire;
    both spellings are accepted when parsing.
    """

    # NaN and infinities never reach the geometry
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False,
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-ready dictionary with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


def normalize_heading(value: float | None) -> float | None:
    """Normalize an optional heading to [0, 360).

    Raises:
        ValueError: If the heading is NaN or infinite.
    """
    if value is None:
        return None
    if not math.isfinite(value):
        raise ValueError("heading must be a finite number")
    normalized = value % 360.0
    # -1e-15 % 360 rounds up to 360.0
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


class GeoPoint(WireModel):
    """A location fix sampled from the device.

    Immutable once sampled. Several fixes are averaged into one
    stabilized point before persistence (see geodesy.average_position).
    """

    latitude: float = Field(
        ...,
        ge=-90.0,
        le=90.0,
        validation_alias=AliasChoices("latitude", "lat"),
        description="Latitude in decimal degrees",
    )
    longitude: float = Field(
        ...,
        ge=-180.0,
        le=180.0,
        validation_alias=AliasChoices("longitude", "lng", "lon"),
        description="Longitude in decimal degrees",
    )
    accuracy: float = Field(
        default=0.0,
        ge=0.0,
        description="Accuracy radius in meters",
    )
    heading: float | None = Field(
        default=None,
        description="Compass heading at sample time, degrees [0, 360)",
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the fix was taken",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        return normalize_heading(value)
