"""Wireless-network scan schemas.

A scan is an unordered set of NetworkObservation, unique by network id.
A WirelessFingerprint is a stored scan owned by exactly one object.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from anchor_guidance.schemas.spatial import WireModel, normalize_heading


class NetworkObservation(WireModel):
    """One access point seen during a scan."""

    network_id: str = Field(
        ...,
        alias="id",
        validation_alias=AliasChoices("id", "networkId", "network_id", "bssid"),
        description="Primary match key (BSSID)",
    )
    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "ssid"),
        description="Display name (SSID), used as fallback match key",
    )
    signal_strength_dbm: float = Field(
        ...,
        validation_alias=AliasChoices(
            "signalStrengthDbm", "signal_strength_dbm", "rssi",
        ),
        description="Received signal strength; more negative is weaker",
    )

    model_config = {"frozen": True}


class WirelessFingerprint(WireModel):
    """Stored scan captured when an object was placed.

    Replaced wholesale on re-capture, never merged.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Fingerprint ID, new on every capture",
    )
    object_id: str = Field(..., description="Owning object")
    captured_at: datetime = Field(
        default_factory=datetime.now,
        validation_alias=AliasChoices("capturedAt", "captured_at", "createdAt"),
        description="When the scan was captured",
    )
    networks: list[NetworkObservation] = Field(
        default_factory=list,
        description="Networks observed at capture time",
    )
    room_label: str | None = Field(
        default=None,
        description="User-provided room name",
    )

    model_config = {"frozen": True}

    @field_validator("networks", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


class FingerprintUpload(WireModel):
    """Body of a fingerprint capture for one object.

    The placement heading is accepted as ``placementHeading`` or
    ``heading``. Room label and heading, when given, also update the
    owning object.
    """

    networks: list[NetworkObservation] = Field(
        ...,
        description="Networks observed at capture time",
    )
    room_label: str | None = Field(default=None)
    placement_heading: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "placementHeading", "placement_heading", "heading",
        ),
        description="Device heading at capture, degrees [0, 360)",
    )

    @field_validator("placement_heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        return normalize_heading(value)

    def to_fingerprint(self, object_id: str) -> WirelessFingerprint:
        return WirelessFingerprint(
            object_id=object_id,
            networks=self.networks,
            room_label=self.room_label or None,
        )
