"""Phase classification of smoothed similarity.

Thresholds are ordered so the phases are mutually exclusive and cover
[0, 1]. The phase can move in either direction between polls.
"""

from __future__ import annotations

from anchor_guidance.schemas.guidance import GuidancePhase
from anchor_guidance.utils.config import (
    PHASE_APPROACHING_THRESHOLD,
    PHASE_ARRIVED_THRESHOLD,
    PHASE_NEAR_THRESHOLD,
)

PHASE_DESCRIPTIONS: dict[GuidancePhase, str] = {
    GuidancePhase.ARRIVED: "You're in the right spot. Look around here.",
    GuidancePhase.NEAR: "You're in the right area. Getting close.",
    GuidancePhase.APPROACHING: "Getting closer. Continue this direction.",
    GuidancePhase.FAR: "Object is in a different room.",
}

UNREGISTERED_DESCRIPTION = (
    "Object not yet registered for guidance. "
    "Save it via AR mode to enable WiFi guidance."
)


def classify_phase(similarity: float) -> GuidancePhase:
    """Map smoothed similarity to a proximity phase."""
    if similarity >= PHASE_ARRIVED_THRESHOLD:
        return GuidancePhase.ARRIVED
    if similarity >= PHASE_NEAR_THRESHOLD:
        return GuidancePhase.NEAR
    if similarity >= PHASE_APPROACHING_THRESHOLD:
        return GuidancePhase.APPROACHING
    return GuidancePhase.FAR


def describe_phase(phase: GuidancePhase) -> str:
    """Fixed human-readable description of a phase."""
    return PHASE_DESCRIPTIONS[phase]


def shows_ghost_image(phase: GuidancePhase) -> bool:
    """The reference photo overlay is shown once the user is close."""
    return phase in (GuidancePhase.ARRIVED, GuidancePhase.NEAR)


def shows_directional_arrow(phase: GuidancePhase) -> bool:
    return phase in (GuidancePhase.FAR, GuidancePhase.APPROACHING)
