"""Direction synthesis.

Two independent strategies answer different questions and are selected by
which inputs are available:

- Signal strategy (``direction_hint``): room-level guidance from WiFi
  confidence plus the heading the object was placed at.
- Geodesic strategy (``guidance_state`` and friends): precise rotation
  toward a target heading computed from GPS and the object's bearing from
  its anchor.
"""

from __future__ import annotations

import math

from anchor_guidance.modules.geodesy import angular_delta, bearing, distance, normalize_angle
from anchor_guidance.schemas.guidance import (
    DirectionAction,
    DirectionHint,
    GuidanceState,
    ObjectGuidance,
    ProximityState,
)
from anchor_guidance.schemas.records import ElevationHint
from anchor_guidance.schemas.spatial import GeoPoint
from anchor_guidance.utils.config import (
    AHEAD_TOLERANCE_DEGREES,
    ALIGNED_TOLERANCE_DEGREES,
    AT_ANCHOR_DISTANCE_M,
    BEHIND_THRESHOLD_DEGREES,
    CLOSE_DISTANCE_M,
    DEFAULT_OBJECT_DISTANCE_M,
    EXPLORE_CONFIDENCE,
    NEAR_DISTANCE_M,
    SCAN_CONFIDENCE,
    VERY_CLOSE_DISTANCE_M,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


# =============================================================================
# SIGNAL STRATEGY
# =============================================================================

def direction_hint(
    current_heading: float | None,
    placement_heading: float | None,
    confidence: float,
) -> DirectionHint:
    """Suggest an action from signal confidence and the placement heading.

    Args:
        current_heading: User's compass heading, or None.
        placement_heading: Heading recorded when the object was placed, or None.
        confidence: Smoothed similarity in [0, 1].

    Returns:
        DirectionHint echoing the delta (or None) and the confidence.
    """
    confidence = min(1.0, max(0.0, confidence))

    # Headings are meaningless without some signal
    if confidence < EXPLORE_CONFIDENCE:
        return DirectionHint(
            hint="Move around to find signal",
            action=DirectionAction.EXPLORE,
            relative_bearing=None,
            confidence=confidence,
        )

    if current_heading is None or placement_heading is None:
        if confidence > SCAN_CONFIDENCE:
            return DirectionHint(
                hint="Look around this area",
                action=DirectionAction.SCAN,
                relative_bearing=None,
                confidence=confidence,
            )
        return DirectionHint(
            hint="Move forward and scan",
            action=DirectionAction.FORWARD,
            relative_bearing=None,
            confidence=confidence,
        )

    delta = angular_delta(current_heading, placement_heading)
    magnitude = abs(delta)

    if magnitude < AHEAD_TOLERANCE_DEGREES:
        hint, action = "Object likely ahead", DirectionAction.FORWARD
    elif magnitude > BEHIND_THRESHOLD_DEGREES:
        hint, action = "Object likely behind you", DirectionAction.TURN_AROUND
    elif delta < 0:
        hint = f"Object likely to your left ({abs(round_half_up(delta))}°)"
        action = DirectionAction.TURN_LEFT
    else:
        hint = f"Object likely to your right ({round_half_up(delta)}°)"
        action = DirectionAction.TURN_RIGHT

    return DirectionHint(
        hint=hint,
        action=action,
        relative_bearing=delta,
        confidence=confidence,
    )


# =============================================================================
# GEODESIC STRATEGY
# =============================================================================

def guidance_state(
    current_heading: float,
    target_heading: float,
    tolerance_degrees: float = ALIGNED_TOLERANCE_DEGREES,
) -> GuidanceState:
    """Classify the rotation needed to face target_heading."""
    delta = angular_delta(current_heading, target_heading)
    magnitude = abs(delta)

    if magnitude <= tolerance_degrees:
        return GuidanceState.ALIGNED
    if magnitude > BEHIND_THRESHOLD_DEGREES:
        return GuidanceState.BEHIND
    if delta < 0:
        return GuidanceState.ROTATE_LEFT
    return GuidanceState.ROTATE_RIGHT


def proximity_state(distance_m: float) -> ProximityState:
    """Distance band on raw meters to the anchor."""
    if distance_m <= VERY_CLOSE_DISTANCE_M:
        return ProximityState.VERY_CLOSE
    if distance_m <= CLOSE_DISTANCE_M:
        return ProximityState.CLOSE
    if distance_m <= NEAR_DISTANCE_M:
        return ProximityState.NEAR
    return ProximityState.FAR


def rotation_instruction(state: GuidanceState, delta: float) -> str:
    """Human instruction embedding the rounded rotation angle."""
    if state == GuidanceState.ALIGNED:
        return "Aligned, look ahead"
    if state == GuidanceState.BEHIND:
        return "Object is behind you, turn around"
    if state == GuidanceState.ROTATE_LEFT:
        return f"Rotate left {abs(round_half_up(delta))}°"
    return f"Rotate right {round_half_up(delta)}°"


def distance_hint(distance_to_anchor: float, distance_from_anchor: float | None) -> str:
    """Two-leg distance hint: walk to the anchor, then to the object."""
    offset = distance_from_anchor or DEFAULT_OBJECT_DISTANCE_M
    if distance_to_anchor < AT_ANCHOR_DISTANCE_M:
        return f"about {offset:g}m ahead"
    return f"{round_half_up(distance_to_anchor)}m to anchor, then {offset:g}m ahead"


_ELEVATION_TEXT = {
    ElevationHint.FLOOR: "look down (floor level)",
    ElevationHint.EYE: "eye level",
    ElevationHint.OVERHEAD: "look up (overhead)",
}


def elevation_hint_text(hint: ElevationHint | None) -> str | None:
    if hint is None:
        return None
    return _ELEVATION_TEXT.get(hint)


def object_target_heading(user: GeoPoint, anchor: GeoPoint, bearing_from_anchor: float) -> float:
    """Compass heading the user should face for an object.

    The object's bearing from its anchor is applied as an offset on top of
    the bearing from the user to the anchor. A user standing exactly on the
    anchor has a bearing of 0 to it, so the target is the object's bearing.
    """
    return normalize_angle(bearing(user, anchor) + bearing_from_anchor)


def object_guidance(
    user: GeoPoint,
    current_heading: float,
    anchor: GeoPoint,
    bearing_from_anchor: float,
    distance_from_anchor: float | None = None,
    elevation: ElevationHint | None = None,
    tolerance_degrees: float = ALIGNED_TOLERANCE_DEGREES,
) -> ObjectGuidance:
    """Full geodesic guidance toward one object."""
    to_anchor = distance(user, anchor)
    target = object_target_heading(user, anchor, bearing_from_anchor)
    delta = angular_delta(current_heading, target)
    state = guidance_state(current_heading, target, tolerance_degrees)

    return ObjectGuidance(
        state=state,
        angle_delta=round_half_up(delta),
        target_heading=round_half_up(target) % 360,
        instruction=rotation_instruction(state, delta),
        proximity_state=proximity_state(to_anchor),
        distance_to_anchor=round_half_up(to_anchor),
        distance_hint=distance_hint(to_anchor, distance_from_anchor),
        elevation_hint=elevation_hint_text(elevation),
    )
