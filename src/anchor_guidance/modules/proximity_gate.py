"""Proximity gating of candidate objects.

Two intersective filters, applied GPS first then heading cone:
1. GPS radius: candidates farther than the radius (or without a position)
   are dropped. The boundary is inclusive.
2. Heading cone: candidates whose heading deviates from the user's by more
   than half the cone are dropped. An unknown user heading disables this
   filter; a candidate without heading counts as 180 degrees off.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, TypeVar

from anchor_guidance.modules.geodesy import distance, within_heading_cone
from anchor_guidance.schemas.spatial import GeoPoint
from anchor_guidance.utils.config import DEFAULT_GATE_CONE_DEGREES, DEFAULT_GATE_RADIUS_M

logger = logging.getLogger(__name__)


class Gateable(Protocol):
    """Anything with an optional position and heading."""

    @property
    def position(self) -> GeoPoint | None: ...

    @property
    def heading(self) -> float | None: ...


T = TypeVar("T", bound=Gateable)


def filter_by_proximity(
    user_position: GeoPoint,
    candidates: Iterable[T],
    radius_m: float = DEFAULT_GATE_RADIUS_M,
) -> list[T]:
    """Keep candidates within radius_m meters of the user (inclusive)."""
    kept = []
    for candidate in candidates:
        position = candidate.position
        if position is None:
            continue
        if distance(user_position, position) <= radius_m:
            kept.append(candidate)
    return kept


def filter_by_heading_cone(
    user_heading: float | None,
    candidates: Iterable[T],
    cone_degrees: float = DEFAULT_GATE_CONE_DEGREES,
) -> list[T]:
    """Keep candidates whose heading falls inside the user's heading cone."""
    if user_heading is None:
        return list(candidates)

    return [
        c for c in candidates
        if within_heading_cone(user_heading, c.heading, cone_degrees)
    ]


def gate(
    user_position: GeoPoint,
    user_heading: float | None,
    candidates: Iterable[T],
    radius_m: float = DEFAULT_GATE_RADIUS_M,
    cone_degrees: float = DEFAULT_GATE_CONE_DEGREES,
) -> list[T]:
    """Apply the GPS filter then the heading-cone filter.

    Args:
        user_position: Current user fix.
        user_heading: Current compass heading, or None if unknown.
        candidates: Objects exposing ``position`` and ``heading``.
        radius_m: Inclusive GPS radius in meters.
        cone_degrees: Full cone width in degrees.

    Returns:
        Candidates passing both filters, in input order.
    """
    candidates = list(candidates)
    nearby = filter_by_proximity(user_position, candidates, radius_m)
    gated = filter_by_heading_cone(user_heading, nearby, cone_degrees)

    logger.debug(
        f"[GATE] {len(candidates)} candidates -> {len(nearby)} within {radius_m:.0f}m "
        f"-> {len(gated)} in {cone_degrees:.0f} deg cone"
    )
    return gated
