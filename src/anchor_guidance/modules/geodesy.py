"""Spherical-Earth geodesy helpers.

Pure functions, no state. Angles are compass degrees (0 = north,
clockwise); distances are meters on a sphere of radius EARTH_RADIUS_M.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

from anchor_guidance.schemas.spatial import GeoPoint
from anchor_guidance.utils.config import (
    AVERAGED_ACCURACY_FACTOR,
    EARTH_RADIUS_M,
    GOOD_ACCURACY_M,
    MIN_GOOD_SAMPLES,
    NEARBY_LABEL_M,
)


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    normalized = angle % 360.0
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


def bearing(origin: GeoPoint, target: GeoPoint) -> float:
    """Initial great-circle bearing from origin to target, degrees [0, 360)."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lng = math.radians(target.longitude - origin.longitude)

    y = math.sin(d_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)

    return normalize_angle(math.degrees(math.atan2(y, x)))


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance in meters."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    h = min(1.0, h)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def angular_delta(current: float, target: float) -> float:
    """Signed shortest rotation from current to target heading.

    Returns:
        Degrees in (-180, 180]. Negative = rotate left, positive = right.
    """
    delta = (target - current) % 360.0
    if delta > 180.0:
        delta -= 360.0
    return delta


def heading_deviation(reference: float | None, heading: float | None) -> float:
    """Absolute deviation between two headings in [0, 180].

    An unknown heading on either side counts as maximal deviation.
    """
    if reference is None or heading is None:
        return 180.0
    return abs(angular_delta(reference, heading))


def within_heading_cone(
    reference: float | None,
    heading: float | None,
    cone_degrees: float,
) -> bool:
    """Whether heading lies inside a cone of cone_degrees centred on reference."""
    return heading_deviation(reference, heading) <= cone_degrees / 2


def destination_point(start: GeoPoint, distance_m: float, bearing_deg: float) -> GeoPoint:
    """Project a point distance_m meters from start along bearing_deg.

    Inverse of bearing/distance: distance(destination_point(p, d, b), p) == d
    up to floating-point error.
    """
    angular = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    lat1 = math.radians(start.latitude)
    lng1 = math.radians(start.longitude)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular)
        + math.cos(lat1) * math.sin(angular) * math.cos(theta)
    )
    lng2 = lng1 + math.atan2(
        math.sin(theta) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2),
    )

    longitude = (math.degrees(lng2) + 540.0) % 360.0 - 180.0

    return GeoPoint(
        latitude=math.degrees(lat2),
        longitude=longitude,
        accuracy=start.accuracy,
        heading=start.heading,
        timestamp=datetime.now(),
    )


def average_position(samples: Sequence[GeoPoint]) -> GeoPoint | None:
    """Accuracy-weighted mean of several fixes.

    If more than MIN_GOOD_SAMPLES fixes are better than GOOD_ACCURACY_M,
    only those are averaged. Each fix is weighted 1 / (accuracy + 0.1).
    The heading is taken from the last sample, not averaged.

    Args:
        samples: Fixes in capture order.

    Returns:
        The stabilized point, or None when no samples were given.
    """
    if not samples:
        return None

    good = [s for s in samples if s.accuracy < GOOD_ACCURACY_M]
    used = good if len(good) > MIN_GOOD_SAMPLES else list(samples)

    total_weight = 0.0
    weighted_lat = 0.0
    weighted_lng = 0.0
    weighted_acc = 0.0

    for sample in used:
        weight = 1.0 / (sample.accuracy + 0.1)
        weighted_lat += sample.latitude * weight
        weighted_lng += sample.longitude * weight
        weighted_acc += sample.accuracy * weight
        total_weight += weight

    return GeoPoint(
        latitude=weighted_lat / total_weight,
        longitude=weighted_lng / total_weight,
        accuracy=(weighted_acc / total_weight) * AVERAGED_ACCURACY_FACTOR,
        heading=samples[-1].heading,
        timestamp=datetime.now(),
    )


def format_distance(meters: float) -> str:
    """Short label for a distance: "Nearby", "<n>m" or "<x.x>km"."""
    if meters < NEARBY_LABEL_M:
        return "Nearby"
    if meters < 1000.0:
        return f"{math.floor(meters + 0.5)}m"
    return f"{meters / 1000.0:.1f}km"
