"""Module implementations."""

from anchor_guidance.modules.direction import direction_hint, object_guidance
from anchor_guidance.modules.geodesy import (
    angular_delta,
    average_position,
    bearing,
    destination_point,
    distance,
    format_distance,
    normalize_angle,
)
from anchor_guidance.modules.phase import classify_phase, describe_phase
from anchor_guidance.modules.proximity_gate import gate
from anchor_guidance.modules.signal_scorer import MatchKey, SimilarityBreakdown, score, score_detailed
from anchor_guidance.modules.smoothing import SessionSmoothingStore, SmoothingResult

__all__ = [
    "MatchKey",
    "SessionSmoothingStore",
    "SimilarityBreakdown",
    "SmoothingResult",
    "angular_delta",
    "average_position",
    "bearing",
    "classify_phase",
    "describe_phase",
    "destination_point",
    "direction_hint",
    "distance",
    "format_distance",
    "gate",
    "normalize_angle",
    "object_guidance",
    "score",
    "score_detailed",
]
