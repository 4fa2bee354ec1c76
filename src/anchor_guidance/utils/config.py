"""Configuration constants for the guidance engine."""

from __future__ import annotations

from dataclasses import dataclass

# Log format version for JSONL records
LOG_VERSION: str = "v1"

# =============================================================================
# Geodesy
# =============================================================================

# Mean Earth radius in meters (spherical approximation)
EARTH_RADIUS_M: float = 6_371_000.0

# Samples with accuracy below this count as "good" when averaging
GOOD_ACCURACY_M: float = 50.0

# More than this many good samples -> average only the good subset
MIN_GOOD_SAMPLES: int = 3

# Distances below this are labelled "Nearby"
NEARBY_LABEL_M: float = 5.0

# Averaging reduces noise, so the reported accuracy is tightened
AVERAGED_ACCURACY_FACTOR: float = 0.8

# =============================================================================
# Proximity Gate
# =============================================================================

DEFAULT_GATE_RADIUS_M: float = 50.0
DEFAULT_GATE_CONE_DEGREES: float = 90.0

# =============================================================================
# Signal Similarity
# =============================================================================

# Mean absolute RSSI deviation at which the id-path score reaches zero
RSSI_DEVIATION_CUTOFF_DBM: float = 30.0

# Fixed discount for name-only (SSID) matches
NAME_MATCH_DISCOUNT: float = 0.7

# =============================================================================
# Smoothing (Hysteresis)
# =============================================================================

SMOOTHING_WINDOW: int = 5
SMOOTHING_DECAY: float = 0.4

# Consecutive identical room readings before the confirmed room changes
ROOM_CONFIRMATION_COUNT: int = 3

# Session keys idle longer than this are evicted
SESSION_IDLE_TTL_SECONDS: float = 900.0

# Upper bound on tracked (object, session) keys
MAX_TRACKED_SESSIONS: int = 10_000

DEFAULT_SESSION_ID: str = "default"

# =============================================================================
# Phase Thresholds
# =============================================================================

PHASE_ARRIVED_THRESHOLD: float = 0.85
PHASE_NEAR_THRESHOLD: float = 0.6
PHASE_APPROACHING_THRESHOLD: float = 0.3

# =============================================================================
# Direction Synthesis
# =============================================================================

# Below this confidence headings are not trusted
EXPLORE_CONFIDENCE: float = 0.2

# Above this confidence (with unknown heading) the user should scan in place
SCAN_CONFIDENCE: float = 0.6

AHEAD_TOLERANCE_DEGREES: float = 15.0
BEHIND_THRESHOLD_DEGREES: float = 135.0
ALIGNED_TOLERANCE_DEGREES: float = 5.0

# Proximity bands on raw distance to the anchor (meters)
VERY_CLOSE_DISTANCE_M: float = 5.0
CLOSE_DISTANCE_M: float = 20.0
NEAR_DISTANCE_M: float = 50.0

# Under this distance to the anchor the hint only mentions the object offset
AT_ANCHOR_DISTANCE_M: float = 3.0

# Object offset assumed when none was recorded
DEFAULT_OBJECT_DISTANCE_M: float = 1.0

# =============================================================================
# Server
# =============================================================================

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3001


@dataclass
class EngineConfig:
    """Tunable parameters of the guidance engine.

    Defaults mirror the module constants; the CLI overrides individual
    fields.
    """

    smoothing_window: int = SMOOTHING_WINDOW
    smoothing_decay: float = SMOOTHING_DECAY
    room_confirmation_count: int = ROOM_CONFIRMATION_COUNT
    session_idle_ttl_seconds: float = SESSION_IDLE_TTL_SECONDS
    max_tracked_sessions: int = MAX_TRACKED_SESSIONS
    aligned_tolerance_degrees: float = ALIGNED_TOLERANCE_DEGREES
    gate_radius_m: float = DEFAULT_GATE_RADIUS_M
    gate_cone_degrees: float = DEFAULT_GATE_CONE_DEGREES


@dataclass
class ServerConfig:
    """Network settings for the JSON API server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
