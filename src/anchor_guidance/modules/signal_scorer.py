"""Wireless fingerprint similarity.

Compares a live scan against a stored fingerprint and returns a score in
[0, 1]. Network ids (BSSIDs) are the strong identity signal; when no id
is shared the scorer falls back to network names (SSIDs), which survive
access-point id churn but are discounted so they never out-rank a true
id match.

Score on the id path:   cosine * coverage * deviation_penalty
Score on the name path: cosine * coverage * NAME_MATCH_DISCOUNT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from anchor_guidance.schemas.signals import NetworkObservation, WirelessFingerprint
from anchor_guidance.utils.config import NAME_MATCH_DISCOUNT, RSSI_DEVIATION_CUTOFF_DBM

logger = logging.getLogger(__name__)


class MatchKey(str, Enum):
    """Which key the common set was built on."""

    NONE = "none"
    NETWORK_ID = "network_id"
    NAME = "name"


@dataclass
class SimilarityBreakdown:
    """Components of a similarity score, for diagnostics."""

    score: float = 0.0
    match_key: MatchKey = MatchKey.NONE
    common_count: int = 0
    cosine: float = 0.0
    coverage: float = 0.0
    deviation_penalty: float = 0.0
    mean_abs_delta_dbm: float | None = None

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "match_key": self.match_key.value,
            "common_count": self.common_count,
            "cosine": self.cosine,
            "coverage": self.coverage,
            "deviation_penalty": self.deviation_penalty,
            "mean_abs_delta_dbm": self.mean_abs_delta_dbm,
        }


def _signal_map_by_id(scan: Sequence[NetworkObservation]) -> dict[str, float]:
    return {n.network_id: n.signal_strength_dbm for n in scan}


def _signal_map_by_name(scan: Sequence[NetworkObservation]) -> dict[str, float]:
    # Hidden networks have no name and cannot be matched on it
    return {n.name: n.signal_strength_dbm for n in scan if n.name}


def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two non-negative vectors.

    Returns value in [0, 1]; 0 when either vector has zero norm.
    """
    if np.array_equal(a, b) and a.any():
        return 1.0

    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a < 1e-9 or norm_b < 1e-9:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def _vectors(
    live: dict[str, float],
    stored: dict[str, float],
    common: list[str],
) -> tuple[np.ndarray, np.ndarray]:
    live_vec = np.array([live[k] for k in common], dtype=float)
    stored_vec = np.array([stored[k] for k in common], dtype=float)
    return live_vec, stored_vec


def score_detailed(
    live_scan: Sequence[NetworkObservation],
    stored_scan: Sequence[NetworkObservation],
) -> SimilarityBreakdown:
    """Score a live scan against a stored scan, keeping every component.

    Args:
        live_scan: Networks seen now (may be empty).
        stored_scan: Networks stored in the fingerprint (may be empty).

    Returns:
        SimilarityBreakdown whose ``score`` is clamped to [0, 1].
    """
    if not live_scan or not stored_scan:
        return SimilarityBreakdown()

    live = _signal_map_by_id(live_scan)
    stored = _signal_map_by_id(stored_scan)
    common = [k for k in live if k in stored]

    if common:
        live_vec, stored_vec = _vectors(live, stored, common)
        cosine = _cosine_similarity(np.abs(live_vec), np.abs(stored_vec))
        coverage = len(common) / max(len(live), len(stored))

        mean_delta = float(np.mean(np.abs(live_vec - stored_vec)))
        penalty = max(0.0, 1.0 - mean_delta / RSSI_DEVIATION_CUTOFF_DBM)

        score = min(1.0, max(0.0, cosine * coverage * penalty))
        return SimilarityBreakdown(
            score=score,
            match_key=MatchKey.NETWORK_ID,
            common_count=len(common),
            cosine=cosine,
            coverage=coverage,
            deviation_penalty=penalty,
            mean_abs_delta_dbm=mean_delta,
        )

    live = _signal_map_by_name(live_scan)
    stored = _signal_map_by_name(stored_scan)
    common = [k for k in live if k in stored]

    if not common:
        return SimilarityBreakdown()

    live_vec, stored_vec = _vectors(live, stored, common)
    cosine = _cosine_similarity(np.abs(live_vec), np.abs(stored_vec))
    coverage = len(common) / max(len(live), len(stored))

    score = min(1.0, max(0.0, cosine * coverage * NAME_MATCH_DISCOUNT))
    return SimilarityBreakdown(
        score=score,
        match_key=MatchKey.NAME,
        common_count=len(common),
        cosine=cosine,
        coverage=coverage,
        deviation_penalty=NAME_MATCH_DISCOUNT,
    )


def score(
    live_scan: Sequence[NetworkObservation],
    fingerprint: WirelessFingerprint | Sequence[NetworkObservation] | None,
) -> float:
    """Similarity in [0, 1] between a live scan and a stored fingerprint."""
    if fingerprint is None:
        return 0.0
    stored = fingerprint.networks if isinstance(fingerprint, WirelessFingerprint) else fingerprint

    breakdown = score_detailed(live_scan, stored)
    logger.debug(
        f"[SIGNAL] score={breakdown.score:.3f} key={breakdown.match_key.value} "
        f"common={breakdown.common_count} cos={breakdown.cosine:.3f} "
        f"cov={breakdown.coverage:.3f} penalty={breakdown.deviation_penalty:.3f}"
    )
    return breakdown.score
