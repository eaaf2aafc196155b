"""
Gap Confidence Scoring
======================

How certain we are that a reported gap is real, on a 0-100 scale.

Each status starts from a base certainty; every piece of evidence then
moves the score by its configured weight. Positive weights make the gap
more certain (the function is absent, the body is a placeholder), negative
weights make it less certain (only a similar name was found, tests exist).
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..config import EVIDENCE_WEIGHTS, STATUS_BASE_CONFIDENCE
from ..models import Evidence

CONFIDENCE_THRESHOLDS: dict[str, int] = {
    "very-high": 90,
    "high": 70,
    "medium": 50,
    "low": 30,
}


def create_evidence(
    evidence_type: str,
    description: str,
    location: Optional[str] = None,
    weights: Optional[Mapping[str, int]] = None,
) -> Evidence:
    weights = EVIDENCE_WEIGHTS if weights is None else weights
    return Evidence(
        type=evidence_type,
        description=description,
        weight=weights.get(evidence_type, 0),
        location=location,
    )


def calculate_confidence(
    status: str,
    evidence: Iterable[Evidence],
    base_confidence: Optional[Mapping[str, int]] = None,
) -> int:
    """Status base plus the sum of evidence weights, clamped to 0..100."""
    bases = STATUS_BASE_CONFIDENCE if base_confidence is None else base_confidence
    score = bases.get(status, 0) + sum(e.weight for e in evidence)
    return int(max(0, min(100, round(score))))


def confidence_level(score: int) -> str:
    """Name of the highest threshold the score reaches ("none" below all of them)."""
    for level, threshold in CONFIDENCE_THRESHOLDS.items():
        if score >= threshold:
            return level
    return "none"
