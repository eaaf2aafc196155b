"""
Analysis
========

Gap analysis (requirements vs. source facts) and feature completeness
(documentation claims vs. source facts).
"""

from .confidence import CONFIDENCE_THRESHOLDS, calculate_confidence, confidence_level
from .feature_analyzer import FeatureAnalyzer, claims_from_specs, extract_claims
from .gap_analyzer import GapAnalyzer, estimate_effort
from .matching import best_match, candidate_names, extract_keywords, normalize_identifier

__all__ = [
    "CONFIDENCE_THRESHOLDS",
    "FeatureAnalyzer",
    "GapAnalyzer",
    "best_match",
    "calculate_confidence",
    "candidate_names",
    "claims_from_specs",
    "confidence_level",
    "estimate_effort",
    "extract_claims",
    "extract_keywords",
    "normalize_identifier",
]
