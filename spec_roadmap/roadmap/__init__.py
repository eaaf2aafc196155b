"""
Roadmap
=======

Scoring, dependency-aware phase planning and export of delivery roadmaps.
"""

from .exporter import EXPORT_FORMATS, RoadmapExporter, load_roadmap
from .generator import RoadmapContext, RoadmapGenerator, order_items
from .scoring import ScoringEngine, infer_category
from .validators import DependencyValidator, ValidationResult

__all__ = [
    "EXPORT_FORMATS",
    "DependencyValidator",
    "RoadmapContext",
    "RoadmapExporter",
    "RoadmapGenerator",
    "ScoringEngine",
    "ValidationResult",
    "infer_category",
    "load_roadmap",
    "order_items",
]
