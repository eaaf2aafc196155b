"""
spec-roadmap
============

Specification/code reconciliation and roadmap engine.

Reads spec-kit or BMAD planning documents alongside a codebase, reports
what the code does not yet implement and turns the result into a phased
delivery roadmap.
"""

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "ReconciliationPipeline",
    "AnalysisResult",
    "RoadmapExporter",
    "load_roadmap",
    "detect_format",
]


def __getattr__(name):
    """Lazy imports so importing the package stays cheap."""
    if name == "EngineConfig":
        from .config import EngineConfig

        return EngineConfig
    elif name in ("ReconciliationPipeline", "AnalysisResult"):
        from . import pipeline

        return getattr(pipeline, name)
    elif name in ("RoadmapExporter", "load_roadmap"):
        from .roadmap import exporter

        return getattr(exporter, name)
    elif name == "detect_format":
        from .detection import detect_format

        return detect_format

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
