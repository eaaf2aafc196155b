"""
Core Module
===========

Shared infrastructure for the reconciliation engine:
- Logging: Structured logging with context propagation
- Exceptions: Typed exception hierarchy with per-file isolation
- Safe I/O: Atomic writes and explicit UTF-8 reads
"""

__all__ = [
    # Logging
    "configure_logging",
    "set_correlation_id",
    "log_context",
    "Timer",
    "timed",
    # Exceptions
    "SpecRoadmapError",
    "ConfigurationError",
    "ExtractionError",
    "SpecParsingError",
    "ProjectIOError",
    "ExportError",
    "is_retryable",
    # Safe I/O
    "safe_write_text",
    "safe_write_json",
    "safe_read_text",
    "safe_read_json",
]


def __getattr__(name):
    """Lazy imports so importing core does not configure anything."""
    if name in (
        "configure_logging",
        "set_correlation_id",
        "log_context",
        "Timer",
        "timed",
    ):
        from . import logging as _logging

        return getattr(_logging, name)
    elif name in (
        "SpecRoadmapError",
        "ConfigurationError",
        "ExtractionError",
        "SpecParsingError",
        "ProjectIOError",
        "ExportError",
        "is_retryable",
    ):
        from . import exceptions as _exceptions

        return getattr(_exceptions, name)
    elif name in (
        "safe_write_text",
        "safe_write_json",
        "safe_read_text",
        "safe_read_json",
    ):
        from . import safe_io as _safe_io

        return getattr(_safe_io, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
