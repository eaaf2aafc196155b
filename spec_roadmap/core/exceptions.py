"""
Custom Exceptions
=================

Exception hierarchy for the reconciliation engine.

Provides structured error handling with:
- Clear error categorization
- Error codes for reporting
- Context preservation for debugging
- Isolation helpers so one bad file never aborts a whole run
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for reporting."""

    CONFIGURATION = "configuration"
    EXTRACTION = "extraction"
    PARSING = "parsing"
    IO = "io"
    EXPORT = "export"
    INTERNAL = "internal"


class ErrorSeverity(Enum):
    """Severity levels for error handling."""

    LOW = "low"  # Isolated, run continues
    MEDIUM = "medium"  # Fallback applied
    HIGH = "high"  # Output is degraded
    CRITICAL = "critical"  # Run cannot make progress


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    operation: str = ""
    component: str = ""
    file_path: str = ""
    spec_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        if self.operation:
            result["operation"] = self.operation
        if self.component:
            result["component"] = self.component
        if self.file_path:
            result["file_path"] = self.file_path
        if self.spec_id:
            result["spec_id"] = self.spec_id
        result.update(self.extra)
        return result


class SpecRoadmapError(Exception):
    """
    Base exception for all engine errors.

    Provides structured error information for reporting and debugging.
    """

    error_code: str = "SPEC_ROADMAP_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.context.operation:
            parts.append(f"[operation={self.context.operation}]")
        if self.context.file_path:
            parts.append(f"[file={self.context.file_path}]")
        if self.cause:
            parts.append(f"[caused by: {type(self.cause).__name__}: {self.cause}]")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and reporting."""
        return {
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# Configuration Errors


class ConfigurationError(SpecRoadmapError):
    """Error in configuration or settings."""

    error_code = "CONFIG_ERROR"
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.MEDIUM


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "INVALID_CONFIG"


# Extraction Errors


class ExtractionError(SpecRoadmapError):
    """A single source file could not be read or parsed."""

    error_code = "EXTRACTION_ERROR"
    category = ErrorCategory.EXTRACTION
    severity = ErrorSeverity.LOW


# Specification Errors


class SpecParsingError(SpecRoadmapError):
    """A specification document is unreadable or malformed."""

    error_code = "SPEC_PARSING_ERROR"
    category = ErrorCategory.PARSING
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str,
        file_path: str = "",
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        if context is None:
            context = ErrorContext()
        if file_path:
            context.file_path = file_path
        super().__init__(message, context, cause)


# I/O Errors


class ProjectIOError(SpecRoadmapError):
    """Filesystem path missing or unreadable."""

    error_code = "PROJECT_IO_ERROR"
    category = ErrorCategory.IO
    severity = ErrorSeverity.HIGH


class ProjectNotFoundError(ProjectIOError):
    """Project root does not exist."""

    error_code = "PROJECT_NOT_FOUND"
    severity = ErrorSeverity.CRITICAL


class NoSpecificationsError(ProjectIOError):
    """No specification document could be located."""

    error_code = "NO_SPECIFICATIONS"
    severity = ErrorSeverity.CRITICAL


class NoSourceFilesError(ProjectIOError):
    """No source file could be located."""

    error_code = "NO_SOURCE_FILES"
    severity = ErrorSeverity.CRITICAL


# Export Errors


class ExportError(SpecRoadmapError):
    """Roadmap could not be exported."""

    error_code = "EXPORT_ERROR"
    category = ErrorCategory.EXPORT
    severity = ErrorSeverity.HIGH


class UnsupportedFormatError(ExportError):
    """Requested export format is unknown."""

    error_code = "UNSUPPORTED_FORMAT"


# Helper functions


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, SpecRoadmapError):
        return error.retryable
    # Transient filesystem errors can succeed on a second read
    return isinstance(error, (InterruptedError, BlockingIOError))


def wrap_error(
    error: Exception,
    wrapper_class: type[SpecRoadmapError],
    message: str | None = None,
    context: ErrorContext | None = None,
) -> SpecRoadmapError:
    """
    Wrap an exception in a SpecRoadmapError.

    Args:
        error: Original exception
        wrapper_class: SpecRoadmapError subclass to wrap with
        message: Optional message (defaults to str(error))
        context: Optional error context

    Returns:
        Wrapped exception
    """
    if message is None:
        message = str(error)
    return wrapper_class(message=message, context=context, cause=error)
