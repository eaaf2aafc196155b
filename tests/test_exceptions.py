"""
Tests for core/exceptions.py
=============================

Tests for the custom exception hierarchy and error utilities.
"""

import pytest

from spec_roadmap.core.exceptions import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    ExportError,
    ExtractionError,
    InvalidConfigError,
    NoSourceFilesError,
    NoSpecificationsError,
    ProjectIOError,
    ProjectNotFoundError,
    SpecParsingError,
    SpecRoadmapError,
    UnsupportedFormatError,
    is_retryable,
    wrap_error,
)


class TestErrorContext:
    """Tests for ErrorContext dataclass."""

    def test_empty_context(self):
        """Test empty context produces empty dict."""
        ctx = ErrorContext()
        assert ctx.to_dict() == {}

    def test_full_context(self):
        """Test context with all fields."""
        ctx = ErrorContext(
            operation="parse_specs",
            component="speckit",
            file_path="specs/001-auth/spec.md",
            spec_id="001-auth",
            extra={"format": "markdown"},
        )
        result = ctx.to_dict()

        assert result["operation"] == "parse_specs"
        assert result["component"] == "speckit"
        assert result["file_path"] == "specs/001-auth/spec.md"
        assert result["spec_id"] == "001-auth"
        assert result["format"] == "markdown"


class TestSpecRoadmapError:
    """Tests for base SpecRoadmapError."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = SpecRoadmapError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.cause is None

    def test_error_with_context(self):
        """Test operation and file appear in the rendered message."""
        ctx = ErrorContext(operation="export", file_path="out/roadmap.json")
        error = SpecRoadmapError("Error occurred", context=ctx)
        assert "[operation=export]" in str(error)
        assert "[file=out/roadmap.json]" in str(error)

    def test_error_with_cause(self):
        """Test error with underlying cause."""
        original = ValueError("Original error")
        error = SpecRoadmapError("Wrapped error", cause=original)
        assert "ValueError" in str(error)
        assert error.cause is original

    def test_to_dict(self):
        """Test conversion to dictionary."""
        error = SpecRoadmapError("Test error")
        result = error.to_dict()

        assert result["error_code"] == "SPEC_ROADMAP_ERROR"
        assert result["category"] == "internal"
        assert result["severity"] == "medium"
        assert result["retryable"] is False
        assert result["message"] == "Test error"
        assert result["cause"] is None


class TestErrorCategories:
    """Tests for the error families."""

    def test_configuration_errors(self):
        """Test InvalidConfigError is a ConfigurationError."""
        error = InvalidConfigError("Bad threshold")
        assert isinstance(error, ConfigurationError)
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.error_code == "INVALID_CONFIG"

    def test_extraction_error_is_isolated(self):
        """Test per-file extraction failures are low severity."""
        error = ExtractionError("Cannot read file")
        assert error.category == ErrorCategory.EXTRACTION
        assert error.severity == ErrorSeverity.LOW

    def test_spec_parsing_error_records_file(self):
        """Test SpecParsingError puts file_path on its context."""
        error = SpecParsingError("Unreadable", file_path="docs/prd.md")
        assert error.context.file_path == "docs/prd.md"
        assert error.category == ErrorCategory.PARSING
        assert "[file=docs/prd.md]" in str(error)

    @pytest.mark.parametrize(
        "error_cls, code",
        [
            (ProjectNotFoundError, "PROJECT_NOT_FOUND"),
            (NoSpecificationsError, "NO_SPECIFICATIONS"),
            (NoSourceFilesError, "NO_SOURCE_FILES"),
        ],
    )
    def test_fatal_io_errors(self, error_cls, code):
        """Test run-stopping I/O errors are critical."""
        error = error_cls("Nothing to do")
        assert isinstance(error, ProjectIOError)
        assert error.error_code == code
        assert error.severity == ErrorSeverity.CRITICAL

    def test_export_errors(self):
        """Test UnsupportedFormatError is an ExportError."""
        error = UnsupportedFormatError("Unknown format: pdf")
        assert isinstance(error, ExportError)
        assert error.category == ErrorCategory.EXPORT
        assert error.error_code == "UNSUPPORTED_FORMAT"


class TestErrorUtilities:
    """Tests for error utility functions."""

    def test_is_retryable_engine_error(self):
        """Engine errors are never retryable."""
        assert is_retryable(ExtractionError("Bad file")) is False
        assert is_retryable(ExportError("Disk full")) is False

    def test_is_retryable_standard_error(self):
        """Test is_retryable with standard exceptions."""
        assert is_retryable(InterruptedError("Interrupted read")) is True
        assert is_retryable(ValueError("Bad value")) is False

    def test_wrap_error(self):
        """Test wrapping an exception."""
        original = OSError("Disk full")
        wrapped = wrap_error(original, ExportError, "Failed to write roadmap")

        assert isinstance(wrapped, ExportError)
        assert wrapped.cause is original
        assert "Failed to write roadmap" in str(wrapped)

    def test_wrap_error_default_message(self):
        """Test wrapping with default message."""
        original = OSError("Original message")
        wrapped = wrap_error(original, ExtractionError)

        assert "Original message" in wrapped.message
