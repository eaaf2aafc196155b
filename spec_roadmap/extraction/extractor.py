"""
Source Structural Extractor
===========================

Turns a project's source files into FileFacts.

File reads run on a fixed-size thread pool; the results are re-sorted by
path afterwards so the output never depends on completion order. A file
that cannot be read or parsed is recorded as an ExtractionError and the run
continues with the remaining files.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from ..config import ExtractionConfig
from ..core.exceptions import ErrorContext, ExtractionError, wrap_error
from ..core.logging import log_exception
from ..models import FileFacts
from .file_search import FileSearcher
from .python_source import extract_python
from .script_source import extract_script

logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
}


def detect_language(path: Path | str) -> str | None:
    return LANGUAGE_BY_EXTENSION.get(Path(path).suffix.lower())


def extract_source(text: str, language: str, file_path: str) -> FileFacts:
    """
    Extract structural facts from one file's text.

    Pure function of its input. Syntax problems are recorded on the result
    rather than raised.

    Raises:
        ExtractionError: If the language is not supported
    """
    if language == "python":
        return extract_python(text, file_path)
    if language in ("javascript", "typescript"):
        return extract_script(text, file_path, language)
    raise ExtractionError(
        f"Unsupported language: {language}",
        context=ErrorContext(operation="extract_source", file_path=file_path),
    )


@dataclass
class ExtractionResult:
    """Facts for every readable file plus the isolated per-file errors."""

    files: list[FileFacts] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)
    errors: list[ExtractionError] = field(default_factory=list)

    @property
    def partial_files(self) -> list[FileFacts]:
        return [f for f in self.files if f.has_errors]


class SourceExtractor:
    """
    Extracts FileFacts for a whole project tree.

    Example:
        extractor = SourceExtractor(ExtractionConfig(max_workers=4))
        result = extractor.extract_project(Path("."))
    """

    def __init__(self, config: ExtractionConfig | None = None):
        self.config = config or ExtractionConfig()

    def extract_file(self, path: Path, root: Path) -> FileFacts:
        """
        Read and extract a single file.

        Raises:
            ExtractionError: If the file cannot be read or is too large
        """
        relative = _relative(path, root)
        context = ErrorContext(operation="extract_file", file_path=relative)
        language = detect_language(path)
        if language is None:
            raise ExtractionError(f"No extractor for {path.suffix}", context=context)

        try:
            size = path.stat().st_size
            if size > self.config.max_file_bytes:
                raise ExtractionError(
                    f"File exceeds {self.config.max_file_bytes} bytes ({size})",
                    context=context,
                )
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ExtractionError(f"Cannot read source file: {e}", context=context, cause=e) from e

        return extract_source(text, language, relative)

    def extract_project(self, root: Path) -> ExtractionResult:
        """Discover and extract every source file under root."""
        root = Path(root)
        searcher = FileSearcher(
            root,
            extensions=self.config.extensions,
            exclude_dirs=self.config.exclude_dirs,
            include_tests=self.config.include_tests,
        )
        paths = searcher.find_source_files()
        result = ExtractionResult(
            test_files=[searcher.relative(p) for p in searcher.find_test_files()]
        )

        workers = max(1, self.config.max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
            outcomes = list(pool.map(lambda p: self._extract_isolated(p, root), paths))

        for outcome in outcomes:
            if isinstance(outcome, ExtractionError):
                result.errors.append(outcome)
            else:
                result.files.append(outcome)

        # Stable order regardless of which worker finished first
        result.files.sort(key=lambda f: f.file_path)
        result.errors.sort(key=lambda e: e.context.file_path)

        logger.info(
            "Extracted %d source files (%d partial, %d failed)",
            len(result.files),
            len(result.partial_files),
            len(result.errors),
        )
        return result

    def _extract_isolated(self, path: Path, root: Path) -> FileFacts | ExtractionError:
        try:
            return self.extract_file(path, root)
        except ExtractionError as e:
            log_exception(logger, f"Skipping {path}", e, level=logging.WARNING)
            return e
        except (RecursionError, ValueError, UnicodeError) as e:
            error = wrap_error(
                e,
                ExtractionError,
                message=f"Extractor failed: {e}",
                context=ErrorContext(operation="extract_file", file_path=_relative(path, root)),
            )
            log_exception(logger, f"Skipping {path}", error, level=logging.WARNING)
            return error


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
