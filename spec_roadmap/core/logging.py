"""
Structured Logging
==================

Run-scoped logging for the reconciliation pipeline.

Every record emitted during a run carries the run id and the pipeline
stage it came from; per-file records also carry the file path. Two
renderings are provided: a compact console line for people and one JSON
object per line for CI log collectors.
"""

import contextvars
import functools
import json
import logging
import sys
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar

T = TypeVar("T")

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
_run_fields: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "run_fields", default=None
)

# Attributes passed through ``extra=`` that are worth keeping in the output
RECORD_FIELDS = ("stage", "file_path", "spec_id", "count", "duration_ms", "error_code")

_HANDLER_MARK = "_spec_roadmap_handler"

LEVEL_COLORS = {
    logging.DEBUG: "\033[2m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
RESET = "\033[0m"


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields of the current run, overridden by the record's own extras."""
    fields = dict(_run_fields.get() or {})
    for key in RECORD_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        run_id = _run_id.get()
        if run_id:
            entry["run_id"] = run_id
        entry.update(_fields(record))

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["error"] = {"type": type(exc).__name__, "message": str(exc)}
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``LEVEL [run/stage] message (12.3ms) <file>``, colored when writing to a terminal."""

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        fields = _fields(record)
        message = record.getMessage()

        tag = "/".join(p for p in ((_run_id.get() or "")[:8], fields.get("stage", "")) if p)
        parts = [f"{record.levelname:<7}"]
        if tag:
            parts.append(f"[{tag}]")
        parts.append(message)
        if fields.get("duration_ms") is not None:
            parts.append(f"({fields['duration_ms']:.1f}ms)")
        file_path = fields.get("file_path")
        if file_path and file_path not in message:
            parts.append(f"<{file_path}>")
        line = " ".join(parts)

        if record.exc_info and record.levelno >= logging.ERROR:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        color = LEVEL_COLORS.get(record.levelno)
        if self.color and color:
            line = f"{color}{line}{RESET}"
        return line


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Install the engine's handlers on the root logger.

    Progress goes to stderr so exported documents can be piped from stdout.
    A log file, when given, is always JSON. Calling this again replaces the
    handlers installed by the previous call and leaves other handlers alone.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    if structured:
        console.setFormatter(StructuredFormatter())
    else:
        console.setFormatter(ConsoleFormatter(color=sys.stderr.isatty()))
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Start a run: every record from now on carries this id (generated if None)."""
    correlation_id = correlation_id or uuid.uuid4().hex
    _run_id.set(correlation_id)
    return correlation_id


def clear_log_context() -> None:
    """Forget the run id and all stage fields."""
    _run_id.set(None)
    _run_fields.set(None)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """
    Attach fields (usually ``stage``) to every record logged inside the block.

    Usage:
        with log_context(stage="extraction"):
            logger.info("Reading sources")
    """
    token = _run_fields.set({**(_run_fields.get() or {}), **fields})
    try:
        yield
    finally:
        _run_fields.reset(token)


class Timer:
    """Wall-clock duration of a block, in milliseconds."""

    def __init__(self) -> None:
        self.duration_ms = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self._started) * 1000


def timed(logger: logging.Logger, level: int = logging.DEBUG) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Log ``<step> finished`` with its duration after each call of a pipeline step."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        step = func.__name__.lstrip("_")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with Timer() as timer:
                result = func(*args, **kwargs)
            logger.log(level, "%s finished", step, extra={"duration_ms": timer.duration_ms})
            return result

        return wrapper

    return decorator


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log exc with its error code and, for engine errors, the file it concerns.

    The traceback is attached at ERROR and above only; isolated per-file
    failures logged as warnings stay on one line.
    """
    extra: dict[str, Any] = {"error_code": getattr(exc, "error_code", type(exc).__name__)}
    file_path = getattr(getattr(exc, "context", None), "file_path", "")
    if file_path:
        extra["file_path"] = file_path
    exc_info = (type(exc), exc, exc.__traceback__) if level >= logging.ERROR else None
    logger.log(level, message, exc_info=exc_info, extra=extra)
