"""
Safe I/O Utilities
==================

File helpers used by the parsers and the exporter:
- Atomic writes on POSIX (crash-safe via os.replace)
- Best-effort writes on Windows (os.replace, then unlink-and-rename)
- Explicit UTF-8 encoding everywhere

Usage:
    from spec_roadmap.core.safe_io import safe_write_json, safe_read_text

    safe_write_json(out_dir / "roadmap.json", roadmap.to_dict())
    content = safe_read_text(spec_path)
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any


def safe_write_text(
    path: Path | str,
    content: str,
    encoding: str = "utf-8",
) -> None:
    """
    Write text to file atomically (POSIX) or best-effort (Windows).

    Writes to a temp file in the destination directory and renames it over
    the target, so readers never observe a half-written export.

    Args:
        path: Target file path
        content: Text content to write
        encoding: Character encoding (default: utf-8)

    Raises:
        OSError: If write fails
    """
    path = Path(path)
    _write_atomic(path, lambda f: f.write(content), encoding)


def safe_write_json(
    path: Path | str,
    data: Any,
    indent: int = 2,
    encoding: str = "utf-8",
) -> None:
    """
    Write JSON to file atomically (POSIX) or best-effort (Windows).

    Args:
        path: Target file path
        data: Data to serialize as JSON
        indent: JSON indentation (default: 2)
        encoding: Character encoding (default: utf-8)

    Raises:
        OSError: If write fails
        TypeError: If data is not JSON serializable
    """
    path = Path(path)
    _write_atomic(
        path,
        lambda f: json.dump(data, f, indent=indent, ensure_ascii=False),
        encoding,
    )


def safe_read_text(
    path: Path | str,
    encoding: str = "utf-8",
    default: str | None = None,
    errors: str = "strict",
) -> str:
    """
    Read text from file with explicit encoding.

    Args:
        path: File path to read
        encoding: Character encoding (default: utf-8)
        default: Default value if file doesn't exist (None = raise error)
        errors: Decoding error policy passed to open()

    Returns:
        File contents as string

    Raises:
        FileNotFoundError: If file doesn't exist and no default provided
        OSError: If read fails
    """
    path = Path(path)

    if not path.exists():
        if default is not None:
            return default
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, "r", encoding=encoding, errors=errors) as f:
        return f.read()


def safe_read_json(
    path: Path | str,
    encoding: str = "utf-8",
    default: Any = None,
) -> Any:
    """
    Read JSON from file with explicit encoding.

    Args:
        path: File path to read
        encoding: Character encoding (default: utf-8)
        default: Default value if file doesn't exist or is invalid
                 (None = raise error)

    Returns:
        Parsed JSON data

    Raises:
        FileNotFoundError: If file doesn't exist and no default provided
        json.JSONDecodeError: If JSON is invalid and no default provided
    """
    path = Path(path)

    if not path.exists():
        if default is not None:
            return default
        raise FileNotFoundError(f"File not found: {path}")

    try:
        with open(path, "r", encoding=encoding) as f:
            return json.load(f)
    except json.JSONDecodeError:
        if default is not None:
            return default
        raise


def _write_atomic(path: Path, writer, encoding: str) -> None:
    """Run writer against a temp file next to path, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            writer(f)
            f.flush()
            os.fsync(f.fileno())

        _atomic_replace(tmp_path, path)

    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _atomic_replace(src: str | Path, dst: str | Path) -> None:
    """
    Atomically replace dst with src.

    On Windows os.replace() can fail when dst is locked; fall back to
    remove-then-rename, which is not atomic.
    """
    src = str(src)
    dst = str(dst)

    if sys.platform == "win32":
        try:
            os.replace(src, dst)
        except OSError:
            try:
                os.unlink(dst)
            except OSError:
                pass
            os.rename(src, dst)
    else:
        os.replace(src, dst)
