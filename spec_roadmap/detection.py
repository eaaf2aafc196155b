"""
Specification Format Detector
=============================

Decides which specification convention(s) a project uses:

- speckit: a ``.specify/`` marker directory with numbered feature folders,
  each holding one ``spec.md``
- bmad: flat planning documents (``prd.md``, ``architecture.md``,
  ``epics.md``) in one of several candidate locations, optionally moved by a
  ``_bmad/*/config.yaml`` override

Detection is a pure filesystem read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .core.exceptions import ConfigurationError, ErrorContext, InvalidConfigError
from .models import SpecFormat

logger = logging.getLogger(__name__)

FORMAT_CONFIDENCE: dict[SpecFormat, int] = {
    SpecFormat.BOTH: 95,
    SpecFormat.SPECKIT: 90,
    SpecFormat.BMAD: 85,
    SpecFormat.UNKNOWN: 0,
}

SPECKIT_MARKER = ".specify"
SPECKIT_SPEC_FILE = "spec.md"
SPECKIT_CONSTITUTION = "constitution.md"

BMAD_CONFIG_FILES = ("_bmad/bmm/config.yaml", "_bmad/core/config.yaml")
BMAD_CONFIG_KEYS = ("planning_artifacts", "output_folder")
BMAD_DEFAULT_LOCATIONS = ("_bmad-output/planning-artifacts", "_bmad-output", "docs")
BMAD_DOCUMENTS = ("prd", "architecture", "epics")
PROJECT_ROOT_PLACEHOLDER = "{project-root}"


@dataclass
class FormatPaths:
    """Where the detected documents live (absolute paths)."""

    speckit_root: Optional[Path] = None
    speckit_specs: list[Path] = field(default_factory=list)
    bmad_dir: Optional[Path] = None
    prd: Optional[Path] = None
    architecture: Optional[Path] = None
    epics: Optional[Path] = None
    sprint_dir: Optional[Path] = None


@dataclass
class DetectionResult:
    format: SpecFormat
    confidence: int
    paths: FormatPaths
    details: list[str] = field(default_factory=list)

    @property
    def has_speckit(self) -> bool:
        return self.format in (SpecFormat.SPECKIT, SpecFormat.BOTH)

    @property
    def has_bmad(self) -> bool:
        return self.format in (SpecFormat.BMAD, SpecFormat.BOTH)

    def to_dict(self) -> dict:
        return {
            "format": self.format.value,
            "confidence": self.confidence,
            "details": list(self.details),
            "paths": {
                "speckit_root": _str(self.paths.speckit_root),
                "speckit_specs": [str(p) for p in self.paths.speckit_specs],
                "bmad_dir": _str(self.paths.bmad_dir),
                "prd": _str(self.paths.prd),
                "architecture": _str(self.paths.architecture),
                "epics": _str(self.paths.epics),
                "sprint_dir": _str(self.paths.sprint_dir),
            },
        }


def _str(path: Optional[Path]) -> Optional[str]:
    return str(path) if path else None


def find_speckit_specs(project_root: Path) -> list[Path]:
    """
    Spec files of a speckit project, most specific layout first.

    Order: ``.specify/memory/specifications/*/spec.md``, then
    ``.specify/memory/*/spec.md``, then ``specs/*/spec.md``; the constitution
    is used only when no feature spec exists.
    """
    marker = project_root / SPECKIT_MARKER
    if not marker.is_dir():
        return []

    memory = marker / "memory"
    candidates = [
        sorted((memory / "specifications").glob(f"*/{SPECKIT_SPEC_FILE}")),
        sorted(
            p
            for p in memory.glob(f"*/{SPECKIT_SPEC_FILE}")
            if p.parent.name != "specifications"
        ),
        sorted((project_root / "specs").glob(f"*/{SPECKIT_SPEC_FILE}")),
    ]
    for specs in candidates:
        if specs:
            return specs

    constitution = memory / SPECKIT_CONSTITUTION
    if constitution.is_file():
        return [constitution]
    return []


def read_bmad_override(project_root: Path) -> Optional[Path]:
    """
    Planning-artifacts location from a BMAD config file, if one is set.

    Raises:
        InvalidConfigError: If a config file exists but cannot be parsed
    """
    for relative in BMAD_CONFIG_FILES:
        config_path = project_root / relative
        if not config_path.is_file():
            continue
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise InvalidConfigError(
                f"Cannot parse BMAD config: {e}",
                context=ErrorContext(operation="read_bmad_override", file_path=str(config_path)),
                cause=e,
            ) from e
        if data is None:
            continue
        if not isinstance(data, dict):
            raise InvalidConfigError(
                "BMAD config must be a mapping",
                context=ErrorContext(operation="read_bmad_override", file_path=str(config_path)),
            )
        for key in BMAD_CONFIG_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                resolved = value.strip().replace(PROJECT_ROOT_PLACEHOLDER, str(project_root))
                path = Path(resolved)
                if not path.is_absolute():
                    path = project_root / path
                return path
    return None


def _find_document(directory: Path, stem: str) -> Optional[Path]:
    exact = directory / f"{stem}.md"
    if exact.is_file():
        return exact
    for candidate in sorted(directory.glob("*.md")):
        if candidate.stem.lower() == stem:
            return candidate
    return None


def locate_bmad_documents(project_root: Path, details: list[str] | None = None) -> FormatPaths:
    """Scan the override and default locations for the BMAD core documents."""
    details = details if details is not None else []
    locations: list[Path] = []
    try:
        override = read_bmad_override(project_root)
    except ConfigurationError as e:
        logger.warning("Falling back to default BMAD locations: %s", e)
        details.append(f"BMAD config ignored: {e.message}")
        override = None
    if override is not None:
        details.append(f"BMAD override location: {override}")
        locations.append(override)
    locations.extend(project_root / location for location in BMAD_DEFAULT_LOCATIONS)

    for directory in locations:
        if not directory.is_dir():
            continue
        found = {stem: _find_document(directory, stem) for stem in BMAD_DOCUMENTS}
        if not any(found.values()):
            continue
        sprint_dir = directory.parent / "implementation-artifacts" / "sprint-artifacts"
        return FormatPaths(
            bmad_dir=directory,
            prd=found["prd"],
            architecture=found["architecture"],
            epics=found["epics"],
            sprint_dir=sprint_dir if sprint_dir.is_dir() else None,
        )
    return FormatPaths()


def detect_format(project_root: Path) -> DetectionResult:
    """
    Detect which specification conventions are present under project_root.

    Args:
        project_root: Project directory

    Returns:
        DetectionResult with format, confidence, document paths and details
    """
    project_root = Path(project_root)
    details: list[str] = []

    speckit_specs = find_speckit_specs(project_root)
    if speckit_specs:
        details.append(f"speckit: {len(speckit_specs)} spec file(s) under {SPECKIT_MARKER}/")
    elif (project_root / SPECKIT_MARKER).is_dir():
        details.append(f"speckit: {SPECKIT_MARKER}/ present but contains no spec files")

    bmad = locate_bmad_documents(project_root, details)
    has_bmad = bmad.bmad_dir is not None
    if has_bmad:
        present = [
            name
            for name, path in (("prd", bmad.prd), ("architecture", bmad.architecture), ("epics", bmad.epics))
            if path
        ]
        details.append(f"bmad: {', '.join(present)} in {bmad.bmad_dir}")

    if speckit_specs and has_bmad:
        spec_format = SpecFormat.BOTH
    elif speckit_specs:
        spec_format = SpecFormat.SPECKIT
    elif has_bmad:
        spec_format = SpecFormat.BMAD
    else:
        spec_format = SpecFormat.UNKNOWN
        details.append("No supported specification convention found")

    paths = bmad
    if speckit_specs:
        paths.speckit_root = project_root / SPECKIT_MARKER
        paths.speckit_specs = speckit_specs

    logger.info("Detected specification format: %s", spec_format.value)
    return DetectionResult(
        format=spec_format,
        confidence=FORMAT_CONFIDENCE[spec_format],
        paths=paths,
        details=details,
    )
