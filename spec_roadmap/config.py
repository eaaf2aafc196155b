"""
Engine Configuration
====================

Tunable heuristics for the reconciliation engine:
- Source discovery (extensions, excluded directories, worker pool size)
- Gap confidence bases, evidence weights and effort tables
- Scoring rubric (category impact, effort by category, ROI cut-offs)
- Roadmap packing (team size, phase limits, weekly capacity)

The numeric defaults are heuristics tuned by example. They only affect
ranking, so every table can be overridden from a YAML (or JSON) file.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .core.exceptions import ErrorContext, InvalidConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".spec-roadmap.yaml"

SOURCE_EXTENSIONS: list[str] = [".py", ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"]

EXCLUDE_DIRS: list[str] = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".next",
    ".cache",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".mypy_cache",
]

# Gap confidence: base certainty that a gap is real, per detected status
STATUS_BASE_CONFIDENCE: dict[str, int] = {
    "missing": 80,
    "stub": 70,
    "partial": 55,
}

# Adjustment applied once per evidence item (positive = gap more certain)
EVIDENCE_WEIGHTS: dict[str, int] = {
    "function-not-found": 5,
    "exact-function-match": 0,
    "fuzzy-name-match": 0,
    "name-similarity-only": -10,
    "returns-placeholder-text": 10,
    "not-implemented-marker": 10,
    "empty-body": 5,
    "missing-declared-field": 5,
    "test-file-missing": 5,
    "test-file-exists": -5,
}

EFFORT_BASE_HOURS: dict[str, int] = {
    "missing": 16,
    "stub": 12,
    "partial": 8,
}

CATEGORY_IMPACT: dict[str, int] = {
    "security": 3,
    "core-functionality": 3,
    "performance": 2,
    "user-experience": 2,
    "developer-experience": 2,
    "testing": 1,
    "documentation": 1,
    "integrations": 1,
}

# Fallback realistic hours when an item carries no estimate of its own
EFFORT_BY_CATEGORY: dict[str, float] = {
    "core-functionality": 16,
    "security": 12,
    "performance": 12,
    "integrations": 20,
    "user-experience": 8,
    "developer-experience": 8,
    "testing": 6,
    "documentation": 3,
}

# Lower bound of the ROI percentile rank for each computed bucket
ROI_PERCENTILE_CUTOFFS: dict[str, float] = {
    "P0": 0.9,
    "P1": 0.6,
    "P2": 0.3,
}

# Capacity and pool sizes that must be greater than zero
POSITIVE_KEYS: dict[str, frozenset[str]] = {
    "extraction": frozenset({"max_workers", "max_file_bytes"}),
    "roadmap": frozenset(
        {"team_size", "max_phases", "max_items_per_phase", "weekly_capacity_hours", "weeks_per_phase"}
    ),
}


@dataclass
class ExtractionConfig:
    extensions: list[str] = field(default_factory=lambda: list(SOURCE_EXTENSIONS))
    exclude_dirs: list[str] = field(default_factory=lambda: list(EXCLUDE_DIRS))
    include_tests: bool = False
    max_workers: int = 8
    max_file_bytes: int = 1_000_000


@dataclass
class GapConfig:
    confidence_threshold: int = 50
    include_stubs: bool = True
    include_partial: bool = True
    include_non_functional: bool = False
    fuzzy_threshold: float = 0.75
    status_base_confidence: dict[str, int] = field(
        default_factory=lambda: dict(STATUS_BASE_CONFIDENCE)
    )
    evidence_weights: dict[str, int] = field(default_factory=lambda: dict(EVIDENCE_WEIGHTS))
    effort_base_hours: dict[str, int] = field(default_factory=lambda: dict(EFFORT_BASE_HOURS))


@dataclass
class ScoringConfig:
    category_impact: dict[str, int] = field(default_factory=lambda: dict(CATEGORY_IMPACT))
    effort_by_category: dict[str, float] = field(
        default_factory=lambda: dict(EFFORT_BY_CATEGORY)
    )
    min_effort_hours: float = 0.25
    roi_percentile_cutoffs: dict[str, float] = field(
        default_factory=lambda: dict(ROI_PERCENTILE_CUTOFFS)
    )
    p0_min_impact: int = 8


@dataclass
class RoadmapConfig:
    team_size: int = 2
    max_phases: int = 4
    max_items_per_phase: int = 15
    weekly_capacity_hours: float = 35
    weeks_per_phase: int = 2
    high_effort_hours: float = 40


@dataclass
class EngineConfig:
    """Top-level configuration, one section per pipeline stage."""

    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    gaps: GapConfig = field(default_factory=GapConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    roadmap: RoadmapConfig = field(default_factory=RoadmapConfig)
    allow_empty_source: bool = False
    as_is: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise InvalidConfigError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )

        sections = {
            "extraction": ExtractionConfig,
            "gaps": GapConfig,
            "scoring": ScoringConfig,
            "roadmap": RoadmapConfig,
        }
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in sections:
                kwargs[key] = _build_section(sections[key], key, value)
            elif key in ("allow_empty_source", "as_is"):
                kwargs[key] = bool(value)
            else:
                logger.warning("Ignoring unknown configuration key: %s", key)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_path: Path) -> "EngineConfig":
        """Load configuration from a YAML or JSON file (defaults if absent)."""
        config_path = Path(config_path)
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise InvalidConfigError(
                f"Cannot read configuration: {e}",
                context=ErrorContext(operation="load_config", file_path=str(config_path)),
                cause=e,
            ) from e

        if data is None:
            return cls()
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _build_section(section_cls: type, name: str, value: Any) -> Any:
    if value is None:
        return section_cls()
    if not isinstance(value, dict):
        raise InvalidConfigError(f"Configuration section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, item in value.items():
        if key not in known:
            logger.warning("Ignoring unknown configuration key: %s.%s", name, key)
            continue
        default = getattr(section_cls(), key)
        if isinstance(default, dict):
            if not isinstance(item, dict):
                raise InvalidConfigError(f"Configuration key '{name}.{key}' must be a mapping")
            # Partial tables override individual entries only
            merged = dict(default)
            merged.update(item)
            item = merged
        elif isinstance(default, bool):
            item = bool(item)
        elif isinstance(default, (int, float)) and not isinstance(item, (int, float)):
            raise InvalidConfigError(f"Configuration key '{name}.{key}' must be a number")
        if key in POSITIVE_KEYS.get(name, ()) and item <= 0:
            raise InvalidConfigError(
                f"Configuration key '{name}.{key}' must be greater than zero, got {item}"
            )
        kwargs[key] = item
    return section_cls(**kwargs)
