"""
Reconciliation Pipeline
=======================

Runs every stage against one project root:

    detect -> parse specs -> extract source -> gap analysis
           -> feature completeness -> scoring + roadmap

Isolated failures (one unreadable document or source file) are collected
on the result; only a missing project, no specifications at all or (unless
allowed) no source files stop the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .analysis import FeatureAnalyzer, GapAnalyzer, claims_from_specs, extract_claims
from .config import DEFAULT_CONFIG_FILE, EngineConfig
from .core.exceptions import (
    ErrorContext,
    InvalidConfigError,
    NoSourceFilesError,
    NoSpecificationsError,
    ProjectNotFoundError,
)
from .core.logging import Timer, log_context, set_correlation_id, timed
from .core.safe_io import safe_read_text
from .detection import DetectionResult
from .extraction import ExtractionResult, SourceExtractor
from .models import FeatureFinding, FeatureProposal, Gap, ParsedSpec, Roadmap, ScoredFeature
from .roadmap import RoadmapContext, RoadmapGenerator
from .unified import UnifiedSpecParser

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything one run produced, including the isolated errors."""

    detection: DetectionResult
    specs: list[ParsedSpec] = field(default_factory=list)
    extraction: ExtractionResult = field(default_factory=ExtractionResult)
    gaps: list[Gap] = field(default_factory=list)
    findings: list[FeatureFinding] = field(default_factory=list)
    roadmap: Optional[Roadmap] = None
    errors: list[dict[str, Any]] = field(default_factory=list)
    correlation_id: str = ""

    @property
    def scored(self) -> list[ScoredFeature]:
        return self.roadmap.all_items if self.roadmap else []

    def to_dict(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "detection": self.detection.to_dict(),
            "specs": [s.to_dict() for s in self.specs],
            "source_files": len(self.extraction.files),
            "gaps": [g.to_dict() for g in self.gaps],
            "findings": [f.to_dict() for f in self.findings],
            "roadmap": self.roadmap.to_dict() if self.roadmap else None,
            "errors": list(self.errors),
        }


def load_feature_proposals(path: Path | str) -> list[FeatureProposal]:
    """
    Read feature proposals from a JSON or YAML file.

    The document is either a list of proposals or a mapping with a
    ``features`` list.

    Raises:
        InvalidConfigError: If the file is unreadable or malformed
    """
    path = Path(path)
    context = ErrorContext(operation="load_feature_proposals", file_path=str(path))
    try:
        data = yaml.safe_load(safe_read_text(path))
    except (OSError, yaml.YAMLError) as e:
        raise InvalidConfigError(f"Cannot read feature proposals: {e}", context=context, cause=e) from e

    if isinstance(data, dict):
        data = data.get("features", [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidConfigError("Feature proposals must be a list", context=context)

    try:
        return [FeatureProposal.from_dict(entry) for entry in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise InvalidConfigError(f"Malformed feature proposal: {e}", context=context, cause=e) from e


class ReconciliationPipeline:
    """
    End-to-end driver.

    Example:
        result = ReconciliationPipeline(Path("."), features=proposals).run()
        RoadmapExporter().export_all(result.roadmap, Path("out"))
    """

    def __init__(
        self,
        project_root: Path,
        config: EngineConfig | None = None,
        features: list[FeatureProposal] | None = None,
        project_name: str | None = None,
    ):
        self.project_root = Path(project_root)
        self.config = config
        self.features = list(features or [])
        self.project_name = project_name or self.project_root.resolve().name

    def run(self) -> AnalysisResult:
        """
        Raises:
            ProjectNotFoundError: If the project root does not exist
            NoSpecificationsError: If no specification document was found
            NoSourceFilesError: If no source file was found (unless allowed)
            InvalidConfigError: If the project's config file is invalid
        """
        correlation_id = set_correlation_id()
        if not self.project_root.is_dir():
            raise ProjectNotFoundError(
                f"Project directory does not exist: {self.project_root}",
                context=ErrorContext(operation="run", file_path=str(self.project_root)),
            )
        config = self.config or EngineConfig.from_file(self.project_root / DEFAULT_CONFIG_FILE)

        with Timer() as timer:
            with log_context(stage="specs"):
                parsed = self._parse_specs(config)
            result = AnalysisResult(detection=parsed.detection, correlation_id=correlation_id)
            result.specs = parsed.specs
            result.errors.extend(e.to_dict() for e in parsed.errors)
            if not result.specs:
                raise NoSpecificationsError(
                    "No specification documents found",
                    context=ErrorContext(
                        operation="parse_specs",
                        file_path=str(self.project_root),
                        extra={"details": parsed.detection.details},
                    ),
                )

            with log_context(stage="extraction"):
                result.extraction = self._extract(config)
            result.errors.extend(e.to_dict() for e in result.extraction.errors)
            if not result.extraction.files and not config.allow_empty_source:
                raise NoSourceFilesError(
                    "No source files found",
                    context=ErrorContext(operation="extract", file_path=str(self.project_root)),
                )

            with log_context(stage="gaps"):
                result.gaps = self._analyze_gaps(config, result.specs, result.extraction)

            with log_context(stage="features"):
                result.findings = self._analyze_features(result.specs, result.extraction)

            with log_context(stage="roadmap"):
                result.roadmap = self._generate_roadmap(config, result)

        logger.info(
            "Reconciliation finished: %d specs, %d gaps, %d findings, %d roadmap items, %d errors",
            len(result.specs),
            len(result.gaps),
            len(result.findings),
            len(result.scored),
            len(result.errors),
            extra={"duration_ms": timer.duration_ms},
        )
        return result

    @timed(logger)
    def _parse_specs(self, config: EngineConfig):
        return UnifiedSpecParser().parse(self.project_root, as_is=config.as_is)

    @timed(logger)
    def _extract(self, config: EngineConfig) -> ExtractionResult:
        return SourceExtractor(config.extraction).extract_project(self.project_root)

    @timed(logger)
    def _analyze_gaps(
        self,
        config: EngineConfig,
        specs: list[ParsedSpec],
        extraction: ExtractionResult,
    ) -> list[Gap]:
        return GapAnalyzer(config.gaps).analyze(specs, extraction.files, extraction.test_files)

    @timed(logger)
    def _analyze_features(self, specs: list[ParsedSpec], extraction: ExtractionResult) -> list[FeatureFinding]:
        claims = extract_claims(self.project_root) + claims_from_specs(specs)
        return FeatureAnalyzer().analyze(extraction.files, claims)

    @timed(logger)
    def _generate_roadmap(self, config: EngineConfig, result: AnalysisResult) -> Roadmap:
        context = RoadmapContext.from_config(
            self.project_name,
            config.roadmap,
            spec_format=result.detection.format.value,
        )
        return RoadmapGenerator(config.scoring).generate(result.gaps, self.features, context)


def run_pipeline(project_root: Path, **kwargs: Any) -> AnalysisResult:
    """Convenience wrapper around ReconciliationPipeline(...).run()."""
    return ReconciliationPipeline(project_root, **kwargs).run()


__all__ = [
    "AnalysisResult",
    "ReconciliationPipeline",
    "load_feature_proposals",
    "run_pipeline",
]
