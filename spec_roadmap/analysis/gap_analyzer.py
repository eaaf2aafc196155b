"""
Gap Analyzer
============

Reconciles parsed specifications against extracted source facts.

For every requirement the best-matching symbol decides a status:

- no match                                  -> missing
- matched symbol is a stub                  -> stub
- exact match lacking declared fields       -> partial
- only a fuzzy (similar-name) match         -> partial
- anything else                             -> complete (no gap)

Each gap carries its evidence, a confidence score, an effort estimate and
generated impact/recommendation text. Gaps below the confidence threshold
are dropped as noise.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from pathlib import PurePosixPath
from typing import Iterable, Optional

from ..config import GapConfig
from ..models import EffortEstimate, Evidence, FileFacts, Gap, ParsedSpec, Requirement
from .confidence import calculate_confidence, create_evidence
from .matching import MatchKind, SymbolMatch, best_match, extract_keywords, missing_fields

logger = logging.getLogger(__name__)

DEPENDENCY_PATTERN = re.compile(r"depends on ([A-Z]+-?\d+(?:\.\d+)?)", re.IGNORECASE)
_TEST_AFFIX_RE = re.compile(r"^test_|_test$|\.test$|\.spec$|_spec$")


def gap_id(spec_id: str, requirement_id: str) -> str:
    return f"GAP-{spec_id}-{requirement_id}"


def estimate_effort(
    requirement: Requirement,
    status: str,
    base_hours: Optional[dict[str, int]] = None,
) -> EffortEstimate:
    """
    Hours from status, scaled by criteria count, sub-tasks and dependencies.

    Confidence reflects how well specified the requirement is: high with two
    or more acceptance criteria, medium with one, low with none.
    """
    hours = float((base_hours or GapConfig().effort_base_hours).get(status, 8))
    criteria_count = len(requirement.acceptance_criteria)
    if criteria_count > 5:
        hours *= 1.5
    elif criteria_count > 3:
        hours *= 1.2
    if requirement.tasks:
        hours *= 1.25
    if _dependency_ids(requirement):
        hours *= 1.3
    hours = round(hours)

    if criteria_count >= 2:
        confidence = "high"
    elif criteria_count == 1:
        confidence = "medium"
    else:
        confidence = "low"
    return EffortEstimate.create(hours, confidence, method="complexity")


def expected_locations(requirement: Requirement, spec: ParsedSpec) -> list[str]:
    """Where an implementation would plausibly live (hints, not checks)."""
    locations = []
    for keyword in extract_keywords(requirement.title)[:3]:
        locations.append(f"src/{keyword}")
        locations.append(f"src/{spec.id.lower()}/{keyword}")
    return locations


def generate_impact(requirement: Requirement, status: str, spec: ParsedSpec) -> str:
    if status == "missing":
        return f"{requirement.title} is not implemented. This blocks {spec.title}."
    if status == "stub":
        return f"{requirement.title} is only a stub. Users will encounter non-functional code."
    return f"{requirement.title} is partially implemented. Some acceptance criteria are not met."


def generate_recommendation(requirement: Requirement, status: str) -> str:
    if status == "missing":
        return f"Implement {requirement.title} according to specification."
    if status == "stub":
        return f"Complete the stub implementation of {requirement.title}."
    return f"Finish implementing remaining acceptance criteria for {requirement.title}."


def has_test_file(file_path: str, test_paths: Iterable[str]) -> Optional[str]:
    """The first test path that targets file_path by name, if any."""
    stem = _bare_stem(file_path)
    for test_path in sorted(test_paths):
        if _TEST_AFFIX_RE.sub("", _bare_stem(test_path)) == stem:
            return test_path
    return None


def _bare_stem(path: str) -> str:
    """``src/auth.py`` -> ``auth``; ``auth.test.ts`` -> ``auth.test``."""
    return PurePosixPath(path).name.rsplit(".", 1)[0]


def _dependency_ids(requirement: Requirement) -> list[str]:
    deps = list(requirement.dependencies)
    for match in DEPENDENCY_PATTERN.finditer(requirement.description):
        dep = match.group(1).upper()
        if dep not in deps and dep != requirement.id:
            deps.append(dep)
    return deps


class GapAnalyzer:
    """
    Produces Gap records for requirements the source tree does not satisfy.

    Example:
        analyzer = GapAnalyzer(GapConfig(confidence_threshold=60))
        gaps = analyzer.analyze(specs, extraction.files, extraction.test_files)
    """

    def __init__(self, config: GapConfig | None = None):
        self.config = config or GapConfig()

    def analyze(
        self,
        specs: list[ParsedSpec],
        source_files: list[FileFacts],
        test_paths: Iterable[str] = (),
    ) -> list[Gap]:
        test_paths = list(test_paths)
        gaps: list[Gap] = []
        suppressed = 0
        analyzed = 0

        for spec in specs:
            requirements = list(spec.functional_requirements)
            if self.config.include_non_functional:
                requirements.extend(spec.non_functional_requirements)
            for requirement in requirements:
                analyzed += 1
                gap = self.analyze_requirement(requirement, spec, source_files, test_paths)
                if gap is None:
                    continue
                if not self._included(gap):
                    suppressed += 1
                    continue
                gaps.append(gap)

        gaps = self._resolve_dependencies(gaps, specs)
        gaps.sort(key=_gap_sort_key)
        logger.info(
            "Analyzed %d requirements: %d gaps (%d below threshold or filtered)",
            analyzed,
            len(gaps),
            suppressed,
        )
        return gaps

    def analyze_requirement(
        self,
        requirement: Requirement,
        spec: ParsedSpec,
        source_files: list[FileFacts],
        test_paths: Iterable[str] = (),
    ) -> Optional[Gap]:
        """Gap for one requirement, or None when it looks complete."""
        match = best_match(requirement.title, source_files, self.config.fuzzy_threshold)
        status, evidence = self._classify(requirement, match)
        if status == "complete":
            logger.debug("%s/%s satisfied by %s", spec.id, requirement.id, match.location if match else "-")
            return None

        if match is not None and test_paths:
            test_file = has_test_file(match.file_path, test_paths)
            if test_file:
                evidence.append(self._evidence("test-file-exists", f"Test file exists for {match.file_path}", test_file))
            else:
                evidence.append(self._evidence("test-file-missing", f"No test file for {match.file_path}", match.file_path))

        confidence = calculate_confidence(status, evidence, self.config.status_base_confidence)
        file_path = match.file_path if match else ""
        locations = expected_locations(requirement, spec)
        if file_path:
            locations.insert(0, file_path)

        return Gap(
            id=gap_id(spec.id, requirement.id),
            spec_id=spec.id,
            requirement_id=requirement.id,
            title=requirement.title,
            description=requirement.description or requirement.title,
            priority=requirement.priority,
            confidence=confidence,
            status=status,
            effort=estimate_effort(requirement, status, self.config.effort_base_hours),
            evidence=tuple(evidence),
            impact=generate_impact(requirement, status, spec),
            recommendation=generate_recommendation(requirement, status),
            expected_locations=tuple(locations),
            dependencies=tuple(_dependency_ids(requirement)),
            file_path=file_path,
        )

    def _classify(self, requirement: Requirement, match: Optional[SymbolMatch]) -> tuple[str, list[Evidence]]:
        if match is None:
            return "missing", [
                self._evidence("function-not-found", f"No symbol matches '{requirement.title}'")
            ]

        if match.is_stub:
            reason = match.stub_reason or "empty-body"
            found = "exact-function-match" if match.kind is MatchKind.EXACT else "fuzzy-name-match"
            return "stub", [
                self._evidence(found, f"{match.name} matches '{requirement.title}'", match.location),
                self._evidence(reason, f"{match.name} is a stub implementation ({reason})", match.location),
            ]

        if match.kind is MatchKind.EXACT:
            absent = missing_fields(match, requirement.fields)
            if not absent:
                return "complete", []
            evidence = [
                self._evidence("exact-function-match", f"{match.name} matches '{requirement.title}'", match.location)
            ]
            for name in absent:
                evidence.append(
                    self._evidence("missing-declared-field", f"{match.name} does not handle field '{name}'", match.location)
                )
            return "partial", evidence

        return "partial", [
            self._evidence(
                "name-similarity-only",
                f"Only a similar name found: {match.name} ({match.similarity:.2f})",
                match.location,
            )
        ]

    def _evidence(self, evidence_type: str, description: str, location: Optional[str] = None) -> Evidence:
        return create_evidence(evidence_type, description, location, self.config.evidence_weights)

    def _included(self, gap: Gap) -> bool:
        if gap.confidence < self.config.confidence_threshold:
            return False
        if gap.status == "stub" and not self.config.include_stubs:
            return False
        if gap.status == "partial" and not self.config.include_partial:
            return False
        return True

    def _resolve_dependencies(self, gaps: list[Gap], specs: list[ParsedSpec]) -> list[Gap]:
        """
        Map requirement ids to gap ids.

        Dependencies on requirements that are already satisfied are dropped;
        unknown ids are kept so the roadmap validator can report them.
        """
        emitted = {g.id for g in gaps}
        owner: dict[str, str] = {}
        for spec in specs:
            for requirement in spec.requirements:
                owner.setdefault(requirement.id, spec.id)

        resolved = []
        for gap in gaps:
            deps: list[str] = []
            for dep in gap.dependencies:
                candidate = gap_id(gap.spec_id, dep)
                if candidate not in emitted and dep in owner:
                    candidate = gap_id(owner[dep], dep)
                if candidate in emitted:
                    if candidate != gap.id and candidate not in deps:
                        deps.append(candidate)
                elif dep not in owner:
                    deps.append(candidate)
            resolved.append(dataclasses.replace(gap, dependencies=tuple(deps)))
        return resolved


def _gap_sort_key(gap: Gap) -> tuple:
    return (gap.priority.rank, -gap.confidence, gap.spec_id, gap.requirement_id, gap.file_path)
