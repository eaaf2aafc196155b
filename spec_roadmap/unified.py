"""
Unified Specification Parser
============================

Single front over both conventions: detects the format once, runs the
applicable parser(s), isolates per-document failures and returns one
deterministic list of ParsedSpec objects.

Cross-document merging: a requirement whose normalized title already
appeared (in any spec, in sorted order) is folded into the first
occurrence. Its acceptance criteria are unioned in and the duplicate is
dropped.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .core.exceptions import SpecParsingError
from .detection import DetectionResult, detect_format
from .integrations.bmad import BMADParser
from .integrations.speckit import SpecKitParser
from .markdown import normalize_title
from .models import ParsedSpec, Requirement

logger = logging.getLogger(__name__)


@dataclass
class UnifiedParseResult:
    detection: DetectionResult
    specs: list[ParsedSpec] = field(default_factory=list)
    errors: list[SpecParsingError] = field(default_factory=list)

    @property
    def requirement_count(self) -> int:
        return sum(len(s.requirements) for s in self.specs)


class UnifiedSpecParser:
    """
    Parses whatever specification convention a project uses.

    Example:
        result = UnifiedSpecParser().parse(Path("."))
        for spec in result.specs:
            print(spec.id, len(spec.requirements))
    """

    def __init__(
        self,
        speckit: SpecKitParser | None = None,
        bmad: BMADParser | None = None,
    ):
        self.speckit = speckit or SpecKitParser()
        self.bmad = bmad or BMADParser()

    def parse(
        self,
        project_root: Path,
        as_is: bool = False,
        detection: DetectionResult | None = None,
    ) -> UnifiedParseResult:
        project_root = Path(project_root)
        detection = detection or detect_format(project_root)
        result = UnifiedParseResult(detection=detection)
        specs: list[ParsedSpec] = []

        if detection.has_speckit:
            for path in detection.paths.speckit_specs:
                try:
                    specs.append(self.speckit.parse_file(path))
                except SpecParsingError as e:
                    logger.warning("Skipping unreadable spec %s: %s", path, e.message)
                    result.errors.append(e)

        if detection.has_bmad:
            specs.extend(self.bmad.parse(detection.paths, as_is=as_is, errors=result.errors))

        specs.sort(key=lambda s: (s.id, s.path))
        result.specs = merge_duplicate_requirements(_unique_spec_ids(specs))
        logger.info(
            "Parsed %d specs with %d requirements (%d documents failed)",
            len(result.specs),
            result.requirement_count,
            len(result.errors),
        )
        return result


def merge_duplicate_requirements(specs: list[ParsedSpec]) -> list[ParsedSpec]:
    """
    Fold requirements with an already-seen normalized title into the first one.

    Returns new ParsedSpec objects; the inputs are left untouched.
    """
    first_by_title: dict[str, Requirement] = {}
    merged: list[ParsedSpec] = []
    for spec in specs:
        ids: set[str] = set()
        functional = _merge_bucket(spec.functional_requirements, first_by_title, spec.id, ids)
        non_functional = _merge_bucket(spec.non_functional_requirements, first_by_title, spec.id, ids)
        merged.append(
            dataclasses.replace(
                spec,
                functional_requirements=functional,
                non_functional_requirements=non_functional,
            )
        )
    return merged


def _merge_bucket(
    requirements: list[Requirement],
    first_by_title: dict[str, Requirement],
    spec_id: str,
    ids: set[str],
) -> list[Requirement]:
    kept: list[Requirement] = []
    for requirement in requirements:
        key = normalize_title(requirement.title)
        original = first_by_title.get(key) if key else None
        if original is not None:
            for criterion in requirement.acceptance_criteria:
                if criterion not in original.acceptance_criteria:
                    original.acceptance_criteria.append(criterion)
            logger.debug(
                "Merged duplicate requirement %s/%s into %s", spec_id, requirement.id, original.id
            )
            continue

        copy = dataclasses.replace(
            requirement,
            acceptance_criteria=list(requirement.acceptance_criteria),
            tasks=list(requirement.tasks),
            dependencies=list(requirement.dependencies),
            fields=list(requirement.fields),
        )
        if copy.id in ids:
            suffix = 2
            while f"{copy.id}-{suffix}" in ids:
                suffix += 1
            copy.id = f"{copy.id}-{suffix}"
        ids.add(copy.id)
        if key:
            first_by_title[key] = copy
        kept.append(copy)
    return kept


def _unique_spec_ids(specs: list[ParsedSpec]) -> list[ParsedSpec]:
    seen: set[str] = set()
    result = []
    for spec in specs:
        spec_id = spec.id
        suffix = 2
        while spec_id in seen:
            spec_id = f"{spec.id}-{suffix}"
            suffix += 1
        if spec_id != spec.id:
            logger.warning("Duplicate spec id %s at %s renamed to %s", spec.id, spec.path, spec_id)
            spec = dataclasses.replace(spec, id=spec_id)
        seen.add(spec_id)
        result.append(spec)
    return result
