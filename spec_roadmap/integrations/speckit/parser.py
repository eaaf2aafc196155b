"""
Spec-Kit Parser
===============

Parses spec-kit feature folders (``NNN-feature-name/spec.md`` plus an
optional sibling ``tasks.md``) into the canonical ParsedSpec model.

Recognized structure:
- ``# F008: Title`` or ``# Feature Specification: Title`` first heading
- ``**Status:**`` / ``**Priority:**`` / ``**Effort:**`` metadata lines
- ``### FR1: Title`` requirement sections, or ``- **FR-001**: ...`` bullets
- "Acceptance Criteria" / "Acceptance Scenarios" lists and Given/When/Then lines
- "Success Criteria" / "Success Metrics" lists
- ``### Phase N: Name (effort)`` sections with checkbox or numbered tasks

Missing sections produce empty lists; only an unreadable file is an error.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from ...core.exceptions import SpecParsingError
from ...markdown import (
    Section,
    bold_term,
    first_heading,
    list_items,
    metadata_value,
    normalize_title,
    own_text,
    parse_sections,
    split_frontmatter,
    strip_id_prefix,
    strip_inline,
)
from ...models import Criterion, ParsedSpec, Priority, Requirement, SpecFormat, SpecPhase
from ..common import (
    PHASE_RE,
    REQUIREMENT_HEADING_RE,
    REQUIREMENT_ID_RE,
    criteria_from_lines,
    declared_dependencies,
    dedupe_requirements,
    heading_requirement,
    phase_status,
)

logger = logging.getLogger(__name__)

TASKS_FILE = "tasks.md"

_SPEC_ID_RE = re.compile(r"^(?P<id>[A-Z]{1,4}-?\d+)\s*[:\-]\s*")
_TITLE_PREFIX_RE = re.compile(r"^(?:feature\s+specification|feature|specification)\s*:\s*", re.IGNORECASE)
_DIR_ID_RE = re.compile(r"^(\d{3})-(.+)$")


class SpecKitParser:
    """
    Parses spec-kit documents into ParsedSpec objects.

    Example:
        parser = SpecKitParser()
        spec = parser.parse_file(Path(".specify/memory/specifications/001-auth/spec.md"))
    """

    def __init__(self, default_priority: Priority = Priority.P2):
        self.default_priority = default_priority

    def parse_file(self, path: Path) -> ParsedSpec:
        """
        Parse one spec file (and its sibling tasks.md, if present).

        Raises:
            SpecParsingError: If the document cannot be read
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
            tasks_path = path.parent / TASKS_FILE
            tasks_content = (
                tasks_path.read_text(encoding="utf-8") if tasks_path.is_file() else None
            )
        except (OSError, UnicodeDecodeError) as e:
            raise SpecParsingError(
                f"Cannot read spec document: {e}", file_path=str(path), cause=e
            ) from e
        return self.parse_content(content, path, tasks_content)

    def parse_content(
        self,
        content: str,
        path: Path,
        tasks_content: Optional[str] = None,
    ) -> ParsedSpec:
        """Pure parse of spec text; never raises on malformed structure."""
        path = Path(path)
        frontmatter, body = split_frontmatter(content)
        spec_id, title = self._identity(body, path, frontmatter)
        sections = parse_sections(body)

        status = (
            metadata_value(body, "Status") or str(frontmatter.get("status", "")) or "draft"
        ).lower()
        priority = Priority.parse(
            metadata_value(body, "Priority") or frontmatter.get("priority"),
            self.default_priority,
        )

        functional, non_functional, requirement_sections = self._requirements(sections, path)
        metadata = {}
        effort = metadata_value(body, "Effort") or frontmatter.get("effort")
        if effort:
            metadata["effort"] = str(effort)
        branch = metadata_value(body, "Feature Branch")
        if branch:
            metadata["branch"] = branch

        phases = self._phases(parse_sections(tasks_content) if tasks_content else [])
        if not phases:
            phases = self._phases(sections)

        spec = ParsedSpec(
            id=spec_id,
            title=title,
            path=str(path),
            status=status,
            priority=priority,
            format=SpecFormat.SPECKIT.value,
            functional_requirements=functional,
            non_functional_requirements=non_functional,
            acceptance_criteria=self._acceptance_criteria(sections, requirement_sections),
            success_criteria=self._success_criteria(sections),
            phases=phases,
            metadata=metadata,
        )
        logger.debug(
            "Parsed speckit spec %s: %d FR, %d NFR, %d criteria",
            spec.id,
            len(functional),
            len(non_functional),
            len(spec.acceptance_criteria),
        )
        return spec

    def _identity(self, body: str, path: Path, frontmatter: dict) -> tuple[str, str]:
        heading = first_heading(body, 1)
        spec_id = None
        title = "Unknown"
        if heading:
            match = _SPEC_ID_RE.match(heading)
            if match:
                spec_id = match.group("id")
            title = _TITLE_PREFIX_RE.sub("", strip_id_prefix(strip_inline(heading))) or "Unknown"
        if frontmatter.get("id"):
            spec_id = str(frontmatter["id"])
        if not spec_id:
            dir_match = _DIR_ID_RE.match(path.parent.name)
            if dir_match or path.name == "spec.md":
                spec_id = path.parent.name
            else:
                spec_id = path.stem
        return spec_id, title

    def _requirements(
        self, sections: list[Section], path: Path
    ) -> tuple[list[Requirement], list[Requirement], set[int]]:
        functional: list[Requirement] = []
        non_functional: list[Requirement] = []
        claimed: set[int] = set()

        for section in sections:
            match = REQUIREMENT_HEADING_RE.match(strip_inline(section.title))
            if not match:
                continue
            _claim(section, claimed)
            requirement = heading_requirement(section, match, self.default_priority, str(path))
            bucket = non_functional if match.group("kind").upper() == "NFR" else functional
            bucket.append(requirement)

        # Bullet form: "- **FR-001**: System MUST ..."
        for section in sections:
            if id(section) in claimed or not re.search(r"requirements", section.title, re.IGNORECASE):
                continue
            for item in list_items(own_text(section)):
                term = bold_term(item.text)
                if not term or not REQUIREMENT_ID_RE.match(term[0]):
                    continue
                requirement_id = term[0].upper()
                text = term[1]
                requirement = Requirement(
                    id=requirement_id,
                    title=text,
                    priority=self.default_priority,
                    description=text,
                    dependencies=declared_dependencies(text, requirement_id),
                    source_path=str(path),
                )
                bucket = non_functional if requirement_id.startswith("NFR") else functional
                bucket.append(requirement)

        return dedupe_requirements(functional), dedupe_requirements(non_functional), claimed

    def _acceptance_criteria(
        self, sections: list[Section], claimed: set[int]
    ) -> list[Criterion]:
        criteria: list[Criterion] = []
        seen: set[str] = set()
        for section in sections:
            if id(section) in claimed:
                continue
            if not re.search(r"acceptance\s+(criteria|scenarios)", section.title, re.IGNORECASE):
                continue
            for text, status in criteria_from_lines(own_text(section).splitlines()):
                key = normalize_title(text)
                if key in seen:
                    continue
                seen.add(key)
                criteria.append(Criterion(id=f"AC{len(criteria) + 1}", text=text, status=status))
        return criteria

    def _success_criteria(self, sections: list[Section]) -> list[str]:
        results: list[str] = []
        for section in sections:
            if not re.search(r"success\s+(criteria|metrics)|measurable\s+outcomes", section.title, re.IGNORECASE):
                continue
            for item in list_items(section.body):
                term = bold_term(item.text)
                if term and re.match(r"^[A-Z]{1,4}-?\d+$", term[0]):
                    text = term[1]
                elif term:
                    text = f"{term[0]}: {term[1]}" if term[1] else term[0]
                else:
                    text = strip_inline(item.text)
                if text and text not in results:
                    results.append(strip_inline(text))
        return results

    def _phases(self, sections: list[Section]) -> list[SpecPhase]:
        phases: list[SpecPhase] = []
        for section in sections:
            match = PHASE_RE.match(strip_inline(section.title))
            if not match:
                continue
            items = list_items(section.body)
            tasks = [strip_inline(i.text) for i in items]
            done = [bool(i.checked) for i in items]
            phases.append(
                SpecPhase(
                    index=int(match.group("num")),
                    name=match.group("name").strip(),
                    tasks=tasks,
                    status=phase_status(done),
                    effort=match.group("effort"),
                )
            )
        phases.sort(key=lambda p: p.index)
        return phases


def _claim(section: Section, claimed: set[int]) -> None:
    claimed.add(id(section))
    for child in section.children:
        _claim(child, claimed)


