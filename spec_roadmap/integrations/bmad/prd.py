"""
PRD Parser
==========

Reads a BMAD ``prd.md`` into a single ParsedSpec with id ``PRD``.

Requirements are collected by two redundant strategies and merged:

1. ``### FR1: Title`` / ``### NFR1: Title`` headings anywhere in the document
2. ``- **Term:** description`` bullets directly under a "Functional
   Requirements" or "Non-Functional Requirements" section (priority P2)

A requirement found by both keeps the heading version.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from ...markdown import (
    bold_term,
    first_heading,
    list_items,
    own_text,
    parse_sections,
    split_frontmatter,
    strip_inline,
)
from ...models import ParsedSpec, Priority, Requirement, SpecFormat
from ..common import (
    REQUIREMENT_HEADING_RE,
    REQUIREMENT_ID_RE,
    declared_dependencies,
    dedupe_requirements,
    heading_requirement,
)

logger = logging.getLogger(__name__)

PRD_ID = "PRD"
PRD_TITLE = "Product Requirements Document"

_NFR_SECTION_RE = re.compile(r"non[-\s]?functional\s+requirements", re.IGNORECASE)
_FR_SECTION_RE = re.compile(r"functional\s+requirements", re.IGNORECASE)
_SUCCESS_SECTION_RE = re.compile(r"success\s+(criteria|metrics)|\bkpis?\b", re.IGNORECASE)


def prd_status(frontmatter: dict[str, Any]) -> str:
    """
    Workflow status from BMAD frontmatter.

    ``stepsCompleted`` empty or absent means draft; ``lastStep`` listed in
    ``stepsCompleted`` means complete; anything else is in progress.
    """
    steps = frontmatter.get("stepsCompleted") or []
    if not isinstance(steps, list) or not steps:
        return "draft"
    last_step = frontmatter.get("lastStep")
    if last_step is not None and last_step in steps:
        return "complete"
    return "in-progress"


def parse_prd(content: str, path: Path) -> ParsedSpec:
    """Pure parse of PRD text; missing sections give empty lists."""
    frontmatter, body = split_frontmatter(content)
    sections = parse_sections(body)
    source = str(path)

    functional: list[Requirement] = []
    non_functional: list[Requirement] = []

    for section in sections:
        match = REQUIREMENT_HEADING_RE.match(strip_inline(section.title))
        if not match:
            continue
        requirement = heading_requirement(section, match, Priority.P2, source)
        if match.group("kind").upper() == "NFR":
            non_functional.append(requirement)
        else:
            functional.append(requirement)

    for section in sections:
        if _NFR_SECTION_RE.search(section.title):
            _bullet_requirements(own_text(section), "NFR", non_functional, source)
        elif _FR_SECTION_RE.search(section.title):
            _bullet_requirements(own_text(section), "FR", functional, source)

    metadata: dict[str, Any] = {}
    project_type = frontmatter.get("projectType") or frontmatter.get("project_type")
    if project_type:
        metadata["project_type"] = str(project_type).lower()

    spec = ParsedSpec(
        id=PRD_ID,
        title=strip_inline(first_heading(body, 1) or "") or PRD_TITLE,
        path=source,
        status=prd_status(frontmatter),
        priority=Priority.P0,
        format=SpecFormat.BMAD.value,
        functional_requirements=dedupe_requirements(functional),
        non_functional_requirements=dedupe_requirements(non_functional),
        success_criteria=_success_criteria(sections),
        metadata=metadata,
    )
    logger.debug(
        "Parsed PRD: %d FR, %d NFR",
        len(spec.functional_requirements),
        len(spec.non_functional_requirements),
    )
    return spec


def _bullet_requirements(text: str, kind: str, bucket: list[Requirement], source: str) -> None:
    used = {r.id for r in bucket}
    number = len(bucket) + 1
    for item in list_items(text):
        if item.indent:
            continue
        term = bold_term(item.text)
        if not term:
            continue
        if REQUIREMENT_ID_RE.match(term[0]):
            requirement_id, title, description = term[0].upper(), term[1], term[1]
        else:
            while f"{kind}{number}" in used:
                number += 1
            requirement_id, title, description = f"{kind}{number}", term[0], term[1]
        if not title:
            continue
        used.add(requirement_id)
        bucket.append(
            Requirement(
                id=requirement_id,
                title=strip_inline(title),
                priority=Priority.P2,
                description=strip_inline(description),
                dependencies=declared_dependencies(description, requirement_id),
                source_path=source,
            )
        )


def _success_criteria(sections) -> list[str]:
    results: list[str] = []
    for section in sections:
        if not _SUCCESS_SECTION_RE.search(section.title):
            continue
        for item in list_items(section.body):
            text = strip_inline(item.text)
            if text and text not in results:
                results.append(text)
    return results
