"""
Architecture Parser
===================

Pattern-matches a brownfield ``architecture.md`` for two kinds of
verifiable requirements:

- ``ARCH-API``: endpoints written as ``METHOD /path`` anywhere in the text
- ``ARCH-DATA``: models under a "Data Model(s)" section, one heading per
  model with its fields as bullets or table rows

This is deliberately shallow; it does not try to understand diagrams or
prose.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ...markdown import Section, list_items, own_text, parse_sections, split_frontmatter, strip_inline
from ...models import ParsedSpec, Priority, Requirement, SpecFormat
from ..common import first_paragraph

logger = logging.getLogger(__name__)

API_SPEC_ID = "ARCH-API"
DATA_SPEC_ID = "ARCH-DATA"

_ENDPOINT_RE = re.compile(r"\b(?P<method>GET|POST|PUT|PATCH|DELETE)\s+(?P<path>/[^\s`*|),;]*)")
_DATA_SECTION_RE = re.compile(r"^data\s+models?\b|\bdata\s+models?$|^models$|^entities$", re.IGNORECASE)
_FIELD_BULLET_RE = re.compile(r"^\**`?(?P<name>[A-Za-z_][A-Za-z0-9_]*)`?\**\s*(?:[:(\-]|$)")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?[\s:|-]+\|?$")


def extract_endpoints(body: str) -> list[tuple[str, str, str]]:
    """(method, path, description) for every distinct ``METHOD /path``."""
    endpoints: list[tuple[str, str, str]] = []
    seen: set[tuple[str, str]] = set()
    for line in body.splitlines():
        for match in _ENDPOINT_RE.finditer(line):
            method = match.group("method").upper()
            path = match.group("path").rstrip(".:")
            if (method, path) in seen:
                continue
            seen.add((method, path))
            rest = strip_inline(line[match.end() :]).strip(" `*:-|")
            endpoints.append((method, path, rest))
    return endpoints


def model_fields(body: str) -> list[str]:
    """Field names from bullets (``- **email**: string``) or table rows."""
    fields: list[str] = []
    for item in list_items(body):
        match = _FIELD_BULLET_RE.match(item.text.strip())
        if match and match.group("name") not in fields:
            fields.append(match.group("name"))

    rows = [line.strip() for line in body.splitlines() if line.strip().startswith("|")]
    separators = {i for i, row in enumerate(rows) if _TABLE_SEPARATOR_RE.match(row)}
    # the header is the row directly above a |---| separator
    headers = {i - 1 for i in separators}
    for index, row in enumerate(rows):
        if index in separators or index in headers:
            continue
        cells = [strip_inline(c).strip() for c in row.strip("|").split("|")]
        if not cells or not cells[0]:
            continue
        name = cells[0].strip("`")
        if re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", name) and name not in fields:
            fields.append(name)
    return fields


def extract_models(sections: list[Section]) -> list[tuple[str, str, list[str]]]:
    """(name, description, fields) for each model heading with at least one field."""
    models: list[tuple[str, str, list[str]]] = []
    for section in sections:
        if not _DATA_SECTION_RE.search(strip_inline(section.title)):
            continue
        for child in section.children:
            fields = model_fields(own_text(child))
            if fields:
                models.append((strip_inline(child.title), first_paragraph(own_text(child)), fields))
    return models


def parse_architecture(content: str, path: Path) -> list[ParsedSpec]:
    """ARCH-API and ARCH-DATA specs; either is omitted when nothing is found."""
    _, body = split_frontmatter(content)
    source = str(path)
    specs: list[ParsedSpec] = []

    endpoints = extract_endpoints(body)
    if endpoints:
        requirements = []
        for index, (method, route, description) in enumerate(endpoints, start=1):
            requirements.append(
                Requirement(
                    id=f"API{index}",
                    title=f"{method} {route}",
                    priority=Priority.P1,
                    description=description,
                    acceptance_criteria=[f"Endpoint {method} {route} exists"],
                    source_path=source,
                )
            )
        specs.append(
            ParsedSpec(
                id=API_SPEC_ID,
                title="API Contracts",
                path=source,
                status="defined",
                priority=Priority.P1,
                format=SpecFormat.BMAD.value,
                functional_requirements=requirements,
            )
        )

    models = extract_models(parse_sections(body))
    if models:
        requirements = [
            Requirement(
                id=f"MODEL{index}",
                title=name,
                priority=Priority.P1,
                description=description,
                acceptance_criteria=[f"Field: {f}" for f in fields],
                fields=fields,
                source_path=source,
            )
            for index, (name, description, fields) in enumerate(models, start=1)
        ]
        specs.append(
            ParsedSpec(
                id=DATA_SPEC_ID,
                title="Data Models",
                path=source,
                status="defined",
                priority=Priority.P1,
                format=SpecFormat.BMAD.value,
                functional_requirements=requirements,
            )
        )

    logger.debug("Parsed %d endpoints and %d models from %s", len(endpoints), len(models), source)
    return specs
