"""
Requirement-extraction helpers shared by the spec-kit and BMAD parsers.
"""

from __future__ import annotations

import re
from typing import Optional

from ..markdown import (
    Section,
    criterion_status,
    is_given_when_then,
    list_items,
    metadata_value,
    normalize_title,
    own_text,
    strip_inline,
)
from ..models import Priority, Requirement

REQUIREMENT_HEADING_RE = re.compile(
    r"^(?P<id>(?P<kind>N?FR)-?\d+(?:\.\d+)?)\s*[:.\-]\s*(?P<title>.+)$", re.IGNORECASE
)
REQUIREMENT_ID_RE = re.compile(r"^(?P<kind>N?FR)-?\d+(?:\.\d+)?$", re.IGNORECASE)
PHASE_RE = re.compile(
    r"^Phase\s+(?P<num>\d+)\s*[:\-]\s*(?P<name>.+?)\s*(?:\((?P<effort>[^)]+)\))?\s*$",
    re.IGNORECASE,
)
_NUMBERED_CRITERION_RE = re.compile(r"^\*\*(?P<num>\d+(?:\.\d+)+)\s+(?P<title>[^*]+)\*\*")
_LABEL_RE = re.compile(r"^\s*(?:#{1,6}\s*|\*\*)?(?P<label>[A-Za-z][A-Za-z /&-]+?)\s*:?\s*(?:\*\*)?\s*:?\s*$")
_FIELD_RE = re.compile(r"^(?:field|param(?:eter)?)s?\s*:\s*(?P<names>.+)$", re.IGNORECASE)
_DEPENDS_RE = re.compile(r"\b(?:depends\s+on|dependencies|requires)\s*:?\s*(?P<ids>.+)$", re.IGNORECASE)
_ID_TOKEN_RE = re.compile(r"\b(?:N?FR-?\d+(?:\.\d+)?|S\d+\.\d+|[A-Z]{1,4}\d+)\b")
_METADATA_LINE_RE = re.compile(
    r"^(?:\*\*)?(?:priority|status|effort|depends on|dependencies|story points|id)(?:\*\*)?\s*:",
    re.IGNORECASE,
)
_PRIORITY_MARKER_RE = re.compile(r"\bpriority\**\s*:\s*\**\s*(?P<value>[A-Za-z0-9' -]+)", re.IGNORECASE)
_MOSCOW_RE = re.compile(
    r"(?:^|[\[(*|])\s*(?P<value>(?:must|should|could|won'?t)[-\s]have)\s*(?:$|[\])*|:])",
    re.IGNORECASE | re.MULTILINE,
)


def phase_status(tasks_done: list[bool]) -> str:
    """Not Started / In Progress / Complete from task checkmarks."""
    if tasks_done and all(tasks_done):
        return "Complete"
    if any(tasks_done):
        return "In Progress"
    return "Not Started"


def first_paragraph(section_body: str) -> str:
    """First prose paragraph of a section (list items and metadata skipped)."""
    paragraph: list[str] = []
    for line in section_body.splitlines():
        stripped = line.strip()
        if not stripped:
            if paragraph:
                break
            continue
        if _METADATA_LINE_RE.match(stripped):
            continue
        if stripped.startswith(("#", "-", "*", "+", "|", ">")) or re.match(r"^\d+[.)]\s", stripped):
            if paragraph:
                break
            continue
        paragraph.append(stripped)
    return strip_inline(" ".join(paragraph))


def labelled_items(body: str, label_pattern: str) -> Optional[list[str]]:
    """
    Raw list-item lines following a label line (heading or bold text).

    Returns None when the label is absent, so callers can fall back.
    """
    label_re = re.compile(label_pattern, re.IGNORECASE)
    lines = body.splitlines()
    for index, line in enumerate(lines):
        match = _LABEL_RE.match(line)
        if not match or not label_re.search(match.group("label")):
            continue
        collected: list[str] = []
        for following in lines[index + 1 :]:
            stripped = following.strip()
            if stripped.startswith("#"):
                break
            if _LABEL_RE.match(following) and stripped.startswith("**") and collected:
                break
            collected.append(following)
        return collected
    return None


def criteria_from_lines(lines: list[str]) -> list[tuple[str, str]]:
    """(text, status) pairs from list items, numbered bold titles and Given/When/Then lines."""
    results: list[tuple[str, str]] = []
    body = "\n".join(lines)
    listed = {item.text for item in list_items(body)}
    for item in list_items(body):
        text, status = criterion_status(strip_inline(item.text))
        if item.checked is not None and status == "unknown":
            status = "met" if item.checked else "unmet"
        if text:
            results.append((text, status))
    for line in lines:
        stripped = line.strip()
        numbered = _NUMBERED_CRITERION_RE.match(stripped)
        if numbered:
            text, status = criterion_status(f"{numbered.group('num')} {numbered.group('title').strip()}")
            results.append((text, status))
        elif stripped and stripped not in listed and is_given_when_then(stripped):
            if not re.match(r"^([-*+]|\d+[.)])\s", stripped):
                results.append(criterion_status(strip_inline(stripped)))
    return results


def declared_fields(lines: list[str]) -> list[str]:
    fields: list[str] = []
    for line in lines:
        text = strip_inline(line.strip().lstrip("-*+ ").strip())
        match = _FIELD_RE.match(text)
        if match:
            for name in re.split(r"[,\s]+", match.group("names")):
                name = name.strip().rstrip(".")
                if name and name not in fields:
                    fields.append(name)
    return fields


def declared_dependencies(text: str, own_id: str) -> list[str]:
    deps: list[str] = []
    for line in text.splitlines():
        match = _DEPENDS_RE.search(strip_inline(line))
        if not match:
            continue
        for token in _ID_TOKEN_RE.findall(match.group("ids")):
            if token != own_id and token not in deps:
                deps.append(token)
    return deps


def dedupe_requirements(requirements: list[Requirement]) -> list[Requirement]:
    """Drop repeated titles and make ids unique within one spec."""
    seen_titles: set[str] = set()
    seen_ids: set[str] = set()
    result = []
    for requirement in requirements:
        key = normalize_title(requirement.title)
        if key and key in seen_titles:
            continue
        seen_titles.add(key)
        if requirement.id in seen_ids:
            suffix = 2
            while f"{requirement.id}-{suffix}" in seen_ids:
                suffix += 1
            requirement.id = f"{requirement.id}-{suffix}"
        seen_ids.add(requirement.id)
        result.append(requirement)
    return result


def priority_marker(text: str, default: Priority = Priority.P2) -> Priority:
    """
    Priority from a ``Priority: P1`` style marker or a standalone MoSCoW tag.

    ``Must Have`` only counts as a marker when it stands on its own (a line,
    bracket, bold span or table cell), not inside prose.
    """
    match = _PRIORITY_MARKER_RE.search(text)
    if match:
        parsed = Priority.parse(match.group("value"))
        if parsed is not None:
            return parsed
    moscow = _MOSCOW_RE.search(text)
    if moscow:
        return Priority.parse(re.sub(r"\s+", "-", moscow.group("value").lower()), default)
    return default


def heading_requirement(
    section: Section,
    match: re.Match,
    default_priority: Priority,
    source_path: str,
) -> Requirement:
    """Build a Requirement from a ``### FR1: Title`` section."""
    criteria_lines = labelled_items(section.body, r"acceptance\s+criteria|^ac$")
    if criteria_lines is None:
        criteria = [strip_inline(i.text) for i in list_items(section.body) if i.checked is not None]
    else:
        criteria = [text for text, _ in criteria_from_lines(criteria_lines)]
    requirement_id = match.group("id").upper()
    return Requirement(
        id=requirement_id,
        title=strip_inline(match.group("title")),
        priority=priority_marker(section.body, default_priority),
        description=first_paragraph(own_text(section)),
        acceptance_criteria=criteria,
        dependencies=declared_dependencies(section.body, requirement_id),
        fields=declared_fields(section.body.splitlines()),
        status=(metadata_value(section.body, "Status") or "unknown").lower(),
        source_path=source_path,
    )
