"""
Epics Parser
============

Reads a BMAD ``epics.md`` into one ParsedSpec per epic.

Expected format::

    ## Epic 1: Account Management
    Priority: P1

    ### Story 1.1: User Registration
    As a visitor, I want to sign up, so that I can save my work.

    **Acceptance Criteria:**
    - Given a valid email, when I submit, then an account is created
    - [ ] Duplicate emails are rejected

    Depends on: S1.2

The document is split with a line-oriented state machine; each story block
is then mined for its description, criteria, tasks and dependencies.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ...markdown import list_items, metadata_value, strip_inline
from ...models import Criterion, ParsedSpec, Priority, Requirement, SpecFormat, SpecPhase
from ..common import (
    criteria_from_lines,
    declared_dependencies,
    declared_fields,
    first_paragraph,
    labelled_items,
    priority_marker,
)

logger = logging.getLogger(__name__)

DONE_STATUSES = frozenset({"done", "complete", "completed"})
NOT_STARTED_STATUSES = frozenset({"unknown", "backlog", "draft", "todo", "ready-for-dev"})

_HEADING_RE = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<text>.+?)\s*#*\s*$")
_EPIC_RE = re.compile(r"^Epic\s*(?P<num>\d+)\s*[:.\-]?\s*(?P<title>.+)$", re.IGNORECASE)
_STORY_RE = re.compile(r"^Story\s*(?P<num>\d+(?:\.\d+)?)\s*[:.\-]?\s*(?P<title>.+)$", re.IGNORECASE)
_USER_STORY_RE = re.compile(
    r"As\s+an?\s+(?P<role>.+?),?\s+I\s+want\s+(?P<want>.+?),?\s+so\s+that\s+(?P<why>.+?)\.?$",
    re.IGNORECASE,
)
_FENCE_RE = re.compile(r"^\s*(```|~~~)")


@dataclass
class BMADStory:
    """One ``### Story N.M`` block before it becomes a Requirement."""

    id: str
    title: str
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def description(self) -> str:
        for paragraph in re.split(r"\n\s*\n", self.text):
            flat = " ".join(strip_inline(line) for line in paragraph.splitlines() if line.strip())
            match = _USER_STORY_RE.search(flat)
            if match:
                return (
                    f"As a {match.group('role').strip()}, I want {match.group('want').strip()}, "
                    f"so that {match.group('why').strip()}"
                )
        return first_paragraph(self.text)

    def criteria(self) -> list[tuple[str, str]]:
        lines = labelled_items(self.text, r"acceptance\s+criteria|^ac$")
        if lines is None:
            return []
        return criteria_from_lines(lines)

    def tasks(self) -> list[tuple[str, bool]]:
        criteria_lines = set(labelled_items(self.text, r"acceptance\s+criteria|^ac$") or [])
        remaining = "\n".join(line for line in self.lines if line not in criteria_lines)
        return [(strip_inline(i.text), bool(i.checked)) for i in list_items(remaining) if i.checked is not None]

    def to_requirement(self, source: str) -> Requirement:
        status = (metadata_value(self.text, "Status") or "unknown").lower()
        return Requirement(
            id=self.id,
            title=self.title,
            priority=priority_marker(self.text, Priority.P2),
            description=self.description(),
            acceptance_criteria=[text for text, _ in self.criteria()],
            tasks=[text for text, _ in self.tasks()],
            dependencies=declared_dependencies(self.text, self.id),
            fields=declared_fields(self.lines),
            status=status,
            source_path=source,
        )


@dataclass
class BMADEpic:
    number: int
    title: str
    lines: list[str] = field(default_factory=list)
    stories: list[BMADStory] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"E{self.number}"


def split_epics(content: str) -> list[BMADEpic]:
    """Group document lines into epics and stories."""
    epics: list[BMADEpic] = []
    epic: BMADEpic | None = None
    story: BMADStory | None = None
    in_fence = False

    for line in content.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
        heading = None if in_fence else _HEADING_RE.match(line)
        if heading:
            level = len(heading.group("hashes"))
            text = strip_inline(heading.group("text"))
            epic_match = _EPIC_RE.match(text)
            story_match = _STORY_RE.match(text)
            if epic_match and level <= 2:
                epic = BMADEpic(number=int(epic_match.group("num")), title=epic_match.group("title").strip())
                epics.append(epic)
                story = None
                continue
            if story_match and epic is not None and level >= 3:
                number = story_match.group("num")
                story_id = f"S{number}" if "." in number else f"S{epic.number}.{number}"
                story = BMADStory(id=story_id, title=story_match.group("title").strip())
                epic.stories.append(story)
                continue
            if level <= 2:
                # Any other top-level heading closes the current epic
                epic = None
                story = None
                continue
            if level == 3:
                story = None

        if story is not None:
            story.lines.append(line)
        elif epic is not None:
            epic.lines.append(line)
    return epics


def epic_status(requirements: list[Requirement], declared: str | None = None) -> str:
    if declared:
        return declared.lower()
    statuses = [r.status for r in requirements]
    if statuses and all(s in DONE_STATUSES for s in statuses):
        return "complete"
    if any(s not in NOT_STARTED_STATUSES for s in statuses):
        return "in-progress"
    return "active"


def story_phases(requirements: list[Requirement]) -> list[SpecPhase]:
    """One phase per non-empty priority bucket, P0 first."""
    phases: list[SpecPhase] = []
    for priority in Priority:
        bucket = [r.title for r in requirements if r.priority == priority]
        if bucket:
            phases.append(
                SpecPhase(index=len(phases), name=f"{priority.value} Stories", tasks=bucket)
            )
    return phases


def parse_epics(content: str, path: Path) -> list[ParsedSpec]:
    """Pure parse of epics text into one ParsedSpec per epic."""
    source = str(path)
    specs: list[ParsedSpec] = []
    seen: set[str] = set()
    for epic in split_epics(content):
        if epic.id in seen:
            logger.warning("Duplicate epic %s in %s; keeping the first", epic.id, source)
            continue
        seen.add(epic.id)

        requirements: list[Requirement] = []
        criteria: list[Criterion] = []
        story_ids: set[str] = set()
        for story in epic.stories:
            if story.id in story_ids:
                logger.warning("Duplicate story %s in %s; keeping the first", story.id, source)
                continue
            story_ids.add(story.id)
            requirements.append(story.to_requirement(source))
            for text, status in story.criteria():
                criteria.append(
                    Criterion(id=f"AC{len(criteria) + 1}", text=f"{story.id}: {text}", status=status)
                )

        epic_text = "\n".join(epic.lines)
        priority = Priority.parse(metadata_value(epic_text, "Priority"))
        if priority is None and requirements:
            priority = min((r.priority for r in requirements), key=lambda p: p.rank)
        elif priority is None:
            priority = priority_marker(epic_text, Priority.P2)

        specs.append(
            ParsedSpec(
                id=epic.id,
                title=epic.title,
                path=source,
                status=epic_status(requirements, metadata_value(epic_text, "Status")),
                priority=priority,
                format=SpecFormat.BMAD.value,
                functional_requirements=requirements,
                acceptance_criteria=criteria,
                phases=story_phases(requirements),
                metadata={"epic": epic.number, "description": first_paragraph(epic_text)},
            )
        )
    logger.debug("Parsed %d epics from %s", len(specs), source)
    return specs
