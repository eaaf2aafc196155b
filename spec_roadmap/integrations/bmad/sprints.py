"""
Sprint Artifacts
================

Story files in ``implementation-artifacts/sprint-artifacts/`` are named
``<epic>-<story>-<slug>.md`` (e.g. ``1-2-password-reset.md``) and carry a
``Status:`` line. They update the matching ``S{epic}.{story}`` requirement
from the epics document; a story file with no counterpart becomes a
standalone spec.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ...core.exceptions import SpecParsingError
from ...markdown import first_heading, list_items, metadata_value, split_frontmatter, strip_inline
from ...models import ParsedSpec, Priority, Requirement, SpecFormat
from ..common import first_paragraph, priority_marker

logger = logging.getLogger(__name__)

_STORY_FILE_RE = re.compile(r"^(?P<epic>\d+)-(?P<story>\d+)(?:-(?P<slug>.+))?$")
_STORY_TITLE_RE = re.compile(r"^Story\s*\d+(?:\.\d+)?\s*[:.\-]\s*", re.IGNORECASE)


@dataclass
class StoryArtifact:
    story_id: str
    title: str
    status: str
    path: Path
    completed_tasks: list[str] = field(default_factory=list)
    open_tasks: list[str] = field(default_factory=list)
    priority: Priority = Priority.P2
    description: str = ""


def read_story_artifact(path: Path) -> StoryArtifact | None:
    """
    Parse one story file; None when the name is not a story file name.

    Raises:
        SpecParsingError: If the file cannot be read
    """
    match = _STORY_FILE_RE.match(path.stem)
    if not match:
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecParsingError(f"Cannot read story file: {e}", file_path=str(path), cause=e) from e

    frontmatter, body = split_frontmatter(content)
    status = metadata_value(body, "Status") or str(frontmatter.get("status") or "unknown")
    heading = first_heading(body, 1) or (match.group("slug") or path.stem).replace("-", " ")
    items = [i for i in list_items(body) if i.checked is not None]
    return StoryArtifact(
        story_id=f"S{int(match.group('epic'))}.{int(match.group('story'))}",
        title=_STORY_TITLE_RE.sub("", strip_inline(heading)).strip() or path.stem,
        status=status.strip().lower(),
        path=path,
        completed_tasks=[strip_inline(i.text) for i in items if i.checked],
        open_tasks=[strip_inline(i.text) for i in items if not i.checked],
        priority=priority_marker(body, Priority.P2),
        description=first_paragraph(body),
    )


def apply_sprint_artifacts(
    specs: list[ParsedSpec],
    sprint_dir: Path,
    errors: list[SpecParsingError] | None = None,
) -> list[ParsedSpec]:
    """
    Fold story-file statuses into the epic specs.

    Returns the specs list extended with standalone specs for story files
    that have no matching story. Unreadable files are logged and appended to
    ``errors`` when given, otherwise raised.
    """
    by_id: dict[str, Requirement] = {}
    for spec in specs:
        for requirement in spec.functional_requirements:
            by_id.setdefault(requirement.id, requirement)

    result = list(specs)
    for path in sorted(Path(sprint_dir).glob("*.md")):
        try:
            artifact = read_story_artifact(path)
        except SpecParsingError as e:
            if errors is None:
                raise
            logger.warning("Skipping story file %s: %s", path, e.message)
            errors.append(e)
            continue
        if artifact is None:
            continue

        requirement = by_id.get(artifact.story_id)
        if requirement is not None:
            requirement.status = artifact.status
            if not requirement.tasks:
                requirement.tasks = artifact.completed_tasks + artifact.open_tasks
            continue

        logger.debug("Story file %s has no matching story; adding it as a spec", path.name)
        standalone = Requirement(
            id=artifact.story_id,
            title=artifact.title,
            priority=artifact.priority,
            description=artifact.description,
            tasks=artifact.completed_tasks + artifact.open_tasks,
            status=artifact.status,
            source_path=str(path),
        )
        by_id[artifact.story_id] = standalone
        result.append(
            ParsedSpec(
                id=artifact.story_id,
                title=artifact.title,
                path=str(path),
                status=artifact.status,
                priority=artifact.priority,
                format=SpecFormat.BMAD.value,
                functional_requirements=[standalone],
            )
        )
    return result
