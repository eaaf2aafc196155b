"""
BMAD Parser
===========

Parses the flat BMAD planning documents located by the format detector:

- ``prd.md``          -> one spec (id ``PRD``)
- ``epics.md``        -> one spec per epic (``E1``, ``E2``, ...)
- ``architecture.md`` -> ``ARCH-API`` / ``ARCH-DATA`` (brownfield only)
- sprint artifacts    -> story status updates
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from ...core.exceptions import SpecParsingError
from ...detection import FormatPaths
from ...models import ParsedSpec
from .architecture import parse_architecture
from .epics import parse_epics
from .prd import parse_prd
from .sprints import apply_sprint_artifacts

logger = logging.getLogger(__name__)

BROWNFIELD = "brownfield"


class BMADParser:
    """
    Parses BMAD planning documents into ParsedSpec objects.

    Example:
        detection = detect_format(project_root)
        specs = BMADParser().parse(detection.paths, as_is=True)
    """

    def parse(
        self,
        paths: FormatPaths,
        as_is: bool = False,
        errors: Optional[list[SpecParsingError]] = None,
    ) -> list[ParsedSpec]:
        """
        Parse every located BMAD document.

        Args:
            paths: Document locations from the format detector
            as_is: Also parse architecture.md (brownfield documentation)
            errors: When given, unreadable documents are logged and collected
                here instead of raised

        Raises:
            SpecParsingError: If a document cannot be read and errors is None
        """
        specs: list[ParsedSpec] = []

        if paths.prd:
            prd = self._run(self.parse_prd, paths.prd, errors)
            if prd:
                specs.extend(prd)
                if prd[0].metadata.get("project_type") == BROWNFIELD:
                    as_is = True

        if paths.epics:
            specs.extend(self._run(self.parse_epics, paths.epics, errors))

        if paths.architecture and as_is:
            specs.extend(self._run(self.parse_architecture, paths.architecture, errors))
        elif paths.architecture:
            logger.debug("Skipping architecture.md (greenfield project)")

        if paths.sprint_dir:
            specs = apply_sprint_artifacts(specs, paths.sprint_dir, errors)

        logger.info("Parsed %d BMAD specs", len(specs))
        return specs

    def parse_prd(self, path: Path) -> list[ParsedSpec]:
        return [parse_prd(_read(path), path)]

    def parse_epics(self, path: Path) -> list[ParsedSpec]:
        return parse_epics(_read(path), path)

    def parse_architecture(self, path: Path) -> list[ParsedSpec]:
        return parse_architecture(_read(path), path)

    def _run(
        self,
        parse: Callable[[Path], list[ParsedSpec]],
        path: Path,
        errors: Optional[list[SpecParsingError]],
    ) -> list[ParsedSpec]:
        try:
            return parse(path)
        except SpecParsingError as e:
            if errors is None:
                raise
            logger.warning("Skipping unreadable BMAD document %s: %s", path, e.message)
            errors.append(e)
            return []


def _read(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecParsingError(f"Cannot read BMAD document: {e}", file_path=str(path), cause=e) from e
