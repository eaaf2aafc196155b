"""
BMAD Integration
================

Parses BMAD-METHOD planning artifacts (PRD, epics and stories, brownfield
architecture, sprint story files) into the canonical specification model.
"""

from .architecture import parse_architecture
from .epics import parse_epics
from .parser import BMADParser
from .prd import parse_prd, prd_status
from .sprints import apply_sprint_artifacts

__all__ = [
    "BMADParser",
    "apply_sprint_artifacts",
    "parse_architecture",
    "parse_epics",
    "parse_prd",
    "prd_status",
]
