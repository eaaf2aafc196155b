"""
Scoring Engine
==============

Turns gaps and feature proposals into ScoredFeature records:

- category, inferred from keywords unless the proposal names one
- impact (1-10): neutral base, category bonus, keyword bonuses and a nudge
  from any explicit priority
- effort: the gap's own estimate, the proposal's hours, or a per-category
  fallback
- ROI: impact per realistic hour
- priority: explicit priorities win; everything else is bucketed by its
  ROI percentile rank within the batch
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Union

from ..config import ScoringConfig
from ..models import EffortEstimate, FeatureProposal, Gap, Priority, ScoredFeature

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "core-functionality"

# First match wins, so the more specific categories come first
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    (
        "security",
        ("security", "secure", "vulnerability", "authentication", "authorization",
         "permission", "encrypt", "encryption", "password", "csrf", "xss"),
    ),
    ("performance", ("performance", "latency", "speed", "cache", "caching", "optimize", "throughput")),
    ("testing", ("test", "tests", "testing", "coverage", "e2e")),
    ("documentation", ("documentation", "docs", "readme", "guide", "tutorial")),
    ("integrations", ("integration", "integrations", "webhook", "third-party", "plugin", "sync")),
    ("user-experience", ("ux", "ui", "user experience", "usability", "accessibility", "dashboard", "onboarding")),
    ("developer-experience", ("developer", "cli", "sdk", "debugging", "tooling", "logging")),
]

# (phrases, bonus): each group counts once
IMPACT_KEYWORDS: list[tuple[tuple[str, ...], int]] = [
    (("security", "vulnerability"), 3),
    (("data loss", "corruption"), 3),
    (("crash", "bug", "error"), 2),
    (("performance",), 2),
    (("automation", "automatic"), 2),
]

PRIORITY_IMPACT_BONUS: dict[Priority, int] = {
    Priority.P0: 2,
    Priority.P1: 1,
    Priority.P2: 0,
    Priority.P3: -1,
}

ScorableItem = Union[Gap, FeatureProposal]


def _contains(text: str, phrase: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])", text) is not None


def infer_category(text: str) -> str:
    """Category for a title/description pair, core-functionality by default."""
    lower = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(_contains(lower, k) for k in keywords):
            return category
    return DEFAULT_CATEGORY


def percentile_ranks(values: list[float]) -> list[float]:
    """Share of values less than or equal to each value (1.0 for the maximum)."""
    count = len(values)
    if not count:
        return []
    return [sum(1 for other in values if other <= value) / count for value in values]


class ScoringEngine:
    """
    Scores gaps and proposals on one shared scale.

    Example:
        scored = ScoringEngine().score(gaps + proposals)
    """

    def __init__(self, config: ScoringConfig | None = None):
        self.config = config or ScoringConfig()

    def score(self, items: Iterable[ScorableItem]) -> list[ScoredFeature]:
        scored: list[ScoredFeature] = []
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                logger.warning("Skipping duplicate roadmap item id %s", item.id)
                continue
            seen.add(item.id)
            if isinstance(item, Gap):
                scored.append(self._score_gap(item))
            else:
                scored.append(self._score_proposal(item))

        self._assign_priorities(scored)
        scored.sort(key=score_sort_key)
        logger.info(
            "Scored %d items (%d with computed priority)",
            len(scored),
            sum(1 for s in scored if s.priority_source == "computed"),
        )
        return scored

    def impact(self, text: str, category: str, priority: Optional[Priority] = None) -> int:
        lower = text.lower()
        score = 5 + self.config.category_impact.get(category, 0)
        for phrases, bonus in IMPACT_KEYWORDS:
            if any(_contains(lower, p) for p in phrases):
                score += bonus
        if priority is not None:
            score += PRIORITY_IMPACT_BONUS[priority]
        return max(1, min(10, score))

    def roi(self, impact: int, effort: EffortEstimate) -> float:
        hours = max(float(effort.realistic or effort.hours), self.config.min_effort_hours)
        return round(impact / hours, 3)

    def category_effort(self, category: str) -> EffortEstimate:
        hours = self.config.effort_by_category.get(
            category, self.config.effort_by_category.get(DEFAULT_CATEGORY, 16)
        )
        return EffortEstimate.create(hours, "low", method="category")

    def _score_gap(self, gap: Gap) -> ScoredFeature:
        text = f"{gap.title} {gap.description}"
        category = infer_category(text)
        impact = self.impact(text, category, gap.priority)
        return ScoredFeature(
            id=gap.id,
            title=gap.title,
            description=gap.impact or gap.description,
            kind="gap",
            category=category,
            impact=impact,
            effort=gap.effort,
            roi=self.roi(impact, gap.effort),
            priority=gap.priority,
            priority_source="explicit",
            dependencies=list(gap.dependencies),
            tags=["gap", gap.status, gap.spec_id],
            spec_id=gap.spec_id,
            requirement_id=gap.requirement_id,
            confidence=gap.confidence,
        )

    def _score_proposal(self, proposal: FeatureProposal) -> ScoredFeature:
        text = f"{proposal.title} {proposal.description}"
        category = proposal.category or infer_category(text)
        impact = self.impact(text, category, proposal.priority)
        if proposal.effort_hours is not None:
            effort = EffortEstimate.create(float(proposal.effort_hours), "medium", method="provided")
        else:
            effort = self.category_effort(category)

        tags = ["feature", category]
        tags.extend(t for t in proposal.tags if t not in tags)
        return ScoredFeature(
            id=proposal.id,
            title=proposal.title,
            description=proposal.description,
            kind="feature",
            category=category,
            impact=impact,
            effort=effort,
            roi=self.roi(impact, effort),
            # Placeholder until _assign_priorities runs
            priority=proposal.priority or Priority.P3,
            priority_source="explicit" if proposal.priority else "computed",
            dependencies=list(proposal.dependencies),
            tags=tags,
        )

    def _assign_priorities(self, scored: list[ScoredFeature]) -> None:
        ranks = percentile_ranks([s.roi for s in scored])
        for item, rank in zip(scored, ranks):
            if item.priority_source == "computed":
                item.priority = self.priority_for(rank, item.impact)

    def priority_for(self, percentile: float, impact: int) -> Priority:
        cutoffs = self.config.roi_percentile_cutoffs
        if percentile >= cutoffs.get("P0", 0.9):
            return Priority.P0 if impact >= self.config.p0_min_impact else Priority.P1
        if percentile >= cutoffs.get("P1", 0.6):
            return Priority.P1
        if percentile >= cutoffs.get("P2", 0.3):
            return Priority.P2
        return Priority.P3


def score_sort_key(item: ScoredFeature) -> tuple:
    return (item.priority.rank, -item.roi, item.id)
