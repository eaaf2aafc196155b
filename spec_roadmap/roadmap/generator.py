"""
Roadmap Generator
=================

Builds a phased delivery roadmap from gaps and feature proposals.

1. Score everything on one scale (ScoringEngine)
2. Order topologically, most valuable first among the ready items
3. Pack items into phases bounded by item count and team capacity,
   never ahead of their dependencies
4. Attach risks, a summary and team-size timelines
"""

from __future__ import annotations

import heapq
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from ..config import POSITIVE_KEYS, RoadmapConfig, ScoringConfig
from ..core.exceptions import ErrorContext, InvalidConfigError
from ..models import (
    FeatureProposal,
    Gap,
    Priority,
    Roadmap,
    RoadmapPhase,
    RoadmapSummary,
    RoadmapTimeline,
    ScoredFeature,
    SpecFormat,
    TimelineEstimate,
)
from .scoring import ScoringEngine, score_sort_key
from .validators import DependencyValidator

logger = logging.getLogger(__name__)

PHASE_NAMES: dict[Priority, str] = {
    Priority.P0: "Critical Fixes",
    Priority.P1: "Core Features",
    Priority.P2: "Enhancements",
    Priority.P3: "Polish",
}

HIGH_EFFORT_RISK = "High-effort items may take longer than estimated"
COMPLEX_DEPENDENCY_RISK = "Complex dependencies may cause delays"
COMPLEX_DEPENDENCY_COUNT = 2


@dataclass
class RoadmapContext:
    """Project facts and packing limits for one roadmap."""

    project_name: str
    team_size: int = 2
    max_phases: int = 4
    max_items_per_phase: int = 15
    weekly_capacity_hours: float = 35
    weeks_per_phase: int = 2
    spec_format: str = SpecFormat.UNKNOWN.value
    high_effort_hours: float = 40

    def __post_init__(self) -> None:
        for key in sorted(POSITIVE_KEYS["roadmap"]):
            value = getattr(self, key)
            if value <= 0:
                raise InvalidConfigError(
                    f"Roadmap setting '{key}' must be greater than zero, got {value}",
                    context=ErrorContext(operation="roadmap_context", extra={key: value}),
                )

    @classmethod
    def from_config(
        cls,
        project_name: str,
        config: RoadmapConfig | None = None,
        spec_format: str = SpecFormat.UNKNOWN.value,
    ) -> RoadmapContext:
        config = config or RoadmapConfig()
        return cls(
            project_name=project_name,
            team_size=config.team_size,
            max_phases=config.max_phases,
            max_items_per_phase=config.max_items_per_phase,
            weekly_capacity_hours=config.weekly_capacity_hours,
            weeks_per_phase=config.weeks_per_phase,
            spec_format=spec_format,
            high_effort_hours=config.high_effort_hours,
        )

    @property
    def phase_capacity_hours(self) -> float:
        return self.team_size * self.weekly_capacity_hours * self.weeks_per_phase


@dataclass
class _PhaseBin:
    items: list[ScoredFeature]
    hours: float = 0
    overflowed: bool = False


def _hours(item: ScoredFeature) -> float:
    return float(item.effort.realistic or item.effort.hours)


def order_items(items: list[ScoredFeature]) -> tuple[list[ScoredFeature], list[str]]:
    """
    Kahn's algorithm with a priority queue keyed by (priority, -roi, id).

    Dependencies on ids outside the batch are ignored. When only cycles
    remain, the best remaining item is released as if its dependencies were
    met; the ids released this way are returned alongside the order.
    """
    by_id = {item.id: item for item in items}
    pending: dict[str, set[str]] = {}
    dependents: dict[str, list[str]] = {item.id: [] for item in items}
    for item in items:
        deps = {d for d in item.dependencies if d in by_id and d != item.id}
        pending[item.id] = deps
        for dep in deps:
            dependents[dep].append(item.id)

    ready = [score_sort_key(item) for item in items if not pending[item.id]]
    heapq.heapify(ready)
    ordered: list[ScoredFeature] = []
    done: set[str] = set()
    broken: list[str] = []

    while len(ordered) < len(items):
        if not ready:
            remaining = [by_id[i] for i in pending if i not in done]
            released = min(remaining, key=score_sort_key)
            logger.warning(
                "Circular dependency among %d items; scheduling %s first",
                len(remaining),
                released.id,
            )
            broken.append(released.id)
            pending[released.id] = set()
            heapq.heappush(ready, score_sort_key(released))

        item_id = heapq.heappop(ready)[2]
        if item_id in done:
            continue
        done.add(item_id)
        ordered.append(by_id[item_id])
        for dependent in dependents[item_id]:
            waiting = pending[dependent]
            if item_id in waiting:
                waiting.discard(item_id)
                if not waiting and dependent not in done:
                    heapq.heappush(ready, score_sort_key(by_id[dependent]))

    return ordered, broken


class RoadmapGenerator:
    """
    Generates a Roadmap from gaps and feature proposals.

    Example:
        context = RoadmapContext(project_name="shop", team_size=3)
        roadmap = RoadmapGenerator().generate(gaps, proposals, context)
    """

    def __init__(self, scoring: ScoringConfig | None = None):
        self.engine = ScoringEngine(scoring)
        self.validator = DependencyValidator()

    def generate(
        self,
        gaps: Iterable[Gap],
        features: Iterable[Union[FeatureProposal, ScoredFeature]] = (),
        context: Optional[RoadmapContext] = None,
    ) -> Roadmap:
        context = context or RoadmapContext(project_name="project")
        to_score: list[Union[Gap, FeatureProposal]] = list(gaps)
        prescored: list[ScoredFeature] = []
        for feature in features:
            if isinstance(feature, ScoredFeature):
                prescored.append(feature)
            else:
                to_score.append(feature)

        items = self.engine.score(to_score)
        known = {item.id for item in items}
        for feature in prescored:
            if feature.id in known:
                logger.warning("Skipping duplicate roadmap item id %s", feature.id)
                continue
            known.add(feature.id)
            items.append(feature)
        items.sort(key=score_sort_key)

        validation = self.validator.validate_all(items).to_report()
        if validation.missing_ids:
            logger.warning("Ignoring unknown dependencies: %s", ", ".join(validation.missing_ids))

        ordered, broken = order_items(items)
        validation.broken_cycles = broken

        bins = self._pack(ordered, context)
        phases = self._build_phases(bins, context)
        all_items = [item for b in bins for item in b.items]

        risks: list[str] = []
        for phase in phases:
            for risk in phase.risks:
                if risk not in risks:
                    risks.append(risk)
        for item_id in broken:
            risks.append(f"Circular dependency broken by scheduling {item_id} first")

        summary = self._summary(all_items)
        roadmap = Roadmap(
            project_name=context.project_name,
            spec_format=context.spec_format,
            phases=phases,
            all_items=all_items,
            summary=summary,
            timeline=self.estimate_timeline(summary.total_hours, context.weekly_capacity_hours),
            risks=risks,
            validation=validation,
        )
        logger.info(
            "Generated roadmap with %d items in %d phases (%.0fh)",
            len(all_items),
            len(phases),
            summary.total_hours,
        )
        return roadmap

    def _pack(self, ordered: list[ScoredFeature], context: RoadmapContext) -> list[_PhaseBin]:
        """
        First-fit packing in dependency order.

        Each item goes to the first phase at or after its dependencies' phases
        with room left. An empty phase accepts any single item; items that fit
        nowhere land in the last phase, which is marked as over capacity.
        """
        max_phases = max(1, context.max_phases)
        capacity = context.phase_capacity_hours
        bins: list[_PhaseBin] = []
        placed: dict[str, int] = {}

        for item in ordered:
            earliest = max((placed[d] for d in item.dependencies if d in placed), default=0)
            hours = _hours(item)
            target = None
            for index in range(earliest, max_phases):
                while len(bins) <= index:
                    bins.append(_PhaseBin(items=[]))
                phase = bins[index]
                if not phase.items:
                    target = index
                    break
                if len(phase.items) < context.max_items_per_phase and phase.hours + hours <= capacity:
                    target = index
                    break
            if target is None:
                target = max_phases - 1
                if not bins[target].overflowed:
                    logger.warning("Roadmap exceeds %d phases; overflowing into the last phase", max_phases)
                bins[target].overflowed = True

            bins[target].items.append(item)
            bins[target].hours += hours
            placed[item.id] = target

        return bins

    def _build_phases(self, bins: list[_PhaseBin], context: RoadmapContext) -> list[RoadmapPhase]:
        phase_of = {item.id: index for index, b in enumerate(bins) for item in b.items}
        capacity = context.phase_capacity_hours
        phases = []
        for index, b in enumerate(bins):
            top = min(item.priority.rank for item in b.items)
            risks = []
            if any(_hours(item) > context.high_effort_hours for item in b.items):
                risks.append(HIGH_EFFORT_RISK)
            if any(len(item.dependencies) > COMPLEX_DEPENDENCY_COUNT for item in b.items):
                risks.append(COMPLEX_DEPENDENCY_RISK)
            if b.overflowed:
                risks.append(
                    f"Phase exceeds capacity: {b.hours:g}h planned for {capacity:g}h available"
                )
            depends_on = sorted(
                {
                    phase_of[dep] + 1
                    for item in b.items
                    for dep in item.dependencies
                    if dep in phase_of and phase_of[dep] != index
                }
            )
            phases.append(
                RoadmapPhase(
                    index=index + 1,
                    name=PHASE_NAMES[Priority(f"P{top}")],
                    items=[item.id for item in b.items],
                    risks=risks,
                    dependencies=depends_on,
                    total_hours=b.hours,
                )
            )
        return phases

    def _summary(self, items: list[ScoredFeature]) -> RoadmapSummary:
        by_priority = {p.value: 0 for p in Priority}
        by_category: dict[str, int] = {}
        for item in items:
            by_priority[item.priority.value] += 1
            by_category[item.category] = by_category.get(item.category, 0) + 1

        return RoadmapSummary(
            by_priority=by_priority,
            by_category=dict(sorted(by_category.items())),
            total_items=len(items),
            total_hours=sum(_hours(item) for item in items),
            next_steps=self.next_steps(by_priority),
        )

    @staticmethod
    def next_steps(by_priority: dict[str, int]) -> list[str]:
        steps = []
        if by_priority.get("P0"):
            steps.append(f"Address {by_priority['P0']} critical (P0) issues immediately")
        if by_priority.get("P1"):
            steps.append(f"Plan implementation of {by_priority['P1']} high-priority (P1) items")
        steps.append("Review and prioritize roadmap with team")
        steps.append("Set up project tracking in GitHub Issues or similar")
        steps.append("Begin Phase 1 implementation")
        return steps

    @staticmethod
    def estimate_timeline(total_hours: float, weekly_capacity_hours: float = 35) -> RoadmapTimeline:
        """Weeks for one, two and three developers at full weekly capacity."""
        if weekly_capacity_hours <= 0:
            raise InvalidConfigError(f"Weekly capacity must be greater than zero, got {weekly_capacity_hours}")

        def estimate(developers: int) -> TimelineEstimate:
            weeks = math.ceil(total_hours / (developers * weekly_capacity_hours)) if total_hours else 0
            return TimelineEstimate(developers=developers, weeks=weeks, total_hours=total_hours)

        return RoadmapTimeline(one_dev=estimate(1), two_devs=estimate(2), three_devs=estimate(3))
