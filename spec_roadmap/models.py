"""
Data models for specification reconciliation and roadmap synthesis.

Source facts and gaps are frozen: they are derived fresh on every run and
never mutated afterwards. Everything round-trips through to_dict()/from_dict()
so the JSON export can be loaded back into equal objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class Priority(str, Enum):
    """Delivery priority buckets, P0 most urgent."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        return int(self.value[1])

    @classmethod
    def parse(cls, value: Any, default: Optional[Priority] = None) -> Optional[Priority]:
        """
        Parse a priority marker.

        Accepts P0-P3 as well as the MoSCoW and critical/high/medium/low
        vocabularies used by planning documents.
        """
        if isinstance(value, Priority):
            return value
        if value is None:
            return default
        text = str(value).strip().lower().replace("_", "-")
        if not text:
            return default
        if len(text) >= 2 and text[0] == "p" and text[1] in "0123":
            return cls(f"P{text[1]}")
        for alias, priority in PRIORITY_ALIASES.items():
            if text.startswith(alias):
                return priority
        return default


PRIORITY_ALIASES: dict[str, Priority] = {
    "critical": Priority.P0,
    "must-have": Priority.P0,
    "must have": Priority.P0,
    "high": Priority.P1,
    "should-have": Priority.P1,
    "should have": Priority.P1,
    "medium": Priority.P2,
    "could-have": Priority.P2,
    "could have": Priority.P2,
    "low": Priority.P3,
    "won't-have": Priority.P3,
    "wont-have": Priority.P3,
    "won't have": Priority.P3,
}


class SpecFormat(str, Enum):
    """Which specification convention(s) a project uses."""

    SPECKIT = "speckit"
    BMAD = "bmad"
    BOTH = "both"
    UNKNOWN = "unknown"


# =============================================================================
# Source facts
# =============================================================================


@dataclass(frozen=True)
class Parameter:
    name: str
    type_hint: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type_hint": self.type_hint,
            "optional": self.optional,
            "default": self.default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Parameter:
        return cls(
            name=data["name"],
            type_hint=data.get("type_hint"),
            optional=data.get("optional", False),
            default=data.get("default"),
        )


@dataclass(frozen=True)
class FunctionSignature:
    """A function or method found in a source file."""

    name: str
    params: tuple[Parameter, ...] = ()
    return_type: Optional[str] = None
    is_async: bool = False
    is_exported: bool = False
    is_stub: bool = False
    stub_reason: Optional[str] = None
    doc_comment: Optional[str] = None
    file_path: str = ""
    line: int = 0
    class_name: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        if self.class_name:
            return f"{self.class_name}.{self.name}"
        return self.name

    @property
    def param_names(self) -> list[str]:
        return [p.name for p in self.params]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "params": [p.to_dict() for p in self.params],
            "return_type": self.return_type,
            "is_async": self.is_async,
            "is_exported": self.is_exported,
            "is_stub": self.is_stub,
            "stub_reason": self.stub_reason,
            "doc_comment": self.doc_comment,
            "file_path": self.file_path,
            "line": self.line,
            "class_name": self.class_name,
        }


@dataclass(frozen=True)
class ClassFact:
    name: str
    members: tuple[str, ...] = ()
    base_types: tuple[str, ...] = ()
    is_exported: bool = False
    file_path: str = ""
    line: int = 0
    methods: tuple[FunctionSignature, ...] = ()

    @property
    def is_stub(self) -> bool:
        """A class whose every method is a stub (and has at least one)."""
        return bool(self.methods) and all(m.is_stub for m in self.methods)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "members": list(self.members),
            "base_types": list(self.base_types),
            "is_exported": self.is_exported,
            "file_path": self.file_path,
            "line": self.line,
            "methods": [m.to_dict() for m in self.methods],
        }


@dataclass(frozen=True)
class ExportFact:
    symbol_name: str
    kind: str  # function | class | variable | default | reexport
    file_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"symbol_name": self.symbol_name, "kind": self.kind, "file_path": self.file_path}


@dataclass(frozen=True)
class RouteFact:
    """An HTTP route registration (decorator or router call)."""

    method: str
    path: str
    handler: Optional[str] = None
    file_path: str = ""
    line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "handler": self.handler,
            "file_path": self.file_path,
            "line": self.line,
        }


@dataclass(frozen=True)
class FileFacts:
    """Everything extracted from one source file."""

    file_path: str
    language: str
    functions: tuple[FunctionSignature, ...] = ()
    classes: tuple[ClassFact, ...] = ()
    exports: tuple[ExportFact, ...] = ()
    imports: tuple[str, ...] = ()
    routes: tuple[RouteFact, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def all_functions(self) -> list[FunctionSignature]:
        """Top-level functions followed by class methods."""
        result = list(self.functions)
        for cls in self.classes:
            result.extend(cls.methods)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "language": self.language,
            "functions": [f.to_dict() for f in self.functions],
            "classes": [c.to_dict() for c in self.classes],
            "exports": [e.to_dict() for e in self.exports],
            "imports": list(self.imports),
            "routes": [r.to_dict() for r in self.routes],
            "errors": list(self.errors),
        }


# =============================================================================
# Canonical specification model
# =============================================================================


@dataclass
class Criterion:
    id: str
    text: str
    status: str = "unknown"  # met | partial | unmet | unknown

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "status": self.status}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Criterion:
        return cls(id=data["id"], text=data["text"], status=data.get("status", "unknown"))


@dataclass
class Requirement:
    id: str
    title: str
    priority: Priority = Priority.P2
    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    tasks: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    status: str = "unknown"
    source_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "priority": self.priority.value,
            "description": self.description,
            "acceptance_criteria": list(self.acceptance_criteria),
            "tasks": list(self.tasks),
            "dependencies": list(self.dependencies),
            "fields": list(self.fields),
            "status": self.status,
            "source_path": self.source_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Requirement:
        return cls(
            id=data["id"],
            title=data["title"],
            priority=Priority(data.get("priority", "P2")),
            description=data.get("description", ""),
            acceptance_criteria=list(data.get("acceptance_criteria", [])),
            tasks=list(data.get("tasks", [])),
            dependencies=list(data.get("dependencies", [])),
            fields=list(data.get("fields", [])),
            status=data.get("status", "unknown"),
            source_path=data.get("source_path", ""),
        )


@dataclass
class SpecPhase:
    index: int
    name: str
    tasks: list[str] = field(default_factory=list)
    status: str = "Not Started"  # Not Started | In Progress | Complete
    effort: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "tasks": list(self.tasks),
            "status": self.status,
            "effort": self.effort,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpecPhase:
        return cls(
            index=data["index"],
            name=data["name"],
            tasks=list(data.get("tasks", [])),
            status=data.get("status", "Not Started"),
            effort=data.get("effort"),
        )


@dataclass
class ParsedSpec:
    """Canonical specification unit produced by either parser."""

    id: str
    title: str
    path: str
    status: str = "unknown"
    priority: Priority = Priority.P2
    format: str = SpecFormat.UNKNOWN.value
    functional_requirements: list[Requirement] = field(default_factory=list)
    non_functional_requirements: list[Requirement] = field(default_factory=list)
    acceptance_criteria: list[Criterion] = field(default_factory=list)
    success_criteria: list[str] = field(default_factory=list)
    phases: list[SpecPhase] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def requirements(self) -> list[Requirement]:
        return self.functional_requirements + self.non_functional_requirements

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "path": self.path,
            "status": self.status,
            "priority": self.priority.value,
            "format": self.format,
            "functional_requirements": [r.to_dict() for r in self.functional_requirements],
            "non_functional_requirements": [
                r.to_dict() for r in self.non_functional_requirements
            ],
            "acceptance_criteria": [c.to_dict() for c in self.acceptance_criteria],
            "success_criteria": list(self.success_criteria),
            "phases": [p.to_dict() for p in self.phases],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedSpec:
        return cls(
            id=data["id"],
            title=data["title"],
            path=data.get("path", ""),
            status=data.get("status", "unknown"),
            priority=Priority(data.get("priority", "P2")),
            format=data.get("format", SpecFormat.UNKNOWN.value),
            functional_requirements=[
                Requirement.from_dict(r) for r in data.get("functional_requirements", [])
            ],
            non_functional_requirements=[
                Requirement.from_dict(r)
                for r in data.get("non_functional_requirements", [])
            ],
            acceptance_criteria=[
                Criterion.from_dict(c) for c in data.get("acceptance_criteria", [])
            ],
            success_criteria=list(data.get("success_criteria", [])),
            phases=[SpecPhase.from_dict(p) for p in data.get("phases", [])],
            metadata=dict(data.get("metadata", {})),
        )


# =============================================================================
# Gap analysis
# =============================================================================


@dataclass(frozen=True)
class Evidence:
    type: str
    description: str
    weight: float = 0.0
    location: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "weight": self.weight,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Evidence:
        return cls(
            type=data["type"],
            description=data["description"],
            weight=data.get("weight", 0.0),
            location=data.get("location"),
        )


@dataclass(frozen=True)
class EffortEstimate:
    """Effort in hours with a three-point range."""

    hours: float
    confidence: str = "medium"  # low | medium | high
    optimistic: float = 0
    realistic: float = 0
    pessimistic: float = 0
    method: str = "heuristic"

    @classmethod
    def create(cls, hours: float, confidence: str = "medium", method: str = "heuristic") -> EffortEstimate:
        return cls(
            hours=hours,
            confidence=confidence,
            optimistic=round(hours * 0.7),
            realistic=hours,
            pessimistic=round(hours * 1.5),
            method=method,
        )

    @property
    def display(self) -> str:
        return f"{_fmt_hours(self.hours)}h ({_fmt_hours(self.optimistic)}-{_fmt_hours(self.pessimistic)}h)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hours": self.hours,
            "confidence": self.confidence,
            "optimistic": self.optimistic,
            "realistic": self.realistic,
            "pessimistic": self.pessimistic,
            "method": self.method,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EffortEstimate:
        return cls(
            hours=data["hours"],
            confidence=data.get("confidence", "medium"),
            optimistic=data.get("optimistic", 0),
            realistic=data.get("realistic", data["hours"]),
            pessimistic=data.get("pessimistic", 0),
            method=data.get("method", "heuristic"),
        )


def _fmt_hours(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


@dataclass(frozen=True)
class Gap:
    """A discrepancy between one requirement and the source tree."""

    id: str
    spec_id: str
    requirement_id: str
    title: str
    description: str
    priority: Priority
    confidence: int
    status: str  # missing | stub | partial
    effort: EffortEstimate
    evidence: tuple[Evidence, ...] = ()
    impact: str = ""
    recommendation: str = ""
    expected_locations: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    file_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "spec_id": self.spec_id,
            "requirement_id": self.requirement_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "status": self.status,
            "effort": self.effort.to_dict(),
            "evidence": [e.to_dict() for e in self.evidence],
            "impact": self.impact,
            "recommendation": self.recommendation,
            "expected_locations": list(self.expected_locations),
            "dependencies": list(self.dependencies),
            "file_path": self.file_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Gap:
        return cls(
            id=data["id"],
            spec_id=data["spec_id"],
            requirement_id=data["requirement_id"],
            title=data["title"],
            description=data.get("description", ""),
            priority=Priority(data["priority"]),
            confidence=data["confidence"],
            status=data["status"],
            effort=EffortEstimate.from_dict(data["effort"]),
            evidence=tuple(Evidence.from_dict(e) for e in data.get("evidence", [])),
            impact=data.get("impact", ""),
            recommendation=data.get("recommendation", ""),
            expected_locations=tuple(data.get("expected_locations", [])),
            dependencies=tuple(data.get("dependencies", [])),
            file_path=data.get("file_path", ""),
        )


# =============================================================================
# Feature completeness
# =============================================================================


@dataclass(frozen=True)
class FeatureClaim:
    """An advertised capability pulled from documentation."""

    text: str
    source_file: str = ""
    line: int = 0
    terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class FeatureFinding:
    advertised_feature: str
    accuracy_score: int
    reality: str
    status: str  # accurate | misleading | false
    recommendation: Optional[str] = None
    source_file: str = ""
    line: int = 0
    evidence_found: tuple[str, ...] = ()
    evidence_missing: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "advertised_feature": self.advertised_feature,
            "accuracy_score": self.accuracy_score,
            "reality": self.reality,
            "status": self.status,
            "recommendation": self.recommendation,
            "source_file": self.source_file,
            "line": self.line,
            "evidence_found": list(self.evidence_found),
            "evidence_missing": list(self.evidence_missing),
        }


# =============================================================================
# Scoring and roadmap
# =============================================================================


@dataclass
class FeatureProposal:
    """A candidate feature supplied from outside the gap analysis."""

    id: str
    title: str
    description: str = ""
    category: Optional[str] = None
    priority: Optional[Priority] = None
    effort_hours: Optional[float] = None
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureProposal:
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            category=data.get("category"),
            priority=Priority.parse(data.get("priority")),
            effort_hours=data.get("effort_hours"),
            dependencies=[str(d) for d in data.get("dependencies", [])],
            tags=list(data.get("tags", [])),
        )


@dataclass
class ScoredFeature:
    """A gap or proposal annotated with impact, effort, ROI and priority."""

    id: str
    title: str
    description: str
    kind: str  # gap | feature
    category: str
    impact: int
    effort: EffortEstimate
    roi: float
    priority: Priority
    priority_source: str = "computed"  # explicit | computed
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    spec_id: Optional[str] = None
    requirement_id: Optional[str] = None
    confidence: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "kind": self.kind,
            "category": self.category,
            "impact": self.impact,
            "effort": self.effort.to_dict(),
            "roi": self.roi,
            "priority": self.priority.value,
            "priority_source": self.priority_source,
            "dependencies": list(self.dependencies),
            "tags": list(self.tags),
            "spec_id": self.spec_id,
            "requirement_id": self.requirement_id,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoredFeature:
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            kind=data["kind"],
            category=data["category"],
            impact=data["impact"],
            effort=EffortEstimate.from_dict(data["effort"]),
            roi=data["roi"],
            priority=Priority(data["priority"]),
            priority_source=data.get("priority_source", "computed"),
            dependencies=list(data.get("dependencies", [])),
            tags=list(data.get("tags", [])),
            spec_id=data.get("spec_id"),
            requirement_id=data.get("requirement_id"),
            confidence=data.get("confidence"),
        )


@dataclass
class RoadmapPhase:
    index: int
    name: str
    items: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    dependencies: list[int] = field(default_factory=list)
    total_hours: float = 0
    status: str = "Not Started"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "items": list(self.items),
            "risks": list(self.risks),
            "dependencies": list(self.dependencies),
            "total_hours": self.total_hours,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoadmapPhase:
        return cls(
            index=data["index"],
            name=data["name"],
            items=list(data.get("items", [])),
            risks=list(data.get("risks", [])),
            dependencies=list(data.get("dependencies", [])),
            total_hours=data.get("total_hours", 0),
            status=data.get("status", "Not Started"),
        )


@dataclass
class TimelineEstimate:
    developers: int
    weeks: int
    total_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {"developers": self.developers, "weeks": self.weeks, "total_hours": self.total_hours}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelineEstimate:
        return cls(
            developers=data["developers"],
            weeks=data["weeks"],
            total_hours=data["total_hours"],
        )


@dataclass
class RoadmapTimeline:
    one_dev: TimelineEstimate
    two_devs: TimelineEstimate
    three_devs: TimelineEstimate

    def to_dict(self) -> dict[str, Any]:
        return {
            "one_dev": self.one_dev.to_dict(),
            "two_devs": self.two_devs.to_dict(),
            "three_devs": self.three_devs.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoadmapTimeline:
        return cls(
            one_dev=TimelineEstimate.from_dict(data["one_dev"]),
            two_devs=TimelineEstimate.from_dict(data["two_devs"]),
            three_devs=TimelineEstimate.from_dict(data["three_devs"]),
        )


@dataclass
class RoadmapSummary:
    by_priority: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    total_items: int = 0
    total_hours: float = 0
    next_steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "by_priority": dict(self.by_priority),
            "by_category": dict(self.by_category),
            "total_items": self.total_items,
            "total_hours": self.total_hours,
            "next_steps": list(self.next_steps),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoadmapSummary:
        return cls(
            by_priority=dict(data.get("by_priority", {})),
            by_category=dict(data.get("by_category", {})),
            total_items=data.get("total_items", 0),
            total_hours=data.get("total_hours", 0),
            next_steps=list(data.get("next_steps", [])),
        )


@dataclass
class DependencyReport:
    """Dependency problems found while ordering the roadmap."""

    missing_ids: list[str] = field(default_factory=list)
    circular_paths: list[list[str]] = field(default_factory=list)
    broken_cycles: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.missing_ids or self.circular_paths)

    def to_dict(self) -> dict[str, Any]:
        return {
            "missing_ids": list(self.missing_ids),
            "circular_paths": [list(p) for p in self.circular_paths],
            "broken_cycles": list(self.broken_cycles),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DependencyReport:
        return cls(
            missing_ids=list(data.get("missing_ids", [])),
            circular_paths=[list(p) for p in data.get("circular_paths", [])],
            broken_cycles=list(data.get("broken_cycles", [])),
        )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Roadmap:
    """Terminal artifact of a run. generated_at is ignored by equality."""

    project_name: str
    phases: list[RoadmapPhase]
    all_items: list[ScoredFeature]
    summary: RoadmapSummary
    timeline: RoadmapTimeline
    spec_format: str = SpecFormat.UNKNOWN.value
    risks: list[str] = field(default_factory=list)
    validation: DependencyReport = field(default_factory=DependencyReport)
    generated_at: str = field(default_factory=_utc_now, compare=False)

    def get_item(self, item_id: str) -> Optional[ScoredFeature]:
        for item in self.all_items:
            if item.id == item_id:
                return item
        return None

    def phase_of(self, item_id: str) -> Optional[int]:
        for phase in self.phases:
            if item_id in phase.items:
                return phase.index
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "spec_format": self.spec_format,
            "generated_at": self.generated_at,
            "phases": [p.to_dict() for p in self.phases],
            "all_items": [i.to_dict() for i in self.all_items],
            "summary": self.summary.to_dict(),
            "timeline": self.timeline.to_dict(),
            "risks": list(self.risks),
            "validation": self.validation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Roadmap:
        return cls(
            project_name=data["project_name"],
            spec_format=data.get("spec_format", SpecFormat.UNKNOWN.value),
            generated_at=data.get("generated_at") or _utc_now(),
            phases=[RoadmapPhase.from_dict(p) for p in data.get("phases", [])],
            all_items=[ScoredFeature.from_dict(i) for i in data.get("all_items", [])],
            summary=RoadmapSummary.from_dict(data.get("summary", {})),
            timeline=RoadmapTimeline.from_dict(data["timeline"]),
            risks=list(data.get("risks", [])),
            validation=DependencyReport.from_dict(data.get("validation", {})),
        )
