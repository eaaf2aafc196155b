"""
Dependency validators for roadmap items.
"""

from dataclasses import dataclass

from ..models import DependencyReport, ScoredFeature


@dataclass
class ValidationResult:
    """Result of dependency validation."""

    has_missing: bool
    has_circular: bool
    missing_ids: list[str]
    circular_paths: list[list[str]]
    reverse_deps_map: dict[str, list[str]]

    def to_report(self) -> DependencyReport:
        return DependencyReport(
            missing_ids=list(self.missing_ids),
            circular_paths=[list(p) for p in self.circular_paths],
        )


def normalize_cycle(cycle: list[str]) -> str:
    """Rotate a closed cycle to start from its smallest id, for deduplication."""
    # The last element repeats the first
    open_cycle = cycle[:-1]
    if not open_cycle:
        return ""
    start = open_cycle.index(min(open_cycle))
    return ",".join(open_cycle[start:] + open_cycle[:start])


class DependencyValidator:
    """Validates roadmap item dependencies."""

    def validate_all(self, items: list[ScoredFeature]) -> ValidationResult:
        """
        Validates all dependencies in the roadmap.

        Args:
            items: Scored roadmap items

        Returns:
            ValidationResult with validation metadata
        """
        missing_ids = self._find_missing_deps(items)
        circular_paths = self._detect_circular_deps(items)
        reverse_deps_map = self._calculate_reverse_deps(items)

        return ValidationResult(
            has_missing=len(missing_ids) > 0,
            has_circular=len(circular_paths) > 0,
            missing_ids=missing_ids,
            circular_paths=circular_paths,
            reverse_deps_map=reverse_deps_map,
        )

    def _find_missing_deps(self, items: list[ScoredFeature]) -> list[str]:
        """Find dependencies that reference items not on the roadmap."""
        valid_ids = {i.id for i in items}
        missing = set()

        for item in items:
            for dep_id in item.dependencies:
                if dep_id not in valid_ids:
                    missing.add(dep_id)

        return sorted(missing)

    def _detect_circular_deps(self, items: list[ScoredFeature]) -> list[list[str]]:
        """Detect circular dependencies using DFS, in id order."""
        graph = {i.id: list(i.dependencies) for i in items}
        circular_paths: list[list[str]] = []
        seen_cycles: set[str] = set()
        finished: set[str] = set()

        def dfs(node: str, path: list[str]) -> None:
            if node in path:
                cycle = path[path.index(node):] + [node]
                normalized = normalize_cycle(cycle)
                if normalized not in seen_cycles:
                    seen_cycles.add(normalized)
                    circular_paths.append(cycle)
                return
            if node in finished:
                return

            path.append(node)
            for neighbor in graph.get(node, []):
                if neighbor in graph:  # Only check existing nodes
                    dfs(neighbor, path)
            path.pop()
            finished.add(node)

        for item_id in sorted(graph):
            if item_id not in finished:
                dfs(item_id, [])

        return circular_paths

    def _calculate_reverse_deps(self, items: list[ScoredFeature]) -> dict[str, list[str]]:
        """Calculate which items depend on each item."""
        reverse_deps: dict[str, list[str]] = {i.id: [] for i in items}

        for item in items:
            for dep_id in item.dependencies:
                reverse_deps.setdefault(dep_id, []).append(item.id)

        return reverse_deps
