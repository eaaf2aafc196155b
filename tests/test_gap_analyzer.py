"""
Tests for analysis/gap_analyzer.py
==================================

Requirement classification, confidence, effort and dependency resolution.
"""

from pathlib import Path

import pytest

from conftest import SPECKIT_SPEC
from spec_roadmap.analysis import GapAnalyzer, estimate_effort
from spec_roadmap.analysis.gap_analyzer import has_test_file
from spec_roadmap.config import GapConfig
from spec_roadmap.integrations.speckit import SpecKitParser
from spec_roadmap.models import (
    FileFacts,
    FunctionSignature,
    Parameter,
    ParsedSpec,
    Priority,
    Requirement,
)

ACCOUNTS = FileFacts(
    file_path="src/accounts.py",
    language="python",
    functions=(
        FunctionSignature(
            name="create_user_account",
            params=(Parameter("email"), Parameter("password")),
            is_exported=True,
            file_path="src/accounts.py",
            line=1,
        ),
        FunctionSignature(
            name="reset_password",
            params=(Parameter("email"),),
            is_exported=True,
            is_stub=True,
            stub_reason="returns-placeholder-text",
            file_path="src/accounts.py",
            line=6,
        ),
    ),
)


def _spec(*requirements: Requirement, non_functional=()) -> ParsedSpec:
    return ParsedSpec(
        id="F001",
        title="User Accounts",
        path="spec.md",
        functional_requirements=list(requirements),
        non_functional_requirements=list(non_functional),
    )


@pytest.fixture
def accounts_spec() -> ParsedSpec:
    return SpecKitParser().parse_content(SPECKIT_SPEC, Path("specs/001-user-accounts/spec.md"))


class TestAnalyze:
    """Tests for GapAnalyzer.analyze over the accounts example."""

    def test_gaps_for_missing_and_stub(self, accounts_spec):
        """Test FR1 is missing, FR2 is satisfied and FR3 is a stub."""
        gaps = GapAnalyzer().analyze([accounts_spec], [ACCOUNTS])

        assert [g.id for g in gaps] == ["GAP-F001-FR1", "GAP-F001-FR3"]
        missing, stub = gaps
        assert (missing.status, missing.confidence, missing.priority) == ("missing", 85, Priority.P1)
        assert missing.file_path == ""
        assert missing.evidence[0].type == "function-not-found"
        assert (stub.status, stub.confidence) == ("stub", 80)
        assert [e.type for e in stub.evidence] == ["exact-function-match", "returns-placeholder-text"]
        assert stub.file_path == "src/accounts.py"
        assert stub.expected_locations[0] == "src/accounts.py"

    def test_dependencies_resolved_to_gap_ids(self, accounts_spec):
        gaps = GapAnalyzer().analyze([accounts_spec], [ACCOUNTS])
        assert gaps[1].dependencies == ("GAP-F001-FR1",)

    def test_no_gaps_when_everything_matches(self):
        spec = _spec(Requirement(id="FR1", title="Create user account"))
        assert GapAnalyzer().analyze([spec], [ACCOUNTS]) == []

    def test_missing_requirement_confidence(self):
        """Test a requirement with no matching symbol is a confident gap."""
        spec = _spec(Requirement(id="FR1", title="Export order history", priority=Priority.P1))

        (gap,) = GapAnalyzer().analyze([spec], [ACCOUNTS])

        assert gap.status == "missing"
        assert gap.confidence >= 80
        assert gap.impact == "Export order history is not implemented. This blocks User Accounts."
        assert gap.recommendation == "Implement Export order history according to specification."

    def test_empty_source_tree(self, accounts_spec):
        gaps = GapAnalyzer().analyze([accounts_spec], [])
        assert [g.status for g in gaps] == ["missing", "missing", "missing"]

    def test_sorted_by_priority_then_confidence(self, accounts_spec):
        gaps = GapAnalyzer().analyze([accounts_spec], [])
        assert [g.requirement_id for g in gaps] == ["FR2", "FR1", "FR3"]


class TestClassification:
    """Tests for partial matches and filtering."""

    def test_fuzzy_match_below_default_threshold(self):
        """Test a similar-name-only match scores 45 and is dropped by default."""
        facts = FileFacts(
            file_path="src/v.py",
            language="python",
            functions=(FunctionSignature(name="validate_emails", is_exported=True, file_path="src/v.py"),),
        )
        spec = _spec(Requirement(id="FR1", title="Validate email"))

        assert GapAnalyzer().analyze([spec], [facts]) == []
        (gap,) = GapAnalyzer(GapConfig(confidence_threshold=40)).analyze([spec], [facts])
        assert (gap.status, gap.confidence) == ("partial", 45)

    def test_missing_declared_fields(self):
        spec = _spec(Requirement(id="FR1", title="Create user account", fields=["email", "phone"]))

        (gap,) = GapAnalyzer().analyze([spec], [ACCOUNTS])

        assert gap.status == "partial"
        assert gap.confidence == 60
        assert "phone" in gap.evidence[1].description

    def test_stubs_can_be_excluded(self):
        spec = _spec(Requirement(id="FR1", title="Reset password"))
        assert GapAnalyzer(GapConfig(include_stubs=False)).analyze([spec], [ACCOUNTS]) == []

    def test_non_functional_opt_in(self):
        spec = _spec(non_functional=[Requirement(id="NFR1", title="Audit logging")])

        assert GapAnalyzer().analyze([spec], [ACCOUNTS]) == []
        gaps = GapAnalyzer(GapConfig(include_non_functional=True)).analyze([spec], [ACCOUNTS])
        assert [g.requirement_id for g in gaps] == ["NFR1"]


class TestTestEvidence:
    """Tests for test-file evidence on matched symbols."""

    def test_test_file_lowers_confidence(self):
        spec = _spec(Requirement(id="FR1", title="Reset password"))

        (gap,) = GapAnalyzer().analyze([spec], [ACCOUNTS], ["tests/test_accounts.py"])

        assert gap.evidence[-1].type == "test-file-exists"
        assert gap.confidence == 75

    def test_missing_test_file_raises_confidence(self):
        spec = _spec(Requirement(id="FR1", title="Reset password"))

        (gap,) = GapAnalyzer().analyze([spec], [ACCOUNTS], ["tests/test_orders.py"])

        assert gap.evidence[-1].type == "test-file-missing"
        assert gap.confidence == 85

    @pytest.mark.parametrize(
        "tests, expected",
        [
            (["tests/test_accounts.py"], "tests/test_accounts.py"),
            (["src/accounts_test.py"], "src/accounts_test.py"),
            (["src/accounts.spec.ts"], "src/accounts.spec.ts"),
            (["tests/test_orders.py"], None),
        ],
    )
    def test_has_test_file(self, tests, expected):
        assert has_test_file("src/accounts.py", tests) == expected


class TestDependencies:
    def test_satisfied_dependency_dropped_and_unknown_kept(self):
        spec = _spec(
            Requirement(id="FR1", title="Create user account"),
            Requirement(id="FR2", title="Export order history", dependencies=["FR1", "FR9"]),
        )

        (gap,) = GapAnalyzer().analyze([spec], [ACCOUNTS])

        assert gap.dependencies == ("GAP-F001-FR9",)

    def test_cross_spec_dependency(self):
        other = ParsedSpec(
            id="F002",
            title="Orders",
            path="orders.md",
            functional_requirements=[Requirement(id="FR7", title="Export order history")],
        )
        spec = _spec(Requirement(id="FR1", title="Print receipts", dependencies=["FR7"]))

        gaps = GapAnalyzer().analyze([spec, other], [ACCOUNTS])

        print_gap = next(g for g in gaps if g.requirement_id == "FR1")
        assert print_gap.dependencies == ("GAP-F002-FR7",)


class TestEstimateEffort:
    """Tests for estimate_effort."""

    def test_base_hours_and_range(self):
        effort = estimate_effort(Requirement(id="FR1", title="x"), "missing")

        assert effort.hours == 16
        assert effort.confidence == "low"
        assert (effort.optimistic, effort.realistic, effort.pessimistic) == (11, 16, 24)
        assert effort.method == "complexity"

    def test_criteria_scale_and_confidence(self):
        requirement = Requirement(id="FR1", title="x", acceptance_criteria=["a", "b", "c", "d"])
        effort = estimate_effort(requirement, "stub")
        assert effort.hours == 14
        assert effort.confidence == "high"

    def test_all_multipliers(self):
        requirement = Requirement(
            id="FR1",
            title="x",
            acceptance_criteria=list("abcdef"),
            tasks=["t"],
            dependencies=["FR2"],
        )
        assert estimate_effort(requirement, "missing").hours == 39

    def test_dependency_in_description(self):
        requirement = Requirement(id="FR1", title="x", description="This depends on FR2", acceptance_criteria=["a"])
        effort = estimate_effort(requirement, "partial")
        assert effort.hours == 10
        assert effort.confidence == "medium"
