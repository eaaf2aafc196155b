"""
Tests for integrations/speckit/parser.py
========================================

Spec-kit feature folders into the canonical ParsedSpec model.
"""

from pathlib import Path
from textwrap import dedent

import pytest

from conftest import SPECKIT_SPEC, write_file
from spec_roadmap.core.exceptions import SpecParsingError
from spec_roadmap.integrations.speckit import SpecKitParser
from spec_roadmap.models import Priority

SPEC_PATH = Path(".specify/memory/specifications/001-user-accounts/spec.md")


@pytest.fixture
def parser() -> SpecKitParser:
    return SpecKitParser()


class TestHeadingRequirements:
    """Tests for ### FR sections."""

    def test_identity_and_metadata(self, parser):
        """Test id, title, status and priority from the header block."""
        spec = parser.parse_content(SPECKIT_SPEC, SPEC_PATH)

        assert spec.id == "F001"
        assert spec.title == "User Accounts"
        assert spec.status == "in-progress"
        assert spec.priority == Priority.P1
        assert spec.format == "speckit"

    def test_requirements(self, parser):
        """Test requirement titles, priorities, criteria and dependencies."""
        spec = parser.parse_content(SPECKIT_SPEC, SPEC_PATH)
        fr1, fr2, fr3 = spec.functional_requirements

        assert [r.id for r in spec.functional_requirements] == ["FR1", "FR2", "FR3"]
        assert fr1.title == "Validate email on signup"
        assert fr1.priority == Priority.P1
        assert fr1.description == "Email addresses are checked before an account is created."
        assert fr1.acceptance_criteria == ["rejects malformed addresses"]
        assert fr2.priority == Priority.P0
        assert fr2.acceptance_criteria == ["stores the email", "hashes the password"]
        assert fr3.dependencies == ["FR1"]
        assert fr3.description == "Users can request a reset link."
        assert spec.non_functional_requirements == []

    def test_non_functional_heading(self, parser):
        content = "# F002: Search\n\n### NFR1: Fast results\n\nPriority: P1\n"
        spec = parser.parse_content(content, Path("specs/002-search/spec.md"))
        assert [r.id for r in spec.non_functional_requirements] == ["NFR1"]
        assert spec.functional_requirements == []


class TestBulletRequirements:
    def test_bold_id_bullets(self, parser):
        """Test - **FR-001**: text bullets under a Requirements heading."""
        content = dedent(
            """\
            # Feature Specification: Checkout

            ## Functional Requirements

            - **FR-001**: System MUST accept card payments
            - **FR-002**: System MUST email a receipt. Depends on: FR-001
            - **NFR-001**: Payments settle within five seconds
            """
        )
        spec = parser.parse_content(content, Path("specs/003-checkout/spec.md"))

        assert [r.id for r in spec.functional_requirements] == ["FR-001", "FR-002"]
        assert spec.functional_requirements[1].dependencies == ["FR-001"]
        assert [r.id for r in spec.non_functional_requirements] == ["NFR-001"]
        assert spec.title == "Checkout"
        assert spec.id == "003-checkout"
        assert spec.priority == Priority.P2

    def test_duplicate_titles_dropped(self, parser):
        content = "# F004: Dupes\n\n### FR1: Login\n\n### FR2: Login\n"
        spec = parser.parse_content(content, Path("x/spec.md"))
        assert [r.id for r in spec.functional_requirements] == ["FR1"]


class TestSpecSections:
    """Tests for criteria, success criteria and phases."""

    def test_acceptance_scenarios(self, parser):
        """Test list items with status markers and Given/When/Then lines."""
        content = dedent(
            """\
            # F005: Login

            ## Acceptance Scenarios

            1. **Given** a user, **When** they log in, **Then** they see home
            - ✅ Login works
            """
        )
        spec = parser.parse_content(content, Path("x/spec.md"))

        assert [(c.id, c.status) for c in spec.acceptance_criteria] == [("AC1", "unknown"), ("AC2", "met")]
        assert spec.acceptance_criteria[0].text == "Given a user, When they log in, Then they see home"

    def test_success_criteria(self, parser):
        content = "# F006: Reports\n\n## Success Criteria\n\n- **SC-001**: Reports render in 2s\n- Fewer tickets\n"
        spec = parser.parse_content(content, Path("x/spec.md"))
        assert spec.success_criteria == ["Reports render in 2s", "Fewer tickets"]

    def test_phases_from_tasks_file(self, parser):
        """Test tasks.md phases win over phases in the spec."""
        tasks = "## Phase 1: Setup (2h)\n- [x] init repo\n- [ ] add ci\n\n## Phase 2: Build\n- [x] api\n"
        spec = parser.parse_content(SPECKIT_SPEC, SPEC_PATH, tasks)

        assert [(p.index, p.name, p.status, p.effort) for p in spec.phases] == [
            (1, "Setup", "In Progress", "2h"),
            (2, "Build", "Complete", None),
        ]
        assert spec.phases[0].tasks == ["init repo", "add ci"]


class TestRobustness:
    """Tests for malformed documents and file access."""

    def test_malformed_document_gives_empty_lists(self, parser):
        """Test prose without structure still yields a spec."""
        spec = parser.parse_content("just some prose\n", Path("notes/ideas.md"))

        assert spec.id == "ideas"
        assert spec.title == "Unknown"
        assert spec.status == "draft"
        assert spec.functional_requirements == []
        assert spec.acceptance_criteria == []
        assert spec.phases == []

    def test_frontmatter_identity(self, parser):
        content = "---\nid: F009\nstatus: complete\n---\n# Billing\n"
        spec = parser.parse_content(content, Path("x/spec.md"))
        assert spec.id == "F009"
        assert spec.status == "complete"
        assert spec.title == "Billing"

    def test_parse_file_reads_sibling_tasks(self, parser, tmp_path: Path) -> None:
        spec_path = write_file(tmp_path, "specs/001-a/spec.md", SPECKIT_SPEC)
        write_file(tmp_path, "specs/001-a/tasks.md", "## Phase 1: Setup\n- [ ] scaffold\n")

        spec = parser.parse_file(spec_path)

        assert spec.path == str(spec_path)
        assert [p.name for p in spec.phases] == ["Setup"]

    def test_unreadable_file(self, parser, tmp_path: Path) -> None:
        with pytest.raises(SpecParsingError) as exc_info:
            parser.parse_file(tmp_path / "missing" / "spec.md")
        assert exc_info.value.context.file_path.endswith("spec.md")
