"""
Tests for pipeline.py
=====================

End-to-end runs against small spec-kit and BMAD projects.
"""

import json
from pathlib import Path

import pytest

from conftest import SPECKIT_SPEC, write_file
from spec_roadmap.config import EngineConfig, GapConfig
from spec_roadmap.core.exceptions import (
    InvalidConfigError,
    NoSourceFilesError,
    NoSpecificationsError,
    ProjectNotFoundError,
)
from spec_roadmap.models import Priority, SpecFormat
from spec_roadmap.pipeline import ReconciliationPipeline, load_feature_proposals, run_pipeline


class TestSpecKitProject:
    """Tests for a spec-kit project with one missing and one stubbed requirement."""

    def test_gaps(self, speckit_project: Path) -> None:
        result = ReconciliationPipeline(speckit_project).run()
        gaps = {g.requirement_id: g for g in result.gaps}

        assert result.detection.format == SpecFormat.SPECKIT
        assert [s.id for s in result.specs] == ["F001"]
        assert set(gaps) == {"FR1", "FR3"}
        assert gaps["FR1"].status == "missing"
        assert gaps["FR1"].priority == Priority.P1
        assert gaps["FR1"].confidence >= 70
        assert gaps["FR3"].status == "stub"

    def test_roadmap_contains_every_gap(self, speckit_project: Path) -> None:
        result = ReconciliationPipeline(speckit_project, project_name="accounts").run()

        assert result.roadmap is not None
        assert result.roadmap.project_name == "accounts"
        assert result.roadmap.spec_format == "speckit"
        assert {i.id for i in result.scored} == {g.id for g in result.gaps}
        assert result.errors == []
        assert result.correlation_id

    def test_stub_scheduled_after_its_dependency(self, speckit_project: Path) -> None:
        roadmap = ReconciliationPipeline(speckit_project).run().roadmap
        assert roadmap.phase_of("GAP-F001-FR3") >= roadmap.phase_of("GAP-F001-FR1")

    def test_proposals_join_the_roadmap(self, speckit_project: Path) -> None:
        proposals = load_feature_proposals(
            write_file(speckit_project, "features.yaml", "- id: F-dark\n  title: Dark mode\n  effort_hours: 4\n")
        )

        result = ReconciliationPipeline(speckit_project, features=proposals).run()

        assert result.roadmap.get_item("F-dark") is not None
        assert len(result.scored) == len(result.gaps) + 1

    def test_config_file_is_read(self, speckit_project: Path) -> None:
        """Test the project's own config file raises the confidence threshold."""
        write_file(speckit_project, ".spec-roadmap.yaml", "gaps:\n  confidence_threshold: 100\n")
        assert ReconciliationPipeline(speckit_project).run().gaps == []

    def test_explicit_config_wins(self, speckit_project: Path) -> None:
        write_file(speckit_project, ".spec-roadmap.yaml", "gaps: [broken\n")
        config = EngineConfig(gaps=GapConfig(include_stubs=False))

        result = ReconciliationPipeline(speckit_project, config=config).run()

        assert [g.requirement_id for g in result.gaps] == ["FR1"]

    def test_to_dict_is_json_serializable(self, speckit_project: Path) -> None:
        data = run_pipeline(speckit_project).to_dict()

        assert json.loads(json.dumps(data))["source_files"] == 1
        assert data["detection"]["format"] == "speckit"


class TestBmadProject:
    def test_implemented_story_is_not_a_gap(self, bmad_project: Path) -> None:
        result = run_pipeline(bmad_project)

        assert result.detection.format == SpecFormat.BMAD
        assert result.specs
        assert "User Login" not in {g.title for g in result.gaps}
        assert result.gaps


class TestFailures:
    """Tests for the conditions that stop a run."""

    def test_missing_project(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectNotFoundError):
            run_pipeline(tmp_path / "nowhere")

    def test_no_specifications(self, tmp_path: Path) -> None:
        write_file(tmp_path, "src/app.py", "def main():\n    return 1\n")
        with pytest.raises(NoSpecificationsError):
            run_pipeline(tmp_path)

    def test_no_source_files(self, tmp_path: Path) -> None:
        write_file(tmp_path, ".specify/memory/specifications/001-user-accounts/spec.md", SPECKIT_SPEC)
        with pytest.raises(NoSourceFilesError):
            run_pipeline(tmp_path)

    def test_empty_source_allowed(self, tmp_path: Path) -> None:
        """Test every requirement becomes a missing gap when source may be empty."""
        write_file(tmp_path, ".specify/memory/specifications/001-user-accounts/spec.md", SPECKIT_SPEC)

        result = run_pipeline(tmp_path, config=EngineConfig(allow_empty_source=True))

        assert sorted(g.requirement_id for g in result.gaps) == ["FR1", "FR2", "FR3"]
        assert all(g.status == "missing" for g in result.gaps)

    def test_invalid_project_config(self, speckit_project: Path) -> None:
        write_file(speckit_project, ".spec-roadmap.yaml", "- not\n- a mapping\n")
        with pytest.raises(InvalidConfigError):
            run_pipeline(speckit_project)


class TestLoadFeatureProposals:
    """Tests for reading proposal files."""

    def test_list_document(self, tmp_path: Path) -> None:
        path = write_file(
            tmp_path,
            "features.yaml",
            """\
            - id: F-1
              title: Dark mode
              priority: P1
              dependencies: [F-2]
            - id: 2
              title: SSO
            """,
        )

        proposals = load_feature_proposals(path)

        assert [p.id for p in proposals] == ["F-1", "2"]
        assert proposals[0].priority == Priority.P1
        assert proposals[0].dependencies == ["F-2"]
        assert proposals[1].priority is None

    def test_features_mapping_in_json(self, tmp_path: Path) -> None:
        path = write_file(tmp_path, "features.json", '{"features": [{"id": "F-1", "title": "Dark mode"}]}')
        assert [p.title for p in load_feature_proposals(path)] == ["Dark mode"]

    def test_empty_document(self, tmp_path: Path) -> None:
        assert load_feature_proposals(write_file(tmp_path, "features.yaml", "")) == []

    @pytest.mark.parametrize(
        "content",
        [
            "features: 3\n",
            "just a string\n",
            "- title: no id\n",
            "[unclosed\n",
        ],
    )
    def test_invalid_documents(self, tmp_path: Path, content) -> None:
        with pytest.raises(InvalidConfigError):
            load_feature_proposals(write_file(tmp_path, "features.yaml", content))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidConfigError):
            load_feature_proposals(tmp_path / "features.yaml")
