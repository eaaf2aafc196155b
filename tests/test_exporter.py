"""
Tests for roadmap/exporter.py
=============================

Every export format, atomic writes and loading a JSON export back.
"""

import csv
import io
import json
from pathlib import Path

import pytest

from spec_roadmap.core.exceptions import ExportError, UnsupportedFormatError
from spec_roadmap.models import EffortEstimate, Priority, ScoredFeature
from spec_roadmap.roadmap import EXPORT_FORMATS, RoadmapContext, RoadmapExporter, RoadmapGenerator, load_roadmap
from spec_roadmap.roadmap.exporter import CSV_HEADER


@pytest.fixture
def roadmap():
    gap = ScoredFeature(
        id="GAP-F001-FR1",
        title="Validate | email",
        description="Validate email is not implemented.",
        kind="gap",
        category="core-functionality",
        impact=9,
        effort=EffortEstimate.create(16, "medium", method="complexity"),
        roi=0.562,
        priority=Priority.P1,
        priority_source="explicit",
        tags=["gap", "missing", "F001"],
        spec_id="F001",
        requirement_id="FR1",
        confidence=85,
    )
    feature = ScoredFeature(
        id="F-dark",
        title="<b>Dark</b> mode",
        description="Theme toggle",
        kind="feature",
        category="user-experience",
        impact=7,
        effort=EffortEstimate.create(4, "medium", method="provided"),
        roi=1.75,
        priority=Priority.P2,
        dependencies=["GAP-F001-FR1"],
        tags=["feature", "user-experience"],
    )
    context = RoadmapContext(project_name="shop", spec_format="speckit")
    return RoadmapGenerator().generate([], [gap, feature], context)


@pytest.fixture
def exporter() -> RoadmapExporter:
    return RoadmapExporter()


class TestExport:
    """Tests for writing files."""

    def test_directory_gets_default_name(self, exporter, roadmap, tmp_path: Path) -> None:
        path = exporter.export(roadmap, "markdown", tmp_path)
        assert path == tmp_path / "ROADMAP.md"
        assert path.read_text(encoding="utf-8").startswith("# shop Roadmap")

    def test_explicit_file_path(self, exporter, roadmap, tmp_path: Path) -> None:
        path = exporter.export(roadmap, "csv", tmp_path / "out" / "plan.csv")
        assert path == tmp_path / "out" / "plan.csv"
        assert path.is_file()

    def test_export_all(self, exporter, roadmap, tmp_path: Path) -> None:
        written = exporter.export_all(roadmap, tmp_path / "exports")

        assert list(written) == list(EXPORT_FORMATS)
        assert sorted(p.name for p in (tmp_path / "exports").iterdir()) == [
            "ROADMAP.md",
            "github-issues.json",
            "roadmap.csv",
            "roadmap.html",
            "roadmap.json",
        ]

    def test_export_selected_formats(self, exporter, roadmap, tmp_path: Path) -> None:
        written = exporter.export_all(roadmap, tmp_path, ["json"])
        assert written == {"json": tmp_path / "roadmap.json"}

    def test_unsupported_format(self, exporter, roadmap, tmp_path: Path) -> None:
        with pytest.raises(UnsupportedFormatError):
            exporter.export(roadmap, "pdf", tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_unwritable_path(self, exporter, roadmap, tmp_path: Path) -> None:
        """Test filesystem failures surface as ExportError."""
        (tmp_path / "blocker").write_text("", encoding="utf-8")
        with pytest.raises(ExportError) as exc_info:
            exporter.export(roadmap, "json", tmp_path / "blocker" / "roadmap.json")
        assert exc_info.value.context.file_path.endswith("roadmap.json")


class TestJsonRoundTrip:
    """Tests for load_roadmap."""

    def test_load_equals_original(self, exporter, roadmap, tmp_path: Path) -> None:
        path = exporter.export(roadmap, "json", tmp_path)

        loaded = load_roadmap(path)

        assert loaded == roadmap
        assert loaded.generated_at == roadmap.generated_at

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExportError):
            load_roadmap(tmp_path / "roadmap.json")

    @pytest.mark.parametrize("content", ["{not json", '{"x": 1}', "[]"])
    def test_invalid_documents(self, tmp_path: Path, content) -> None:
        path = tmp_path / "roadmap.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ExportError):
            load_roadmap(path)


class TestRenderers:
    """Tests for the text of each format."""

    def test_markdown(self, exporter, roadmap):
        text = exporter.render(roadmap, "markdown")

        assert "## Phase 1: Core Features" in text
        assert "| P1 | Validate \\| email | gap | 16h (11-24h) | 0.56 | - |" in text
        assert "- **By priority:** P0: 0, P1: 1, P2: 1, P3: 0" in text
        assert "## Dependency Issues" not in text
        assert text.rstrip().endswith("4. Begin Phase 1 implementation")

    def test_csv(self, exporter, roadmap):
        rows = list(csv.reader(io.StringIO(exporter.render(roadmap, "csv"))))

        assert rows[0] == CSV_HEADER
        assert rows[1] == ["P1", "1", "Validate | email", "gap", "16", "Not Started", "gap; missing; F001", ""]
        assert rows[2][-1] == "GAP-F001-FR1"
        assert len(rows) == 3

    def test_github_issues(self, exporter, roadmap):
        issues = json.loads(exporter.render(roadmap, "github-issues"))

        assert [i["title"] for i in issues] == ["Validate | email", "<b>Dark</b> mode"]
        assert issues[0]["labels"] == ["P1", "gap", "missing", "F001"]
        assert issues[0]["milestone"] == "Phase 1: Core Features"
        assert "**Gap confidence:** 85%" in issues[0]["body"]
        assert "- Depends on: `GAP-F001-FR1`" in issues[1]["body"]

    def test_html_escapes(self, exporter, roadmap):
        text = exporter.render(roadmap, "html")

        assert text.startswith("<!DOCTYPE html>")
        assert "&lt;b&gt;Dark&lt;/b&gt; mode" in text
        assert "<b>Dark</b>" not in text
        assert 'class="priority-p1"' in text
