"""
Tests for cli.py
================

Argument parsing, format resolution, config overrides and exit codes.
"""

import json
import logging
from pathlib import Path

import pytest

from conftest import write_file
from spec_roadmap.cli import build_parser, load_config, main, resolve_formats
from spec_roadmap.roadmap import EXPORT_FORMATS


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put the original handlers back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.formats is None
        assert args.output is None
        assert args.team_size is None
        assert args.as_is is False

    def test_repeatable_format(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(
            ["--project", str(tmp_path), "--format", "csv", "--format", "html", "--team-size", "3"]
        )

        assert args.project == tmp_path
        assert args.formats == ["csv", "html"]
        assert args.team_size == 3

    def test_unknown_format_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--format", "pdf"])


class TestResolveFormats:
    @pytest.mark.parametrize(
        "requested, expected",
        [
            (None, ["markdown", "json"]),
            ([], ["markdown", "json"]),
            (["csv", "csv", "json"], ["csv", "json"]),
            (["json", "all"], list(EXPORT_FORMATS)),
        ],
    )
    def test_resolve(self, requested, expected):
        assert resolve_formats(requested) == expected


class TestLoadConfig:
    """Tests for command-line overrides of the config file."""

    def test_overrides(self, tmp_path: Path) -> None:
        write_file(tmp_path, ".spec-roadmap.yaml", "roadmap:\n  team_size: 5\ngaps:\n  confidence_threshold: 60\n")
        args = build_parser().parse_args(["--threshold", "75", "--as-is"])

        config = load_config(args, tmp_path)

        assert config.roadmap.team_size == 5
        assert config.gaps.confidence_threshold == 75
        assert config.as_is is True

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        path = write_file(tmp_path, "custom.yaml", "roadmap:\n  team_size: 4\n")
        args = build_parser().parse_args(["--config", str(path), "--team-size", "2"])

        assert load_config(args, tmp_path / "elsewhere").roadmap.team_size == 2


class TestMain:
    """Tests for end-to-end CLI runs."""

    def test_writes_default_formats(self, speckit_project: Path) -> None:
        assert main(["--project", str(speckit_project)]) == 0

        out = speckit_project / ".spec-roadmap"
        assert sorted(p.name for p in out.iterdir()) == ["ROADMAP.md", "roadmap.json"]
        data = json.loads((out / "roadmap.json").read_text(encoding="utf-8"))
        assert data["project_name"] == speckit_project.name

    def test_output_and_features(self, speckit_project: Path, tmp_path: Path) -> None:
        features = write_file(tmp_path, "features.json", '[{"id": "F-dark", "title": "Dark mode"}]')
        out = tmp_path / "exports"

        code = main(
            ["--project", str(speckit_project), "--output", str(out), "--format", "csv", "--features", str(features)]
        )

        assert code == 0
        assert "F-dark" not in (out / "roadmap.csv").read_text(encoding="utf-8")
        assert "Dark mode" in (out / "roadmap.csv").read_text(encoding="utf-8")

    def test_missing_project_fails(self, tmp_path: Path) -> None:
        assert main(["--project", str(tmp_path / "nowhere"), "--output", str(tmp_path / "out")]) == 1
        assert not (tmp_path / "out").exists()

    def test_project_without_specs_fails(self, tmp_path: Path) -> None:
        write_file(tmp_path, "src/app.py", "def main():\n    return 1\n")
        assert main(["--project", str(tmp_path)]) == 1

    def test_invalid_features_file_fails(self, speckit_project: Path) -> None:
        features = write_file(speckit_project, "features.yaml", "- title: no id\n")
        assert main(["--project", str(speckit_project), "--features", str(features)]) == 1

    def test_json_logs(self, speckit_project: Path) -> None:
        assert main(["--project", str(speckit_project), "--json-logs", "--verbose"]) == 0
