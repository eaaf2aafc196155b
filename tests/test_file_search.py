"""
Tests for extraction/file_search.py and extraction/extractor.py
===============================================================

Source discovery and whole-project extraction.
"""

from pathlib import Path

import pytest

from conftest import write_file
from spec_roadmap.config import ExtractionConfig
from spec_roadmap.core.exceptions import ExtractionError
from spec_roadmap.extraction import FileSearcher, SourceExtractor, detect_language, extract_source, is_test_file


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    write_file(tmp_path, "src/app.py", "def main():\n    return 1\n")
    write_file(tmp_path, "src/web/routes.ts", "export function listOrders() { return []; }\n")
    write_file(tmp_path, "src/web/styles.css", "body {}\n")
    write_file(tmp_path, "tests/test_app.py", "def test_main():\n    assert True\n")
    write_file(tmp_path, "src/web/routes.test.ts", "test('x', () => {});\n")
    write_file(tmp_path, "node_modules/lib/index.js", "function vendored() {}\n")
    write_file(tmp_path, ".venv/lib/site.py", "def hidden():\n    pass\n")
    write_file(tmp_path, "build/out.js", "function built() {}\n")
    return tmp_path


class TestIsTestFile:
    """Tests for test-file recognition."""

    @pytest.mark.parametrize(
        "path",
        [
            "test_auth.py",
            "src/auth_test.py",
            "src/auth.test.ts",
            "src/auth.spec.jsx",
            "conftest.py",
            "tests/helpers.py",
            "src/__tests__/auth.js",
        ],
    )
    def test_recognized(self, path):
        assert is_test_file(path) is True

    @pytest.mark.parametrize("path", ["src/auth.py", "src/testing_utils.py", "src/contest.ts"])
    def test_not_recognized(self, path):
        assert is_test_file(path) is False


class TestFileSearcher:
    """Tests for FileSearcher."""

    def test_source_files_sorted_and_filtered(self, source_tree: Path) -> None:
        """Test extension filter, excluded directories and test separation."""
        searcher = FileSearcher(source_tree)

        found = [searcher.relative(p) for p in searcher.find_source_files()]

        assert found == ["src/app.py", "src/web/routes.ts"]

    def test_test_files(self, source_tree: Path) -> None:
        """Test test files are listed separately."""
        searcher = FileSearcher(source_tree)

        found = [searcher.relative(p) for p in searcher.find_test_files()]

        assert found == ["src/web/routes.test.ts", "tests/test_app.py"]

    def test_include_tests(self, source_tree: Path) -> None:
        """Test include_tests keeps test modules in the source list."""
        searcher = FileSearcher(source_tree, include_tests=True)

        found = [searcher.relative(p) for p in searcher.find_source_files()]

        assert "tests/test_app.py" in found

    def test_custom_exclusions(self, source_tree: Path) -> None:
        """Test an explicit exclude list replaces the defaults."""
        searcher = FileSearcher(source_tree, extensions=[".js"], exclude_dirs=["node_modules"])

        found = [searcher.relative(p) for p in searcher.find_source_files()]

        assert found == ["build/out.js"]

    def test_search_by_name(self, source_tree: Path) -> None:
        """Test glob and substring search."""
        searcher = FileSearcher(source_tree)

        assert [p.name for p in searcher.search_by_name("*.ts")] == ["routes.test.ts", "routes.ts"]
        assert [p.name for p in searcher.search_by_name("APP")] == ["app.py", "test_app.py"]


class TestExtractSource:
    def test_language_detection(self):
        assert detect_language("a/b.py") == "python"
        assert detect_language("a/b.TSX") == "typescript"
        assert detect_language("a/b.mjs") == "javascript"
        assert detect_language("a/b.go") is None

    def test_unsupported_language(self):
        with pytest.raises(ExtractionError):
            extract_source("package main", "go", "main.go")


class TestSourceExtractor:
    """Tests for whole-project extraction."""

    def test_extract_project(self, source_tree: Path) -> None:
        """Test files are extracted in path order with test paths listed."""
        result = SourceExtractor(ExtractionConfig(max_workers=2)).extract_project(source_tree)

        assert [f.file_path for f in result.files] == ["src/app.py", "src/web/routes.ts"]
        assert result.files[1].language == "typescript"
        assert result.test_files == ["src/web/routes.test.ts", "tests/test_app.py"]
        assert result.errors == []

    def test_oversized_file_isolated(self, source_tree: Path) -> None:
        """Test one failing file is recorded and the rest still extracted."""
        write_file(source_tree, "src/huge.py", "x = 1\n" * 100)

        result = SourceExtractor(ExtractionConfig(max_file_bytes=200)).extract_project(source_tree)

        assert [f.file_path for f in result.files] == ["src/app.py", "src/web/routes.ts"]
        assert len(result.errors) == 1
        assert result.errors[0].context.file_path == "src/huge.py"

    def test_partial_files_reported(self, tmp_path: Path) -> None:
        """Test syntax errors produce partial facts, not failures."""
        write_file(tmp_path, "src/bad.py", "def ok():\n    return 1\n\nx = = 2\n")

        result = SourceExtractor().extract_project(tmp_path)

        assert result.errors == []
        assert [f.file_path for f in result.partial_files] == ["src/bad.py"]
        assert result.files[0].functions[0].name == "ok"

    def test_empty_project(self, tmp_path: Path) -> None:
        """Test an empty tree gives an empty result."""
        result = SourceExtractor().extract_project(tmp_path)
        assert result.files == []
        assert result.test_files == []
