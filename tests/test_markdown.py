"""
Tests for markdown.py
=====================

Heading structure, list items and inline metadata helpers.
"""

from spec_roadmap.markdown import (
    bold_term,
    criterion_status,
    find_section,
    first_heading,
    is_given_when_then,
    iter_headings,
    list_items,
    metadata_value,
    normalize_title,
    own_text,
    parse_sections,
    split_frontmatter,
    strip_id_prefix,
)

DOCUMENT = "# A\nintro\n## B\nb text\n## C\nc\n# D\n"


class TestFrontmatter:
    """Tests for split_frontmatter."""

    def test_splits_yaml_block(self):
        data, body = split_frontmatter("---\nstepsCompleted: [1, 2]\n---\n# Title\n")
        assert data == {"stepsCompleted": [1, 2]}
        assert body == "# Title\n"

    def test_no_frontmatter(self):
        assert split_frontmatter("# Title\n") == ({}, "# Title\n")

    def test_malformed_frontmatter_ignored(self):
        """Test broken YAML is logged and treated as absent."""
        data, body = split_frontmatter("---\nkey: [unclosed\n---\nbody\n")
        assert data == {}
        assert body == "body\n"


class TestSections:
    """Tests for heading structure."""

    def test_tree_and_bodies(self):
        sections = parse_sections(DOCUMENT)

        assert [(s.title, s.level) for s in sections] == [("A", 1), ("B", 2), ("C", 2), ("D", 1)]
        assert [child.title for child in sections[0].children] == ["B", "C"]
        assert own_text(sections[0]) == "intro"
        assert sections[1].line == 3

    def test_find_section(self):
        assert find_section(DOCUMENT, r"^c$").body == "c"
        assert find_section(DOCUMENT, "B", level=1) is None
        assert first_heading(DOCUMENT, 2) == "B"

    def test_fenced_headings_ignored(self):
        """Test headings inside code fences are not structure."""
        assert iter_headings("```\n# not heading\n```\n# Real\n") == [(3, 1, "Real")]


class TestListItems:
    def test_bullets_numbers_and_checkboxes(self):
        items = list_items("- plain\n1. numbered\n- [x] done\n- [ ] open\n  - nested\ntext\n")

        assert [i.text for i in items] == ["plain", "numbered", "done", "open", "nested"]
        assert [i.checked for i in items] == [None, None, True, False, None]
        assert items[4].indent == 2


class TestInlineHelpers:
    """Tests for the single-line helpers."""

    def test_bold_term(self):
        assert bold_term("**Performance**: Pages load fast") == ("Performance", "Pages load fast")
        assert bold_term("**Term:** description") == ("Term", "description")
        assert bold_term("no bold here") is None

    def test_metadata_value(self):
        text = "**Status:** in-progress\nPriority: P1\n"
        assert metadata_value(text, "Status") == "in-progress"
        assert metadata_value(text, "priority") == "P1"
        assert metadata_value(text, "Owner") is None

    def test_titles(self):
        assert strip_id_prefix("FR1: Login") == "Login"
        assert normalize_title("**FR2:** Export Order-History!") == "export order history"

    def test_criterion_status(self):
        assert criterion_status("✅ stores email") == ("stores email", "met")
        assert criterion_status("Partial ⚠️") == ("Partial", "partial")
        assert criterion_status("plain") == ("plain", "unknown")

    def test_given_when_then(self):
        assert is_given_when_then("Given a cart, when I pay, then I get a receipt")
        assert is_given_when_then("When x then y")
        assert not is_given_when_then("Only when asked")
