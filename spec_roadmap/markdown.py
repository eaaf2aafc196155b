"""
Markdown helpers shared by both specification parsers.

The parsers only need heading structure, list items, bold-term bullets and
YAML frontmatter, so this is pattern matching over lines rather than a full
CommonMark parser. Fenced code blocks are skipped when locating headings.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<text>.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_LIST_RE = re.compile(r"^(?P<indent>\s*)(?:[-*+]|\d+[.)])\s+(?P<text>.*)$")
_CHECKBOX_RE = re.compile(r"^\[(?P<mark>[ xX~-])\]\s*(?P<text>.*)$")
_BOLD_TERM_RE = re.compile(r"^\*\*(?P<term>[^*]+?)\s*:?\s*\*\*\s*:?\s*(?P<desc>.*)$")
_ID_PREFIX_RE = re.compile(r"^\s*(?:[A-Z]{1,6}-?\d+(?:\.\d+)*)\s*[:.)\-]\s*")
_GWT_RE = re.compile(r"\b(given|when|then)\b", re.IGNORECASE)

STATUS_MARKERS: dict[str, str] = {
    "✅": "met",
    "⚠️": "partial",
    "⚠": "partial",
    "❌": "unmet",
}


@dataclass
class Section:
    """A heading and the lines below it up to the next heading of equal or higher rank."""

    title: str
    level: int
    line: int
    body: str
    children: list[Section] = field(default_factory=list)


@dataclass
class ListItem:
    text: str
    checked: bool | None = None  # None when the item is not a checkbox
    indent: int = 0


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Separate a leading ``---`` YAML block from the document body.

    Malformed frontmatter is logged and treated as absent.
    """
    if not text.startswith("---"):
        return {}, text
    lines = text.splitlines(keepends=True)
    for index in range(1, len(lines)):
        if lines[index].strip() in ("---", "..."):
            raw = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            try:
                data = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                logger.warning("Ignoring malformed frontmatter: %s", e)
                return {}, body
            return (data if isinstance(data, dict) else {}), body
    return {}, text


def iter_headings(text: str) -> list[tuple[int, int, str]]:
    """(line index, level, text) for every heading outside fenced code."""
    headings = []
    in_fence = False
    for index, line in enumerate(text.splitlines()):
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_RE.match(line)
        if match and match.group("text"):
            headings.append((index, len(match.group("hashes")), match.group("text").strip()))
    return headings


def parse_sections(text: str) -> list[Section]:
    """Flat list of sections in document order (children populated as a tree too)."""
    lines = text.splitlines()
    headings = iter_headings(text)
    sections: list[Section] = []
    stack: list[Section] = []
    for position, (index, level, title) in enumerate(headings):
        end = len(lines)
        for next_index, next_level, _ in headings[position + 1 :]:
            if next_level <= level:
                end = next_index
                break
        section = Section(
            title=title,
            level=level,
            line=index + 1,
            body="\n".join(lines[index + 1 : end]),
        )
        while stack and stack[-1].level >= level:
            stack.pop()
        if stack:
            stack[-1].children.append(section)
        stack.append(section)
        sections.append(section)
    return sections


def find_section(
    text_or_sections: str | list[Section],
    pattern: str,
    level: int | None = None,
) -> Section | None:
    """First section whose title matches the regex (case-insensitive)."""
    sections = (
        parse_sections(text_or_sections)
        if isinstance(text_or_sections, str)
        else text_or_sections
    )
    regex = re.compile(pattern, re.IGNORECASE)
    for section in sections:
        if level is not None and section.level != level:
            continue
        if regex.search(section.title):
            return section
    return None


def first_heading(text: str, level: int = 1) -> str | None:
    for _, heading_level, title in iter_headings(text):
        if heading_level == level:
            return title
    return None


def own_text(section: Section) -> str:
    """Section body up to its first sub-heading."""
    lines = []
    for line in section.body.splitlines():
        if _HEADING_RE.match(line):
            break
        lines.append(line)
    return "\n".join(lines)


def list_items(body: str) -> list[ListItem]:
    """Bullet, numbered and checkbox items (continuation lines are not joined)."""
    items = []
    in_fence = False
    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _LIST_RE.match(line)
        if not match:
            continue
        text = match.group("text").strip()
        checked = None
        box = _CHECKBOX_RE.match(text)
        if box:
            checked = box.group("mark") in "xX"
            text = box.group("text").strip()
        if text:
            items.append(ListItem(text=text, checked=checked, indent=len(match.group("indent"))))
    return items


def bold_term(text: str) -> tuple[str, str] | None:
    """Split ``**Term:** description`` into (term, description)."""
    match = _BOLD_TERM_RE.match(text.strip())
    if not match:
        return None
    return match.group("term").strip().rstrip(":"), match.group("desc").strip()


def metadata_value(text: str, key: str) -> str | None:
    """Value of a ``**Key:** value`` or ``Key: value`` line."""
    regex = re.compile(
        rf"^\s*(?:[-*]\s*)?(?:\*\*)?{re.escape(key)}(?:\*\*)?\s*:\s*(?:\*\*)?\s*(?P<value>.+?)\s*$",
        re.IGNORECASE | re.MULTILINE,
    )
    match = regex.search(text)
    if not match:
        return None
    return strip_inline(match.group("value")) or None


def strip_inline(text: str) -> str:
    """Drop emphasis, inline code and link markup."""
    text = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", text)
    text = text.replace("**", "").replace("__", "").replace("`", "")
    return text.strip()


def strip_id_prefix(title: str) -> str:
    """``FR1: Login`` -> ``Login``."""
    return _ID_PREFIX_RE.sub("", title, count=1).strip()


def normalize_title(title: str) -> str:
    """Lowercase, id-prefix-free, punctuation-free form used for de-duplication."""
    text = strip_id_prefix(strip_inline(title)).lower()
    text = re.sub(r"[^a-z0-9]+", " ", text)
    return " ".join(text.split())


def criterion_status(text: str) -> tuple[str, str]:
    """Strip a leading/trailing status emoji and return (text, status)."""
    for marker, status in STATUS_MARKERS.items():
        if marker in text:
            cleaned = text.replace(marker, "").replace("\ufe0f", "").strip()
            return cleaned, status
    return text, "unknown"


def is_given_when_then(text: str) -> bool:
    found = {m.group(1).lower() for m in _GWT_RE.finditer(text)}
    return "given" in found or {"when", "then"} <= found
