"""
Stub detection rules.

A function counts as a stub when its body carries no real implementation:

1. the body is empty (only a docstring, ``pass`` or ``...``);
2. the body consists solely of a "not implemented" marker
   (``raise NotImplementedError`` / ``throw new Error("Not implemented")``);
3. the body only returns a literal placeholder string such as
   ``"TODO: Implement"`` or ``"coming soon"``.

Each rule reports a reason string so the gap analyzer can turn it into
evidence.
"""

import re

# Whole words only: "todos", "todo_items" and "implemented" are ordinary text
PLACEHOLDER_MARKERS: tuple[str, ...] = (
    r"todo",
    r"fixme",
    r"implement",
    r"not yet",
    r"coming soon",
    r"placeholder",
    r"not (?:yet )?implemented",
)

REASON_EMPTY = "empty-body"
REASON_NOT_IMPLEMENTED = "not-implemented-marker"
REASON_PLACEHOLDER = "returns-placeholder-text"

_PLACEHOLDER_RE = re.compile(
    r"\b(?:" + "|".join(PLACEHOLDER_MARKERS) + r")\b", re.IGNORECASE
)
_NOT_IMPLEMENTED_RE = re.compile(
    r"\b(?:not\s+(?:yet\s+)?implemented|unimplemented|todo)\b", re.IGNORECASE
)


def is_placeholder_text(value: str) -> bool:
    """Whether a literal string reads like placeholder output."""
    return bool(_PLACEHOLDER_RE.search(value))


def is_not_implemented_message(value: str) -> bool:
    """Whether an error message announces missing functionality."""
    return bool(_NOT_IMPLEMENTED_RE.search(value))


# Script bodies are matched textually after comments are stripped
_SCRIPT_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_SCRIPT_RETURN_STRING_RE = re.compile(
    r"""^return\s*(?P<q>["'`])(?P<text>.*?)(?P=q)\s*;?$""", re.DOTALL
)
_SCRIPT_THROW_RE = re.compile(
    r"""^throw\s+new\s+\w*Error\s*\(\s*(?P<q>["'`])(?P<text>.*?)(?P=q)\s*\)\s*;?$""",
    re.DOTALL,
)


def classify_script_body(body: str) -> str | None:
    """
    Apply the stub rules to a JavaScript/TypeScript function body.

    Args:
        body: Text between the function's outer braces (or an arrow
              function's expression body)

    Returns:
        The stub reason, or None when the body looks implemented
    """
    stripped = _SCRIPT_COMMENT_RE.sub("", body).strip()
    if not stripped:
        return REASON_EMPTY

    match = _SCRIPT_THROW_RE.match(stripped)
    if match and is_not_implemented_message(match.group("text")):
        return REASON_NOT_IMPLEMENTED

    match = _SCRIPT_RETURN_STRING_RE.match(stripped)
    if match and is_placeholder_text(match.group("text")):
        return REASON_PLACEHOLDER

    # Arrow functions with an expression body
    expression = stripped.rstrip(";").strip()
    if len(expression) >= 2 and expression[0] in "\"'`" and expression[-1] == expression[0]:
        if is_placeholder_text(expression[1:-1]):
            return REASON_PLACEHOLDER

    return None
