"""
Requirement-to-Symbol Matching
==============================

Pure rules that decide whether a source symbol implements a requirement.

A requirement title is reduced to candidate identifiers (contiguous runs of
its significant words, joined); a symbol matches EXACT when its normalized
name equals a candidate and FUZZY when difflib's ratio against a candidate
reaches the threshold. ``validateEmail``, ``validate_email`` and
``ValidateEmail`` all normalize to ``validateemail``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import IntEnum
from typing import Iterable, Optional

from ..models import ClassFact, FileFacts, FunctionSignature, RouteFact

COMMON_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "by", "from", "as", "is", "was", "are", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "should", "could",
        "may", "might", "must", "can", "system", "shall",
    }
)

MIN_FUZZY_LENGTH = 4

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_ROUTE_TITLE_RE = re.compile(r"^(?P<method>GET|POST|PUT|PATCH|DELETE)\s+(?P<path>/\S*)$", re.IGNORECASE)
_ROUTE_PARAM_RE = re.compile(r"\{[^}]*\}|<[^>]*>|:[A-Za-z_][A-Za-z0-9_]*|\[[^\]]*\]")


class MatchKind(IntEnum):
    NONE = 0
    FUZZY = 1
    EXACT = 2


@dataclass(frozen=True)
class SymbolMatch:
    """The best symbol found for one requirement."""

    kind: MatchKind
    similarity: float
    name: str
    file_path: str
    line: int
    symbol_type: str  # function | class | route
    candidate: str
    function: Optional[FunctionSignature] = None
    cls: Optional[ClassFact] = None
    route: Optional[RouteFact] = None

    @property
    def is_stub(self) -> bool:
        if self.function is not None:
            return self.function.is_stub
        if self.cls is not None:
            return self.cls.is_stub
        return False

    @property
    def is_exported(self) -> bool:
        if self.function is not None:
            return self.function.is_exported
        if self.cls is not None:
            return self.cls.is_exported
        return True

    @property
    def stub_reason(self) -> Optional[str]:
        if self.function is not None:
            return self.function.stub_reason
        if self.cls is not None and self.cls.methods:
            return self.cls.methods[0].stub_reason
        return None

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line}"


def normalize_identifier(name: str) -> str:
    """Lowercase and keep alphanumerics only."""
    return re.sub(r"[^a-z0-9]", "", name.lower())


def split_identifier(name: str) -> list[str]:
    """``validateEmailAddress`` / ``validate_email`` -> lowercase word tokens."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    spaced = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", spaced)
    return [t for t in re.split(r"[^A-Za-z0-9]+", spaced.lower()) if t]


def extract_keywords(text: str) -> list[str]:
    """
    Significant words of a text, longest (most specific) first.

    Lowercased, punctuation stripped, words of 3 characters or fewer and
    common words dropped, duplicates removed.
    """
    words = _NON_ALNUM_RE.sub(" ", text.lower()).split()
    unique = list(dict.fromkeys(w for w in words if len(w) > 3 and w not in COMMON_WORDS))
    return sorted(unique, key=len, reverse=True)


def title_words(title: str) -> list[str]:
    """Title words in order with common words removed."""
    return [t for t in split_identifier(title) if t not in COMMON_WORDS]


def candidate_names(title: str) -> list[str]:
    """
    Identifier candidates for a requirement title.

    Every contiguous run of two or more significant words, plus the whole
    phrase (which covers single-word titles), each normalized.
    """
    words = title_words(title)
    candidates: list[str] = []
    if words:
        candidates.append("".join(words))
    for size in range(len(words) - 1, 1, -1):
        for start in range(len(words) - size + 1):
            candidates.append("".join(words[start : start + size]))
    return list(dict.fromkeys(c for c in candidates if c))


def score_match(symbol_name: str, candidates: Iterable[str], fuzzy_threshold: float = 0.75) -> tuple[MatchKind, float, str]:
    """
    Compare one symbol name against the candidates.

    Returns (kind, similarity, candidate) for the closest candidate.
    """
    normalized = normalize_identifier(symbol_name)
    if not normalized:
        return MatchKind.NONE, 0.0, ""
    best = (MatchKind.NONE, 0.0, "")
    for candidate in candidates:
        if normalized == candidate:
            return MatchKind.EXACT, 1.0, candidate
        if len(candidate) < MIN_FUZZY_LENGTH or len(normalized) < MIN_FUZZY_LENGTH:
            continue
        ratio = SequenceMatcher(None, normalized, candidate).ratio()
        if ratio >= fuzzy_threshold and ratio > best[1]:
            best = (MatchKind.FUZZY, ratio, candidate)
    return best


def route_key(method: str, path: str) -> tuple[str, str]:
    """Method plus path with parameter placeholders unified and trailing slash dropped."""
    normalized = _ROUTE_PARAM_RE.sub("{}", path.strip())
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")
    return method.upper(), normalized or "/"


def parse_route_title(title: str) -> Optional[tuple[str, str]]:
    match = _ROUTE_TITLE_RE.match(title.strip())
    if not match:
        return None
    return route_key(match.group("method"), match.group("path"))


def _sort_key(match: SymbolMatch) -> tuple:
    return (
        -int(match.kind),
        -match.similarity,
        match.is_stub,
        not match.is_exported,
        match.file_path,
        match.name,
        match.line,
    )


def best_match(
    title: str,
    files: Iterable[FileFacts],
    fuzzy_threshold: float = 0.75,
) -> Optional[SymbolMatch]:
    """
    The best symbol for a requirement title across all files, or None.

    Ties are broken deterministically: kind, similarity, real implementation
    over stub, exported over private, then path and name.
    """
    files = list(files)
    route = parse_route_title(title)
    if route is not None:
        for facts in sorted(files, key=lambda f: f.file_path):
            for fact in facts.routes:
                if route_key(fact.method, fact.path) == route:
                    handler = _handler(facts, fact.handler)
                    return SymbolMatch(
                        kind=MatchKind.EXACT,
                        similarity=1.0,
                        name=fact.handler or f"{fact.method} {fact.path}",
                        file_path=facts.file_path,
                        line=fact.line,
                        symbol_type="route",
                        candidate=f"{route[0]} {route[1]}",
                        function=handler,
                        route=fact,
                    )

    candidates = candidate_names(title)
    if not candidates:
        return None

    matches: list[SymbolMatch] = []
    for facts in files:
        for function in facts.all_functions():
            kind, similarity, candidate = score_match(function.name, candidates, fuzzy_threshold)
            if kind is not MatchKind.NONE:
                matches.append(
                    SymbolMatch(
                        kind=kind,
                        similarity=similarity,
                        name=function.qualified_name,
                        file_path=facts.file_path,
                        line=function.line,
                        symbol_type="function",
                        candidate=candidate,
                        function=function,
                    )
                )
        for cls in facts.classes:
            kind, similarity, candidate = score_match(cls.name, candidates, fuzzy_threshold)
            if kind is not MatchKind.NONE:
                matches.append(
                    SymbolMatch(
                        kind=kind,
                        similarity=similarity,
                        name=cls.name,
                        file_path=facts.file_path,
                        line=cls.line,
                        symbol_type="class",
                        candidate=candidate,
                        cls=cls,
                    )
                )
    if not matches:
        return None
    return min(matches, key=_sort_key)


def _handler(facts: FileFacts, name: Optional[str]) -> Optional[FunctionSignature]:
    if not name:
        return None
    for function in facts.all_functions():
        if function.name == name or function.qualified_name == name:
            return function
    return None


def missing_fields(match: SymbolMatch, fields: Iterable[str]) -> list[str]:
    """Declared fields with no parameter (function) or member (class) of the same name."""
    if match.function is not None:
        present = {normalize_identifier(p) for p in match.function.param_names}
    elif match.cls is not None:
        present = {normalize_identifier(m) for m in match.cls.members}
        for method in match.cls.methods:
            present.update(normalize_identifier(p) for p in method.param_names)
    else:
        return []
    return [f for f in fields if normalize_identifier(f) not in present]
