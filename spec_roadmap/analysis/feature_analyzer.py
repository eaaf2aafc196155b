"""
Feature Completeness Analyzer
=============================

Checks advertised features (README, ROADMAP, FEATURES, CHANGELOG, docs/)
against the extracted source facts.

Each claim is reduced to a handful of key terms. A term counts as found
when an exported, non-stub function, a non-stub class or a route path
contains it; the share of found terms is the claim's accuracy score.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from ..core.safe_io import safe_read_text
from ..markdown import strip_inline
from ..models import FeatureClaim, FeatureFinding, FileFacts, ParsedSpec
from .matching import COMMON_WORDS, extract_keywords, normalize_identifier

logger = logging.getLogger(__name__)

DOC_FILES = ("README.md", "ROADMAP.md", "FEATURES.md", "CHANGELOG.md")
DOCS_DIR = "docs"
MAX_KEYWORDS = 5
MIN_BOLD_CLAIM_LENGTH = 20
MIN_SUBSTRING_TERM = 4

ACCURATE_SCORE = 80
MISLEADING_SCORE = 40

COMPLETE_SPEC_STATUSES = frozenset({"complete", "completed", "done", "implemented", "shipped"})

FEATURE_INDICATORS = (
    "supports",
    "support",
    "enables",
    "provides",
    "allows",
    "can",
    "analyzes",
    "analyses",
    "generates",
    "detects",
    "automatically",
    "intelligent",
    "advanced",
    "complete",
    "full",
    "comprehensive",
)
_INDICATOR_RE = re.compile(r"\b(?:" + "|".join(FEATURE_INDICATORS) + r")\b", re.IGNORECASE)
_HEADING_RE = re.compile(r"^#{1,6}\s+(?P<title>.+?)\s*#*\s*$")
_BULLET_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?:\[[ xX]\]\s*)?(?P<text>.+)$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_VERSION_RE = re.compile(r"^\[?v?\d+\.\d+")
_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-zA-Z0-9]+(?:\s+[A-Z][a-zA-Z0-9]+)*")
_QUOTED_RE = re.compile(r"[\"“]([^\"”]+)[\"”]")
_FEATURES_SECTION_RE = re.compile(r"\bfeatures?\b|\bcapabilities\b", re.IGNORECASE)

_IGNORED_TERMS = frozenset(FEATURE_INDICATORS) | COMMON_WORDS


def is_feature_claim(text: str) -> bool:
    lower = text.lower()
    if _DATE_RE.match(text) or _VERSION_RE.match(text):
        return False
    if "todo" in lower or "note:" in lower:
        return False
    return bool(_INDICATOR_RE.search(text))


def claim_terms(text: str) -> tuple[str, ...]:
    """
    Key terms a claim is judged by.

    Up to five keywords (longest first) plus capitalized and quoted phrases,
    with feature-indicator vocabulary removed.
    """
    plain = strip_inline(text)
    terms: list[str] = []
    seen: set[str] = set()

    def add(term: str) -> None:
        key = normalize_identifier(term)
        if not key or key in seen or term.lower() in _IGNORED_TERMS:
            return
        seen.add(key)
        terms.append(term)

    keywords = [k for k in extract_keywords(plain) if k not in _IGNORED_TERMS]
    for keyword in keywords[:MAX_KEYWORDS]:
        add(keyword)
    for phrase in _CAPITALIZED_RE.findall(plain):
        words = [w for w in phrase.split() if w.lower() not in _IGNORED_TERMS]
        if words:
            add(" ".join(words))
    for quoted in _QUOTED_RE.findall(plain):
        add(quoted.strip())
    return tuple(terms)


def parse_claims(content: str, source_file: str) -> list[FeatureClaim]:
    """Feature claims in one markdown document, in line order."""
    claims: list[FeatureClaim] = []
    section = ""
    in_fence = False
    for number, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith(("```", "~~~")):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            section = heading.group("title")
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            text = strip_inline(bullet.group("text"))
            under_features = bool(_FEATURES_SECTION_RE.search(section))
            if text and (is_feature_claim(text) or (under_features and _not_excluded(text))):
                claims.append(FeatureClaim(text=text, source_file=source_file, line=number, terms=claim_terms(text)))
                continue

        for bold in _BOLD_RE.findall(line):
            text = bold.strip()
            if len(text) > MIN_BOLD_CLAIM_LENGTH and is_feature_claim(text):
                claims.append(FeatureClaim(text=text, source_file=source_file, line=number, terms=claim_terms(text)))
    return claims


def _not_excluded(text: str) -> bool:
    lower = text.lower()
    return not (_DATE_RE.match(text) or _VERSION_RE.match(text) or "todo" in lower or "note:" in lower)


def find_doc_files(project_root: Path) -> list[Path]:
    project_root = Path(project_root)
    files = [project_root / name for name in DOC_FILES if (project_root / name).is_file()]
    docs = project_root / DOCS_DIR
    if docs.is_dir():
        files.extend(sorted(p for p in docs.rglob("*.md") if p.is_file()))
    return files


def extract_claims(project_root: Path) -> list[FeatureClaim]:
    """Claims from the project's documentation files; unreadable files are skipped."""
    project_root = Path(project_root)
    claims: list[FeatureClaim] = []
    for path in find_doc_files(project_root):
        relative = path.relative_to(project_root).as_posix()
        try:
            content = safe_read_text(path, errors="replace")
        except OSError as e:
            logger.warning("Skipping unreadable documentation file %s: %s", relative, e)
            continue
        claims.extend(parse_claims(content, relative))
    logger.debug("Extracted %d feature claims from documentation", len(claims))
    return claims


def claims_from_specs(specs: Iterable[ParsedSpec]) -> list[FeatureClaim]:
    """Requirements of specs marked complete, treated as claims."""
    claims = []
    for spec in specs:
        if spec.status.lower() not in COMPLETE_SPEC_STATUSES:
            continue
        for requirement in spec.functional_requirements:
            claims.append(
                FeatureClaim(
                    text=requirement.title,
                    source_file=spec.path,
                    line=0,
                    terms=claim_terms(requirement.title),
                )
            )
    return claims


@dataclass
class _SymbolIndex:
    """Normalized names of real implementations and of stubs."""

    implemented: dict[str, str] = field(default_factory=dict)
    stubs: dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(cls, source_files: Iterable[FileFacts]) -> _SymbolIndex:
        index = cls()
        for facts in sorted(source_files, key=lambda f: f.file_path):
            for function in facts.all_functions():
                key = normalize_identifier(function.name)
                label = f"{facts.file_path}:{function.qualified_name}"
                if function.is_stub:
                    index.stubs.setdefault(key, label)
                elif function.is_exported:
                    index.implemented.setdefault(key, label)
            for cls_fact in facts.classes:
                key = normalize_identifier(cls_fact.name)
                label = f"{facts.file_path}:{cls_fact.name}"
                if cls_fact.is_stub:
                    index.stubs.setdefault(key, label)
                else:
                    index.implemented.setdefault(key, label)
            for route in facts.routes:
                index.implemented.setdefault(
                    normalize_identifier(route.path), f"{facts.file_path}:{route.method} {route.path}"
                )
        return index

    def lookup(self, term: str, table: dict[str, str]) -> Optional[str]:
        key = normalize_identifier(term)
        if not key:
            return None
        if key in table:
            return table[key]
        if len(key) < MIN_SUBSTRING_TERM:
            return None
        for name in sorted(table):
            if key in name:
                return table[name]
        return None


class FeatureAnalyzer:
    """
    Scores documentation claims against what the source tree implements.

    Example:
        findings = FeatureAnalyzer().analyze(extraction.files, extract_claims(root))
    """

    def analyze(self, source_files: list[FileFacts], claims: list[FeatureClaim]) -> list[FeatureFinding]:
        index = _SymbolIndex.build(source_files)
        findings = [self.verify_claim(claim, index) for claim in claims]
        findings.sort(key=lambda f: (f.accuracy_score, f.source_file, f.line, f.advertised_feature))
        logger.info(
            "Verified %d feature claims (%d not accurate)",
            len(findings),
            sum(1 for f in findings if f.status != "accurate"),
        )
        return findings

    def verify_claim(self, claim: FeatureClaim, index: _SymbolIndex) -> FeatureFinding:
        terms = claim.terms or claim_terms(claim.text)
        found: list[str] = []
        missing: list[str] = []
        stub_hits: list[str] = []
        for term in terms:
            hit = index.lookup(term, index.implemented)
            if hit:
                found.append(f"{term} -> {hit}")
                continue
            missing.append(term)
            stub = index.lookup(term, index.stubs)
            if stub:
                stub_hits.append(stub)

        score = round(len(found) / len(terms) * 100) if terms else 0
        status = _status(score)
        return FeatureFinding(
            advertised_feature=claim.text,
            accuracy_score=score,
            reality=_reality(score, found, stub_hits),
            status=status,
            recommendation=_recommendation(status, bool(found or stub_hits)),
            source_file=claim.source_file,
            line=claim.line,
            evidence_found=tuple(found),
            evidence_missing=tuple(missing),
        )


def _status(score: int) -> str:
    if score >= ACCURATE_SCORE:
        return "accurate"
    if score >= MISLEADING_SCORE:
        return "misleading"
    return "false"


def _reality(score: int, found: list[str], stub_hits: list[str]) -> str:
    if score >= ACCURATE_SCORE:
        locations = ", ".join(f.split(" -> ", 1)[1] for f in found[:3])
        return f"Implementation found in {locations}"
    if stub_hits and not found:
        return "Only stub implementation exists"
    if found and score >= MISLEADING_SCORE:
        return "Partial implementation exists"
    if found:
        return "Related code exists but claim is overstated"
    return "No implementation found"


def _recommendation(status: str, has_related_code: bool) -> Optional[str]:
    if status == "accurate":
        return None
    if status == "misleading":
        return "update-documentation"
    return "implement-feature" if has_related_code else "remove-claim"
