"""
JavaScript/TypeScript structural extraction using regex-based heuristics.

Declarations are matched against a masked copy of the source in which the
contents of strings and comments are blanked out (offsets preserved), so
braces inside literals never confuse the body matcher. Literal values such as
import specifiers and route paths are then sliced from the original text.
"""

from __future__ import annotations

import logging
import re

from ..models import (
    ClassFact,
    ExportFact,
    FileFacts,
    FunctionSignature,
    Parameter,
    RouteFact,
)
from .stubs import classify_script_body

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z_$][\w$]*"

_FUNCTION_RE = re.compile(
    rf"(?P<export>\bexport\s+(?:default\s+)?)?(?P<async>\basync\s+)?\bfunction\b\s*\*?\s*"
    rf"(?P<name>{_IDENT})\s*(?:<[^>(]*>)?\s*\("
)
_ARROW_RE = re.compile(
    rf"(?P<export>\bexport\s+)?\b(?:const|let|var)\s+(?P<name>{_IDENT})\s*"
    rf"(?::[^=]+)?=\s*(?P<async>async\s+)?(?:function\b\s*\*?\s*(?:{_IDENT})?\s*)?"
    rf"(?:<[^>(]*>\s*)?(?:\(|(?P<single>{_IDENT})\s*=>)"
)
_CLASS_RE = re.compile(
    rf"(?P<export>\bexport\s+(?:default\s+)?)?(?:\babstract\s+)?\bclass\s+(?P<name>{_IDENT})"
    rf"(?:\s*<[^>{{]*>)?(?:\s+extends\s+(?P<base>[\w$.]+)(?:<[^>{{]*>)?)?"
    rf"(?:\s+implements\s+(?P<impl>[\w$.,\s<>]+?))?\s*\{{"
)
_MODIFIERS = r"(?:(?:public|private|protected|static|readonly|abstract|override|async|get|set)\s+)*"
_METHOD_RE = re.compile(rf"(?m)^[ \t]*(?P<mods>{_MODIFIERS})(?P<name>#?{_IDENT})\s*(?:<[^>(]*>)?\s*\(")
_PROPERTY_RE = re.compile(rf"(?m)^[ \t]*{_MODIFIERS}(?P<name>#?{_IDENT})\s*[?!]?\s*[:=;]")
_EXPORT_LIST_RE = re.compile(r"\bexport\s*\{(?P<names>[^}]*)\}")
_EXPORT_DEFAULT_RE = re.compile(rf"\bexport\s+default\s+(?P<name>{_IDENT})\s*;?\s*$", re.MULTILINE)
_EXPORT_VALUE_RE = re.compile(rf"\bexport\s+(?:const|let|var|enum|interface|type)\s+(?P<name>{_IDENT})")
_MODULE_EXPORTS_RE = re.compile(r"\bmodule\.exports\s*=\s*\{(?P<names>[^}]*)\}")
_MODULE_EXPORT_NAME_RE = re.compile(rf"\b(?:module\.)?exports\.(?P<name>{_IDENT})\s*=")
_IMPORT_RE = re.compile(r"""\b(?:from|import)\s*(?P<q>["'])""")
_REQUIRE_RE = re.compile(r"""\brequire\s*\(\s*(?P<q>["'])""")
_ROUTE_RE = re.compile(
    r"""\b(?:app|router|server|api|routes)\.(?P<verb>get|post|put|patch|delete|head|options|all)"""
    r"""\s*\(\s*(?P<q>["'`])"""
)

_ARROW_TAIL_RE = re.compile(r"\s*(?::[^=;{}]+)?=>")

_CONTROL_WORDS = {"if", "for", "while", "switch", "catch", "return", "function", "with", "super"}

# a "/" after one of these starts a regex literal rather than a division
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%~^")
_REGEX_KEYWORDS = {
    "return", "typeof", "instanceof", "case", "do", "else", "in", "of",
    "yield", "await", "void", "delete", "throw", "new",
}


def _regex_allowed(masked: list[str], index: int) -> bool:
    k = index - 1
    while k >= 0 and masked[k].isspace():
        k -= 1
    if k < 0:
        return True
    ch = masked[k]
    if ch in _REGEX_PRECEDERS:
        return True
    if ch.isalnum() or ch in "_$":
        end = k + 1
        while k >= 0 and (masked[k].isalnum() or masked[k] in "_$"):
            k -= 1
        return "".join(masked[k + 1 : end]) in _REGEX_KEYWORDS
    return False


def _regex_end(text: str, start: int) -> int:
    """Index of the closing "/" of a regex literal opened at start, or -1."""
    in_class = False
    j = start + 1
    while j < len(text):
        ch = text[j]
        if ch == "\n":
            return -1
        if ch == "\\":
            j += 2
            continue
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return j
        j += 1
    return -1


def mask_source(text: str) -> str:
    """
    Blank out comment bodies, string contents and regex literal bodies,
    preserving offsets.

    Quote characters and regex slashes are kept so literal spans can still
    be located.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            for j in range(i, end):
                out[j] = " "
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if text[j] != "\n":
                    out[j] = " "
            i = end
        elif ch == "/" and _regex_allowed(out, i) and _regex_end(text, i) != -1:
            end = _regex_end(text, i)
            for j in range(i + 1, end):
                out[j] = " "
            i = end + 1
        elif ch in "\"'`":
            j = i + 1
            while j < n and text[j] != ch:
                if text[j] == "\\":
                    out[j] = " "
                    j += 1
                    if j < n and text[j] != "\n":
                        out[j] = " "
                    j += 1
                    continue
                if text[j] == "\n" and ch != "`":
                    break
                if text[j] != "\n":
                    out[j] = " "
                j += 1
            i = j + 1
        else:
            i += 1
    return "".join(out)


def _brace_depths(masked: str) -> list[int]:
    depths = [0] * (len(masked) + 1)
    depth = 0
    for i, ch in enumerate(masked):
        depths[i] = depth
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
    depths[len(masked)] = depth
    return depths


def _match_close(masked: str, open_index: int, open_ch: str, close_ch: str) -> int:
    """Index of the bracket closing the one at open_index, or -1."""
    depth = 0
    for i in range(open_index, len(masked)):
        ch = masked[i]
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_top_level(masked: str, original: str) -> list[str]:
    parts = []
    depth = 0
    start = 0
    for i, ch in enumerate(masked):
        if ch in "([{<":
            depth += 1
        elif ch in ")]}" or (ch == ">" and masked[i - 1 : i] != "="):
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(original[start:i])
            start = i + 1
    parts.append(original[start:])
    return [p.strip() for p in parts if p.strip()]


_PARAM_RE = re.compile(
    r"^(?:(?:public|private|protected|readonly)\s+)*(?P<rest>\.\.\.)?(?P<name>[\w$]+|\{[^}]*\}|\[[^\]]*\])"
    r"\s*(?P<opt>\?)?\s*(?::\s*(?P<type>.+?))?\s*(?:=\s*(?P<default>.+))?$",
    re.DOTALL,
)


def parse_script_params(masked: str, original: str) -> list[Parameter]:
    """Parse a parenthesised parameter list (without the parentheses)."""
    params = []
    for raw in _split_top_level(masked, original):
        match = _PARAM_RE.match(raw)
        if not match:
            params.append(Parameter(name=raw))
            continue
        name = match.group("name")
        if match.group("rest"):
            name = f"...{name}"
        params.append(
            Parameter(
                name=name,
                type_hint=match.group("type").strip() if match.group("type") else None,
                optional=bool(match.group("opt") or match.group("default") or match.group("rest")),
                default=match.group("default").strip() if match.group("default") else None,
            )
        )
    return params


def _doc_comment(original: str, start: int) -> str | None:
    before = original[:start].rstrip()
    if not before.endswith("*/"):
        return None
    open_index = before.rfind("/**")
    if open_index == -1:
        return None
    body = before[open_index + 3 : -2]
    lines = [line.strip().lstrip("*").strip() for line in body.splitlines()]
    text = "\n".join(line for line in lines if line)
    return text or None


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


class _ScriptExtractor:
    def __init__(self, text: str, file_path: str, language: str):
        self.text = text
        self.file_path = file_path
        self.language = language
        self.masked = mask_source(text)
        self.depths = _brace_depths(self.masked)
        self.errors: list[str] = []

    def is_arrow(self, paren_index: int) -> bool:
        """Whether the parenthesis opens an arrow function's parameter list."""
        close = _match_close(self.masked, paren_index, "(", ")")
        if close == -1:
            return False
        return bool(_ARROW_TAIL_RE.match(self.masked, close + 1))

    def literal_at(self, quote_index: int) -> str:
        quote = self.text[quote_index]
        end = self.text.find(quote, quote_index + 1)
        if end == -1:
            return ""
        return self.text[quote_index + 1 : end]

    def callable_at(
        self,
        name: str,
        start: int,
        paren_index: int | None,
        is_async: bool,
        exported: bool,
        class_name: str | None = None,
        single_param: str | None = None,
    ) -> tuple[FunctionSignature, int]:
        """Build a signature from a declaration; returns it with the end offset."""
        masked = self.masked
        if paren_index is not None:
            close = _match_close(masked, paren_index, "(", ")")
            if close == -1:
                self.errors.append(f"Unterminated parameter list for {name} at line {_line_of(self.text, start)}")
                close = len(masked) - 1
            params = parse_script_params(masked[paren_index + 1 : close], self.text[paren_index + 1 : close])
            cursor = close + 1
        else:
            params = [Parameter(name=single_param)] if single_param else []
            cursor = masked.find("=>", start)

        return_type = None
        brace = masked.find("{", cursor)
        arrow = masked.find("=>", cursor)
        semicolon = masked.find(";", cursor)
        header_end = len(masked)
        for candidate in (brace, arrow, semicolon):
            if candidate != -1 and candidate < header_end:
                header_end = candidate
        header = masked[cursor:header_end].strip()
        if header.startswith(":"):
            return_type = self.text[cursor:header_end].strip()[1:].strip() or None

        body = ""
        end = header_end
        has_body = True
        if header_end == semicolon or header_end == len(masked):
            # Overload or abstract declaration without a body
            has_body = False
            end = header_end + 1
        elif header_end == arrow:
            after = arrow + 2
            stripped_after = masked[after:].lstrip()
            if stripped_after.startswith("{"):
                open_index = masked.index("{", after)
                close_index = _match_close(masked, open_index, "{", "}")
                if close_index == -1:
                    self.errors.append(f"Unbalanced braces in body of {name}")
                    close_index = len(masked) - 1
                body = self.text[open_index + 1 : close_index]
                end = close_index + 1
            else:
                line_end = masked.find("\n", after)
                line_end = len(masked) if line_end == -1 else line_end
                body = self.text[after:line_end].strip()
                end = line_end
        else:
            close_index = _match_close(masked, brace, "{", "}")
            if close_index == -1:
                self.errors.append(f"Unbalanced braces in body of {name}")
                close_index = len(masked) - 1
            body = self.text[brace + 1 : close_index]
            end = close_index + 1

        reason = classify_script_body(body) if has_body else None
        signature = FunctionSignature(
            name=name,
            params=tuple(params),
            return_type=return_type,
            is_async=is_async,
            is_exported=exported,
            is_stub=reason is not None,
            stub_reason=reason,
            doc_comment=_doc_comment(self.text, start),
            file_path=self.file_path,
            line=_line_of(self.text, start),
            class_name=class_name,
        )
        return signature, end

    def run(self) -> FileFacts:
        masked = self.masked
        if self.depths[len(masked)] != 0:
            self.errors.append("Unbalanced braces in file")

        exported_names = self._exported_names()

        functions: list[FunctionSignature] = []
        for match in _FUNCTION_RE.finditer(masked):
            if self.depths[match.start()] != 0:
                continue
            if masked[: match.start()].rstrip().endswith(("=", "(", ",", ":")):
                continue  # function expression, handled as a variable binding
            name = match.group("name")
            signature, _ = self.callable_at(
                name,
                match.start(),
                match.end() - 1,
                bool(match.group("async")),
                bool(match.group("export")) or name in exported_names,
            )
            functions.append(signature)

        for match in _ARROW_RE.finditer(masked):
            if self.depths[match.start()] != 0:
                continue
            name = match.group("name")
            single = match.group("single")
            if not single and "function" not in match.group(0) and not self.is_arrow(match.end() - 1):
                continue
            signature, _ = self.callable_at(
                name,
                match.start(),
                None if single else match.end() - 1,
                bool(match.group("async")),
                bool(match.group("export")) or name in exported_names,
                single_param=single,
            )
            functions.append(signature)
        functions.sort(key=lambda f: f.line)

        classes = [
            self._class(match, exported_names)
            for match in _CLASS_RE.finditer(masked)
            if self.depths[match.start()] == 0
        ]

        exports: list[ExportFact] = []
        seen: set[str] = set()
        for fn in functions:
            if fn.is_exported and fn.name not in seen:
                exports.append(ExportFact(fn.name, "function", self.file_path))
                seen.add(fn.name)
        for cls in classes:
            if cls.is_exported and cls.name not in seen:
                exports.append(ExportFact(cls.name, "class", self.file_path))
                seen.add(cls.name)
        for name in sorted(exported_names - seen):
            exports.append(ExportFact(name, "variable", self.file_path))

        if self.errors:
            logger.warning("Partial extraction for %s: %s", self.file_path, "; ".join(self.errors))

        return FileFacts(
            file_path=self.file_path,
            language=self.language,
            functions=tuple(functions),
            classes=tuple(classes),
            exports=tuple(exports),
            imports=tuple(self._imports()),
            routes=tuple(self._routes()),
            errors=tuple(self.errors),
        )

    def _class(self, match: re.Match, exported_names: set[str]) -> ClassFact:
        name = match.group("name")
        exported = bool(match.group("export")) or name in exported_names
        open_index = match.end() - 1
        close_index = _match_close(self.masked, open_index, "{", "}")
        if close_index == -1:
            self.errors.append(f"Unbalanced braces in class {name}")
            close_index = len(self.masked)
        body_depth = self.depths[open_index] + 1
        body_masked = self.masked[open_index + 1 : close_index]
        offset = open_index + 1

        methods: list[FunctionSignature] = []
        members: list[str] = []
        for method in _METHOD_RE.finditer(body_masked):
            absolute = offset + method.start("name")
            method_name = method.group("name")
            if self.depths[absolute] != body_depth or method_name in _CONTROL_WORDS:
                continue
            is_private = method_name.startswith("#") or "private" in method.group("mods")
            signature, _ = self.callable_at(
                method_name,
                offset + method.start(),
                offset + method.end() - 1,
                "async" in method.group("mods"),
                exported and not is_private,
                class_name=name,
            )
            methods.append(signature)
            members.append(method_name)
        for prop in _PROPERTY_RE.finditer(body_masked):
            absolute = offset + prop.start("name")
            if self.depths[absolute] == body_depth and prop.group("name") not in members:
                members.append(prop.group("name"))

        bases = [match.group("base")] if match.group("base") else []
        if match.group("impl"):
            bases.extend(b.strip() for b in match.group("impl").split(",") if b.strip())
        return ClassFact(
            name=name,
            members=tuple(members),
            base_types=tuple(bases),
            is_exported=exported,
            file_path=self.file_path,
            line=_line_of(self.text, match.start()),
            methods=tuple(methods),
        )

    def _exported_names(self) -> set[str]:
        names: set[str] = set()
        for match in _EXPORT_LIST_RE.finditer(self.masked):
            for part in match.group("names").split(","):
                part = part.strip()
                if not part:
                    continue
                # "a as b" exports the local symbol a
                names.add(part.split(" as ")[0].strip())
        for match in _MODULE_EXPORTS_RE.finditer(self.masked):
            for part in match.group("names").split(","):
                local = part.split(":")[-1].strip()
                if re.fullmatch(_IDENT, local):
                    names.add(local)
        for regex in (_EXPORT_DEFAULT_RE, _EXPORT_VALUE_RE, _MODULE_EXPORT_NAME_RE):
            for match in regex.finditer(self.masked):
                names.add(match.group("name"))
        return names

    def _imports(self) -> list[str]:
        result = []
        for regex in (_IMPORT_RE, _REQUIRE_RE):
            for match in regex.finditer(self.masked):
                value = self.literal_at(match.start("q"))
                if value:
                    result.append(value)
        return result

    def _routes(self) -> list[RouteFact]:
        routes = []
        for match in _ROUTE_RE.finditer(self.masked):
            path = self.literal_at(match.start("q"))
            if not path.startswith("/"):
                continue
            close = _match_close(self.masked, self.masked.rfind("(", 0, match.start("q")), "(", ")")
            handler = None
            if close != -1:
                args = self.masked[match.start("q") : close]
                tail = args.rsplit(",", 1)
                if len(tail) == 2 and re.fullmatch(rf"\s*[\w$.]+\s*", tail[1]):
                    handler = tail[1].strip()
            routes.append(
                RouteFact(
                    method=match.group("verb").upper(),
                    path=path,
                    handler=handler,
                    file_path=self.file_path,
                    line=_line_of(self.text, match.start()),
                )
            )
        return routes


def extract_script(text: str, file_path: str, language: str = "typescript") -> FileFacts:
    """
    Extract functions, classes, exports, imports and routes from JS/TS source.

    Args:
        text: File contents
        file_path: Path recorded on every fact
        language: "javascript" or "typescript"

    Returns:
        FileFacts; structural problems are recorded in ``errors``
    """
    return _ScriptExtractor(text, file_path, language).run()
