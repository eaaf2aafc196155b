"""
Python structural extraction using the standard library ``ast`` module.

Broken files fall back to a line-based scan for ``def``/``class`` headers so
a single syntax error does not hide every symbol in the file.
"""

from __future__ import annotations

import ast
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
from .stubs import (
    REASON_EMPTY,
    REASON_NOT_IMPLEMENTED,
    REASON_PLACEHOLDER,
    is_not_implemented_message,
    is_placeholder_text,
)

logger = logging.getLogger(__name__)

ROUTE_DECORATORS = {"get", "post", "put", "patch", "delete", "head", "options", "route", "api_route"}


def extract_python(text: str, file_path: str) -> FileFacts:
    """
    Extract functions, classes, imports, exports and routes from Python source.

    Args:
        text: File contents
        file_path: Path recorded on every fact

    Returns:
        FileFacts; on a syntax error a partial result with the error recorded
    """
    try:
        tree = ast.parse(text, filename=file_path)
    except (SyntaxError, ValueError) as e:
        lineno = getattr(e, "lineno", None)
        message = f"SyntaxError at line {lineno}: {getattr(e, 'msg', e)}"
        logger.warning("Partial extraction for %s: %s", file_path, message)
        return _recover(text, file_path, message)

    visitor = _ModuleVisitor(file_path, _read_dunder_all(tree))
    visitor.visit_module(tree)
    return FileFacts(
        file_path=file_path,
        language="python",
        functions=tuple(visitor.functions),
        classes=tuple(visitor.classes),
        exports=tuple(visitor.exports),
        imports=tuple(visitor.imports),
        routes=tuple(visitor.routes),
    )


def classify_python_body(body: list[ast.stmt]) -> str | None:
    """
    Apply the stub rules to a Python function body.

    Returns:
        The stub reason, or None when the body looks implemented
    """
    statements = list(body)
    if statements and _is_docstring(statements[0]):
        statements = statements[1:]
    if not statements:
        return REASON_EMPTY
    if len(statements) != 1:
        return None

    stmt = statements[0]
    if isinstance(stmt, ast.Pass):
        return REASON_EMPTY
    if (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and stmt.value.value is Ellipsis
    ):
        return REASON_EMPTY
    if isinstance(stmt, ast.Raise) and stmt.exc is not None:
        exc = stmt.exc
        call_args: list[ast.expr] = []
        if isinstance(exc, ast.Call):
            call_args = exc.args
            exc = exc.func
        name = exc.id if isinstance(exc, ast.Name) else getattr(exc, "attr", "")
        if name == "NotImplementedError":
            return REASON_NOT_IMPLEMENTED
        for arg in call_args:
            if (
                isinstance(arg, ast.Constant)
                and isinstance(arg.value, str)
                and is_not_implemented_message(arg.value)
            ):
                return REASON_NOT_IMPLEMENTED
    if (
        isinstance(stmt, ast.Return)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
        and is_placeholder_text(stmt.value.value)
    ):
        return REASON_PLACEHOLDER
    return None


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def _read_dunder_all(tree: ast.Module) -> set[str] | None:
    for node in tree.body:
        if not isinstance(node, ast.Assign):
            continue
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets):
            continue
        if isinstance(node.value, (ast.List, ast.Tuple)):
            return {
                elt.value
                for elt in node.value.elts
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
            }
    return None


def _unparse(node: ast.AST | None) -> str | None:
    if node is None:
        return None
    return ast.unparse(node)


class _ModuleVisitor:
    """Walks module-level statements (and class bodies) only."""

    def __init__(self, file_path: str, dunder_all: set[str] | None):
        self.file_path = file_path
        self.dunder_all = dunder_all
        self.functions: list[FunctionSignature] = []
        self.classes: list[ClassFact] = []
        self.exports: list[ExportFact] = []
        self.imports: list[str] = []
        self.routes: list[RouteFact] = []

    def is_public(self, name: str) -> bool:
        if self.dunder_all is not None:
            return name in self.dunder_all
        return not name.startswith("_")

    def visit_module(self, tree: ast.Module) -> None:
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                exported = self.is_public(node.name)
                self.functions.append(self._signature(node, exported))
                if exported:
                    self.exports.append(ExportFact(node.name, "function", self.file_path))
            elif isinstance(node, ast.ClassDef):
                exported = self.is_public(node.name)
                self.classes.append(self._class(node, exported))
                if exported:
                    self.exports.append(ExportFact(node.name, "class", self.file_path))
            elif isinstance(node, ast.Import):
                self.imports.extend(alias.name for alias in node.names)
            elif isinstance(node, ast.ImportFrom):
                module = "." * node.level + (node.module or "")
                self.imports.append(module)
            elif isinstance(node, (ast.Assign, ast.AnnAssign)) and self.dunder_all:
                targets = node.targets if isinstance(node, ast.Assign) else [node.target]
                for target in targets:
                    if isinstance(target, ast.Name) and target.id in self.dunder_all:
                        self.exports.append(ExportFact(target.id, "variable", self.file_path))

    def _class(self, node: ast.ClassDef, exported: bool) -> ClassFact:
        methods = []
        members = []
        for item in node.body:
            if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                public = exported and not item.name.startswith("_")
                methods.append(self._signature(item, public, class_name=node.name))
                members.append(item.name)
            elif isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
                members.append(item.target.id)
            elif isinstance(item, ast.Assign):
                members.extend(t.id for t in item.targets if isinstance(t, ast.Name))
        return ClassFact(
            name=node.name,
            members=tuple(members),
            base_types=tuple(_unparse(b) for b in node.bases),
            is_exported=exported,
            file_path=self.file_path,
            line=node.lineno,
            methods=tuple(methods),
        )

    def _signature(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        exported: bool,
        class_name: str | None = None,
    ) -> FunctionSignature:
        params = _parameters(node.args)
        if class_name and params and not _is_staticmethod(node):
            if params[0].name in ("self", "cls"):
                params = params[1:]

        self._collect_routes(node)
        reason = classify_python_body(node.body)
        return FunctionSignature(
            name=node.name,
            params=tuple(params),
            return_type=_unparse(node.returns),
            is_async=isinstance(node, ast.AsyncFunctionDef),
            is_exported=exported,
            is_stub=reason is not None,
            stub_reason=reason,
            doc_comment=ast.get_docstring(node),
            file_path=self.file_path,
            line=node.lineno,
            class_name=class_name,
        )

    def _collect_routes(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        for decorator in node.decorator_list:
            if not isinstance(decorator, ast.Call) or not isinstance(
                decorator.func, ast.Attribute
            ):
                continue
            verb = decorator.func.attr.lower()
            if verb not in ROUTE_DECORATORS or not decorator.args:
                continue
            first = decorator.args[0]
            if not (isinstance(first, ast.Constant) and isinstance(first.value, str)):
                continue
            methods = [verb.upper()]
            if verb in ("route", "api_route"):
                methods = _route_methods(decorator) or ["GET"]
            for method in methods:
                self.routes.append(
                    RouteFact(
                        method=method,
                        path=first.value,
                        handler=node.name,
                        file_path=self.file_path,
                        line=node.lineno,
                    )
                )


def _route_methods(call: ast.Call) -> list[str]:
    for keyword in call.keywords:
        if keyword.arg == "methods" and isinstance(keyword.value, (ast.List, ast.Tuple)):
            return [
                elt.value.upper()
                for elt in keyword.value.elts
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
            ]
    return []


def _is_staticmethod(node: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    return any(isinstance(d, ast.Name) and d.id == "staticmethod" for d in node.decorator_list)


def _parameters(args: ast.arguments) -> list[Parameter]:
    params: list[Parameter] = []

    positional = list(args.posonlyargs) + list(args.args)
    defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
    defaults += list(args.defaults)
    for arg, default in zip(positional, defaults):
        params.append(_parameter(arg, default))

    if args.vararg:
        params.append(_parameter(args.vararg, None, name=f"*{args.vararg.arg}", optional=True))
    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        params.append(_parameter(arg, default))
    if args.kwarg:
        params.append(_parameter(args.kwarg, None, name=f"**{args.kwarg.arg}", optional=True))
    return params


def _parameter(
    arg: ast.arg,
    default: ast.expr | None,
    name: str | None = None,
    optional: bool = False,
) -> Parameter:
    type_hint = _unparse(arg.annotation)
    if default is not None:
        optional = True
    elif type_hint and ("Optional" in type_hint or "None" in type_hint):
        optional = True
    return Parameter(
        name=name or arg.arg,
        type_hint=type_hint,
        optional=optional,
        default=_unparse(default),
    )


# Line-based recovery for files the parser rejects

_DEF_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<async>async\s+)?def\s+(?P<name>\w+)\s*\((?P<params>[^)]*)")
_CLASS_RE = re.compile(r"^(?P<indent>[ \t]*)class\s+(?P<name>\w+)\s*(?:\((?P<bases>[^)]*)\))?")


def _recover(text: str, file_path: str, error: str) -> FileFacts:
    functions: list[FunctionSignature] = []
    class_rows: list[tuple[str, int, int, list[str]]] = []
    class_methods: dict[str, list[FunctionSignature]] = {}

    for lineno, line in enumerate(text.splitlines(), start=1):
        class_match = _CLASS_RE.match(line)
        if class_match:
            indent = len(class_match.group("indent").expandtabs())
            bases = [b.strip() for b in (class_match.group("bases") or "").split(",") if b.strip()]
            class_rows.append((class_match.group("name"), indent, lineno, bases))
            class_methods.setdefault(class_match.group("name"), [])
            continue

        def_match = _DEF_RE.match(line)
        if not def_match:
            continue
        indent = len(def_match.group("indent").expandtabs())
        name = def_match.group("name")
        owner = None
        for class_name, class_indent, _, _ in reversed(class_rows):
            if class_indent < indent:
                owner = class_name
                break
        if indent > 0 and owner is None:
            continue  # nested helper, not a module-level symbol

        params = [
            Parameter(name=p.split(":")[0].split("=")[0].strip(), optional="=" in p)
            for p in def_match.group("params").split(",")
            if p.strip() and p.split(":")[0].strip() not in ("self", "cls")
        ]
        signature = FunctionSignature(
            name=name,
            params=tuple(params),
            is_async=bool(def_match.group("async")),
            is_exported=not name.startswith("_"),
            file_path=file_path,
            line=lineno,
            class_name=owner,
        )
        if owner:
            class_methods[owner].append(signature)
        else:
            functions.append(signature)

    classes = tuple(
        ClassFact(
            name=name,
            members=tuple(m.name for m in class_methods[name]),
            base_types=tuple(bases),
            is_exported=not name.startswith("_"),
            file_path=file_path,
            line=lineno,
            methods=tuple(class_methods[name]),
        )
        for name, _, lineno, bases in class_rows
    )
    exports = [ExportFact(f.name, "function", file_path) for f in functions if f.is_exported]
    exports += [ExportFact(c.name, "class", file_path) for c in classes if c.is_exported]

    return FileFacts(
        file_path=file_path,
        language="python",
        functions=tuple(functions),
        classes=classes,
        exports=tuple(exports),
        errors=(error,),
    )
