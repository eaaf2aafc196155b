"""
Tests for extraction/python_source.py
=====================================

Structural extraction of Python modules with the ast module.
"""

from textwrap import dedent

from spec_roadmap.extraction import extract_source
from spec_roadmap.extraction.python_source import extract_python


def _extract(source: str):
    return extract_python(dedent(source), "src/app.py")


class TestFunctions:
    """Tests for module-level function signatures."""

    def test_signature_details(self):
        """Test parameters, defaults, return type and async flag."""
        facts = _extract(
            '''
            async def fetch_orders(customer_id: int, limit: int = 10, *args, since=None, **filters) -> list:
                """Load recent orders."""
                return await db.orders(customer_id, limit)
            '''
        )

        function = facts.functions[0]
        assert function.name == "fetch_orders"
        assert function.is_async is True
        assert function.return_type == "list"
        assert function.doc_comment == "Load recent orders."
        assert function.param_names == ["customer_id", "limit", "*args", "since", "**filters"]
        assert function.params[0].type_hint == "int"
        assert function.params[0].optional is False
        assert function.params[1].default == "10"
        assert function.params[1].optional is True
        assert function.line == 2
        assert function.is_stub is False

    def test_optional_annotation_marks_parameter_optional(self):
        """Test Optional[...] annotations count as optional."""
        facts = _extract(
            """
            def find(name: Optional[str]):
                return name
            """
        )
        assert facts.functions[0].params[0].optional is True

    def test_nested_functions_ignored(self):
        """Test only module-level definitions are reported."""
        facts = _extract(
            """
            def outer():
                def inner():
                    return 1
                return inner()
            """
        )
        assert [f.name for f in facts.functions] == ["outer"]


class TestExports:
    """Tests for the export rules."""

    def test_underscore_names_private(self):
        """Test names without a leading underscore are exported."""
        facts = _extract(
            """
            def public():
                return 1

            def _helper():
                return 2
            """
        )
        exported = {f.name: f.is_exported for f in facts.functions}
        assert exported == {"public": True, "_helper": False}
        assert [e.symbol_name for e in facts.exports] == ["public"]

    def test_dunder_all_wins(self):
        """Test __all__ restricts the exported names."""
        facts = _extract(
            """
            __all__ = ["login", "VERSION"]
            VERSION = "1.0"

            def login():
                return True

            def logout():
                return True
            """
        )
        exported = {f.name: f.is_exported for f in facts.functions}
        assert exported == {"login": True, "logout": False}
        assert {(e.symbol_name, e.kind) for e in facts.exports} == {
            ("login", "function"),
            ("VERSION", "variable"),
        }


class TestClasses:
    """Tests for class facts."""

    def test_members_and_methods(self):
        """Test members, bases and self-less method parameters."""
        facts = _extract(
            """
            class UserService(BaseService, Auditable):
                table: str = "users"
                retries = 3

                def create(self, email, password):
                    return self.repo.add(email, password)

                @staticmethod
                def normalize(email):
                    return email.lower()
            """
        )

        cls = facts.classes[0]
        assert cls.name == "UserService"
        assert cls.base_types == ("BaseService", "Auditable")
        assert cls.members == ("table", "retries", "create", "normalize")
        assert cls.methods[0].param_names == ["email", "password"]
        assert cls.methods[0].class_name == "UserService"
        assert cls.methods[0].qualified_name == "UserService.create"
        assert cls.methods[1].param_names == ["email"]
        assert cls.is_stub is False

    def test_all_stub_methods_make_stub_class(self):
        """Test a class whose methods are all stubs is a stub."""
        facts = _extract(
            """
            class PaymentGateway:
                def charge(self, amount):
                    raise NotImplementedError

                def refund(self, amount):
                    pass
            """
        )
        assert facts.classes[0].is_stub is True


class TestStubDetection:
    """Tests for the three stub rules."""

    def test_empty_body(self):
        """Test pass, ellipsis and docstring-only bodies."""
        facts = _extract(
            '''
            def a():
                pass

            def b():
                ...

            def c():
                """Not written yet."""
            '''
        )
        assert [f.stub_reason for f in facts.functions] == ["empty-body"] * 3

    def test_not_implemented_marker(self):
        """Test NotImplementedError and 'not implemented' messages."""
        facts = _extract(
            """
            def a():
                raise NotImplementedError()

            def b():
                raise RuntimeError("not implemented yet")
            """
        )
        assert [f.stub_reason for f in facts.functions] == ["not-implemented-marker"] * 2

    def test_placeholder_text(self):
        """Test returning a TODO string is a stub."""
        facts = _extract(
            """
            def reset_password(email):
                return "TODO: Implement"
            """
        )
        assert facts.functions[0].is_stub is True
        assert facts.functions[0].stub_reason == "returns-placeholder-text"

    def test_real_bodies_are_not_stubs(self):
        """Test ordinary implementations and real error handling."""
        facts = _extract(
            """
            def greet(name):
                return "Hello " + name

            def check(value):
                raise ValueError("value must be positive")

            def status():
                return "ready"
            """
        )
        assert [f.is_stub for f in facts.functions] == [False, False, False]

    def test_marker_inside_word_is_not_stub(self):
        """Test returning table or state names that contain a marker."""
        facts = _extract(
            """
            def table():
                return "todo_items"

            def state():
                return "implemented"

            def plural():
                return "todos"

            def later():
                return "TODO: Implement"
            """
        )
        assert [f.is_stub for f in facts.functions] == [False, False, False, True]


class TestRoutes:
    """Tests for decorator-based route collection."""

    def test_verb_decorators(self):
        """Test @app.get style decorators."""
        facts = _extract(
            """
            @app.get("/users/{user_id}")
            def get_user(user_id):
                return load(user_id)

            @router.post("/users")
            async def create_user(payload):
                return save(payload)
            """
        )
        assert [(r.method, r.path, r.handler) for r in facts.routes] == [
            ("GET", "/users/{user_id}", "get_user"),
            ("POST", "/users", "create_user"),
        ]

    def test_route_with_methods(self):
        """Test Flask style @app.route with methods=[...]."""
        facts = _extract(
            """
            @app.route("/login", methods=["GET", "POST"])
            def login():
                return render()
            """
        )
        assert [(r.method, r.path) for r in facts.routes] == [("GET", "/login"), ("POST", "/login")]


class TestImports:
    def test_collects_modules(self):
        facts = _extract(
            """
            import os
            import yaml as y
            from pathlib import Path
            from . import models
            from ..core import safe_io
            """
        )
        assert facts.imports == ("os", "yaml", "pathlib", ".", "..core")


class TestSyntaxErrors:
    """Tests for the line-based recovery path."""

    def test_partial_result(self):
        """Test symbols before and after the error are still reported."""
        facts = extract_source(
            dedent(
                """
                def good(a, b=1):
                    return a

                total = = 1

                class Service(Base):
                    def run(self, job):
                        return job
                """
            ),
            "python",
            "src/broken.py",
        )

        assert facts.has_errors
        assert facts.errors[0].startswith("SyntaxError at line")
        assert [f.name for f in facts.functions] == ["good"]
        assert facts.functions[0].param_names == ["a", "b"]
        assert facts.classes[0].name == "Service"
        assert facts.classes[0].methods[0].param_names == ["job"]
