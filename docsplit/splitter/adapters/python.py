"""Python grammar adapter."""

from __future__ import annotations

from typing import Any

from docsplit.splitter.adapters.base import (
    GrammarAdapter,
    ParseResult,
    node_text,
    parse_with_tree_sitter,
)
from docsplit.splitter.types import BoundaryCategory, BoundaryKind

CLASS_NODES = frozenset({"class_definition"})
FUNCTION_NODES = frozenset({"function_definition"})
IMPORT_NODES = frozenset({"import_statement", "import_from_statement", "future_import_statement"})
WRAPPER_NODES = frozenset({"decorated_definition"})

# Comments that carry tool directives instead of documentation
DIRECTIVE_PREFIXES = (
    "!",
    "type:",
    "noqa",
    "pragma",
    "pylint:",
    "mypy:",
    "fmt:",
    "isort:",
    "-*-",
    "coding",
)
MIN_COMMENT_LENGTH = 3

PYTHON_EXTENSIONS = (".py", ".pyi", ".pyw")
PYTHON_MIME_TYPES = (
    "text/x-python",
    "text/python",
    "application/python",
    "application/x-python",
)


class PythonAdapter(GrammarAdapter):
    """Adapter for Python sources.

    Classes and functions (sync and async) are boundaries, imports are
    named structural units, and decorators are folded into the decorated
    definition. Functions nested inside another function are local helpers
    and stay part of the enclosing function's chunk.
    """

    name = "python"
    file_extensions = PYTHON_EXTENSIONS
    mime_types = PYTHON_MIME_TYPES

    _kinds = CLASS_NODES | FUNCTION_NODES | IMPORT_NODES | WRAPPER_NODES

    def parse(self, source: str) -> ParseResult:
        return parse_with_tree_sitter("python", source)

    def structural_node_kinds(self) -> frozenset[str]:
        return self._kinds

    def classify(self, node: Any) -> tuple[BoundaryKind, BoundaryCategory]:
        if node.type in CLASS_NODES:
            return BoundaryKind.CLASS, BoundaryCategory.STRUCTURAL
        if node.type in IMPORT_NODES:
            return BoundaryKind.MODULE, BoundaryCategory.STRUCTURAL
        if node.type in FUNCTION_NODES:
            return BoundaryKind.FUNCTION, BoundaryCategory.CONTENT
        return BoundaryKind.OTHER, BoundaryCategory.CONTENT

    def should_defer_to_children(self, node: Any) -> bool:
        return node.type in WRAPPER_NODES

    def extract_name(self, node: Any) -> str | None:
        if node.type == "import_statement":
            modules = [node_text(child) for child in node.children_by_field_name("name")]
            return f"import {', '.join(modules)}" if modules else None
        if node.type == "import_from_statement":
            module = node.child_by_field_name("module_name")
            return f"from {node_text(module)}" if module is not None else None
        if node.type == "future_import_statement":
            return "from __future__"

        if node.type in FUNCTION_NODES and self._is_local(node):
            return None
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        return node_text(name_node) or None

    def extract_modifiers(self, node: Any) -> list[str]:
        modifiers = []
        parent = node.parent
        if parent is not None and parent.type in WRAPPER_NODES:
            for child in parent.children:
                if child.type == "decorator":
                    modifiers.append(node_text(child).strip())
        if any(child.type == "async" for child in node.children):
            modifiers.append("async")
        return modifiers

    def is_documentation_comment(self, node: Any) -> bool:
        if node.type != "comment":
            return False
        body = node_text(node).strip()[1:].strip()
        if len(body) < MIN_COMMENT_LENGTH:
            return False
        return not body.startswith(DIRECTIVE_PREFIXES)

    def carries_pending_docs(self, node: Any) -> bool:
        return node.type == "block"

    def _is_local(self, node: Any) -> bool:
        parent = node.parent
        while parent is not None:
            if parent.type in CLASS_NODES or parent.type == "module":
                return False
            if parent.type in FUNCTION_NODES:
                return True
            parent = parent.parent
        return False
