"""JavaScript/TypeScript-family grammar adapter.

Covers .ts/.tsx/.mts/.cts and .js/.jsx/.mjs/.cjs sources. Everything is
parsed with the TypeScript grammar (a superset of JavaScript); the TSX
grammar is used when the content declares JSX or JSX syntax is detected.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from docsplit.splitter.adapters.base import (
    GrammarAdapter,
    ParseResult,
    node_text,
    parse_with_tree_sitter,
)
from docsplit.splitter.types import BoundaryCategory, BoundaryKind

logger = logging.getLogger(__name__)

CLASS_NODES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
INTERFACE_NODES = frozenset({"interface_declaration", "type_alias_declaration"})
ENUM_NODES = frozenset({"enum_declaration"})
NAMESPACE_NODES = frozenset({"internal_module", "module"})
IMPORT_NODES = frozenset({"import_statement"})
FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_signature",
        "method_definition",
        "method_signature",
        "abstract_method_signature",
    }
)
# Declarations that only become boundaries when they hold a function value
DECLARATOR_NODES = frozenset({"variable_declarator"})
# Transparent wrappers around the real boundary
WRAPPER_NODES = frozenset(
    {"export_statement", "lexical_declaration", "variable_declaration", "ambient_declaration"}
)

FUNCTION_VALUE_NODES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
# Any node that opens a function body; boundaries nested in one are local helpers
FUNCTION_SCOPE_NODES = FUNCTION_VALUE_NODES | frozenset(
    {"function_declaration", "generator_function_declaration", "method_definition"}
)
# Containers that end the search for an enclosing function scope
CONTAINER_NODES = CLASS_NODES | NAMESPACE_NODES | frozenset({"program", "class_body"})

MODIFIER_TOKENS = frozenset(
    {
        "export",
        "default",
        "async",
        "static",
        "abstract",
        "readonly",
        "declare",
        "override",
        "get",
        "set",
        "*",
    }
)

# Line comments that configure tooling rather than document code
DIRECTIVE_PREFIXES = (
    "eslint",
    "@ts-",
    "prettier-ignore",
    "istanbul",
    "tslint",
    "jshint",
    "global ",
    "#region",
    "#endregion",
    "/ <reference",
)
MIN_LINE_COMMENT_LENGTH = 3
QUOTES = "\"'`"

TS_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts")
JS_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")
TS_MIME_TYPES = (
    "text/typescript",
    "application/typescript",
    "text/x-typescript",
    "text/tsx",
    "text/x-tsx",
)
JS_MIME_TYPES = (
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "text/jsx",
    "text/x-jsx",
)
TSX_EXTENSIONS = (".tsx", ".jsx")
TSX_MIME_TYPES = ("text/tsx", "text/x-tsx", "text/jsx", "text/x-jsx")

_JSX_PATTERNS = (
    re.compile(r"<[A-Z][A-Za-z0-9.]*[\s/>]"),  # <Component ...>
    re.compile(r"return\s*\(\s*<"),  # return (<div>
    re.compile(r"=>\s*\(?\s*<[a-zA-Z>]"),  # () => <div>
    re.compile(r"</[a-zA-Z][\w.]*>"),  # closing tag
    re.compile(r"<>|</>"),  # fragments
)


def detect_jsx(source: str) -> bool:
    """Check whether source appears to contain JSX syntax."""
    return any(pattern.search(source) for pattern in _JSX_PATTERNS)


class TypeScriptAdapter(GrammarAdapter):
    """Adapter for the JavaScript/TypeScript language family.

    Args:
        force_tsx: Always use the TSX grammar (for .tsx/.jsx content)
    """

    name = "typescript"
    file_extensions = TS_EXTENSIONS + JS_EXTENSIONS
    mime_types = TS_MIME_TYPES + JS_MIME_TYPES

    _kinds = (
        CLASS_NODES
        | INTERFACE_NODES
        | ENUM_NODES
        | NAMESPACE_NODES
        | IMPORT_NODES
        | FUNCTION_NODES
        | DECLARATOR_NODES
        | WRAPPER_NODES
    )

    def __init__(self, force_tsx: bool = False):
        self.force_tsx = force_tsx
        if force_tsx:
            self.name = "tsx"
            self.file_extensions = TSX_EXTENSIONS
            self.mime_types = TSX_MIME_TYPES

    def grammar_for(self, source: str) -> str:
        """Choose the tree-sitter grammar for a document."""
        if self.force_tsx or detect_jsx(source):
            return "tsx"
        return "typescript"

    def parse(self, source: str) -> ParseResult:
        grammar = self.grammar_for(source)
        logger.debug("Parsing %d characters with the %s grammar", len(source), grammar)
        return parse_with_tree_sitter(grammar, source)

    def structural_node_kinds(self) -> frozenset[str]:
        return self._kinds

    def classify(self, node: Any) -> tuple[BoundaryKind, BoundaryCategory]:
        node_type = node.type
        if node_type in CLASS_NODES:
            return BoundaryKind.CLASS, BoundaryCategory.STRUCTURAL
        if node_type in INTERFACE_NODES:
            return BoundaryKind.INTERFACE, BoundaryCategory.STRUCTURAL
        if node_type in ENUM_NODES:
            return BoundaryKind.ENUM, BoundaryCategory.STRUCTURAL
        if node_type in NAMESPACE_NODES or node_type in IMPORT_NODES:
            return BoundaryKind.MODULE, BoundaryCategory.STRUCTURAL
        if node_type in FUNCTION_NODES or node_type in DECLARATOR_NODES:
            return BoundaryKind.FUNCTION, BoundaryCategory.CONTENT
        return BoundaryKind.OTHER, BoundaryCategory.CONTENT

    def should_defer_to_children(self, node: Any) -> bool:
        return node.type in WRAPPER_NODES

    def extract_name(self, node: Any) -> str | None:
        node_type = node.type

        if node_type in IMPORT_NODES:
            source = node.child_by_field_name("source")
            if source is None:
                return None
            return f"import {node_text(source).strip(QUOTES)}"

        if node_type in DECLARATOR_NODES:
            value = node.child_by_field_name("value")
            if value is None or value.type not in FUNCTION_VALUE_NODES:
                return None
            if self._is_local(node):
                return None
            return self._identifier(node)

        if node_type in FUNCTION_NODES and self._is_local(node):
            return None

        name = self._identifier(node)
        if name is None:
            return None
        if node_type == "method_definition" and self._has_token(node, "static"):
            return f"static {name}"
        return name

    def extract_modifiers(self, node: Any) -> list[str]:
        modifiers = []
        parent = node.parent
        while parent is not None and parent.type in WRAPPER_NODES:
            for child in parent.children:
                if child.type in ("export", "default", "declare"):
                    modifiers.append(child.type)
            parent = parent.parent
        if node.type in DECLARATOR_NODES:
            value = node.child_by_field_name("value")
            if value is not None:
                modifiers.extend(self._modifier_tokens(value))
        modifiers.extend(self._modifier_tokens(node))
        return list(dict.fromkeys(modifiers))

    def is_documentation_comment(self, node: Any) -> bool:
        if node.type != "comment":
            return False
        text = node_text(node).strip()
        if text.startswith("/**") and not text.startswith("/**/"):
            return True
        if text.startswith("//"):
            body = text[2:].strip()
            if len(body) < MIN_LINE_COMMENT_LENGTH:
                return False
            return not body.startswith(DIRECTIVE_PREFIXES)
        return False

    def _identifier(self, node: Any) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = node_text(name_node).strip()
        return name or None

    def _is_local(self, node: Any) -> bool:
        """Whether node is nested in a function body before any container."""
        parent = node.parent
        while parent is not None:
            if parent.type in CONTAINER_NODES:
                return False
            if parent.type in FUNCTION_SCOPE_NODES:
                return True
            parent = parent.parent
        return False

    def _has_token(self, node: Any, token: str) -> bool:
        return any(child.type == token for child in node.children)

    def _modifier_tokens(self, node: Any) -> list[str]:
        modifiers = []
        for child in node.children:
            if child.type in MODIFIER_TOKENS:
                modifiers.append("generator" if child.type == "*" else child.type)
            elif child.type == "accessibility_modifier":
                modifiers.append(node_text(child).strip())
        return modifiers
