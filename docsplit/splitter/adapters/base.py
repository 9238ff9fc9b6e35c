"""Grammar adapter contract.

A grammar adapter knows how one language family looks in a parse tree:
which node kinds are candidate boundaries, how they are named and
classified, which nodes are transparent wrappers and which comments are
documentation. The traversal itself lives in the generic BoundaryExtractor,
so adapters stay small and hold no per-parse state.

Nodes follow the py-tree-sitter Node interface (type, children, parent,
start_point, end_point, start_byte, end_byte, text). The JSON adapter
produces its own nodes with the same attributes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from docsplit.errors import ParseError
from docsplit.splitter.types import BoundaryCategory, BoundaryKind

logger = logging.getLogger(__name__)

# Node type tree-sitter uses for regions it could not parse
ERROR_NODE_TYPE = "ERROR"


@dataclass(frozen=True)
class ParseResult:
    """Result of parsing one document.

    Attributes:
        tree: Parse tree exposing a root_node attribute
        has_errors: Whether the parser reported syntax errors
        error_count: Number of error regions found
    """

    tree: Any
    has_errors: bool = False
    error_count: int = 0

    @property
    def root_node(self) -> Any:
        return self.tree.root_node


def node_text(node: Any) -> str:
    """Decode the source text of a node."""
    text = node.text
    if text is None:
        return ""
    if isinstance(text, bytes):
        return text.decode("utf-8", errors="replace")
    return text


def count_error_nodes(node: Any) -> int:
    """Count ERROR and MISSING nodes below (and including) a node."""
    count = 0
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == ERROR_NODE_TYPE or getattr(current, "is_missing", False):
            count += 1
        stack.extend(current.children)
    return count


def parse_with_tree_sitter(grammar: str, source: str) -> ParseResult:
    """Parse source with a freshly created tree-sitter parser.

    A new parser is created on every call and never cached, so concurrent
    or interleaved parses cannot share parser state. The compiled grammar
    itself is cached by tree-sitter-language-pack and is immutable.

    Args:
        grammar: tree-sitter-language-pack grammar name
        source: Source code to parse

    Returns:
        ParseResult for the document

    Raises:
        ParseError: If the grammar is unavailable or the parser fails
    """
    try:
        from tree_sitter_language_pack import get_parser
    except ImportError as e:
        raise ParseError(
            "tree-sitter-language-pack is required for grammar-based splitting. "
            "Install with: pip install tree-sitter-language-pack"
        ) from e

    try:
        parser = get_parser(grammar)
        tree = parser.parse(source.encode("utf-8"))
    except Exception as e:
        raise ParseError(f"tree-sitter failed to parse {grammar} source: {e}") from e

    root = tree.root_node
    error_count = count_error_nodes(root) if root.has_error else 0
    return ParseResult(tree=tree, has_errors=error_count > 0, error_count=error_count)


class GrammarAdapter(ABC):
    """Structural knowledge about one language family.

    Implementations must be stateless after construction: the same adapter
    instance is shared by every split call, possibly concurrently.
    """

    name: str = ""
    file_extensions: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, source: str) -> ParseResult:
        """Parse source into a tree. Must not reuse parser state across calls."""

    @abstractmethod
    def structural_node_kinds(self) -> frozenset[str]:
        """Node types that are candidate boundaries (including wrappers)."""

    @abstractmethod
    def classify(self, node: Any) -> tuple[BoundaryKind, BoundaryCategory]:
        """Map a candidate node to a boundary kind and category."""

    @abstractmethod
    def extract_name(self, node: Any) -> str | None:
        """Name of the unit, or None when the node is not a boundary."""

    def extract_modifiers(self, node: Any) -> list[str]:
        """Modifiers such as export/async/static. Informational only."""
        return []

    def should_defer_to_children(self, node: Any) -> bool:
        """Whether node is a transparent wrapper around the real boundary."""
        return False

    def is_documentation_comment(self, node: Any) -> bool:
        """Whether node is a documentation comment for the following unit."""
        return False

    def carries_pending_docs(self, node: Any) -> bool:
        """Whether documentation comments before node belong to its first child.

        True for body nodes that the grammar places after comments written
        on the first lines of the body.
        """
        return False

    def is_error(self, node: Any) -> bool:
        """Whether node marks a region the parser could not understand."""
        return node.type == ERROR_NODE_TYPE

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
