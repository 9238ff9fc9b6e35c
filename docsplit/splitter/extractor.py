"""Boundary extraction.

One generic pass over a parse tree, parameterized by a GrammarAdapter. The
walk runs in document order and maintains two pieces of state:

- the path of enclosing boundary names, carried in an immutable frame
  passed down the recursion, and
- the pending documentation comments, threaded through sibling iteration
  as a tuple that each visit returns.

Documentation comments directly preceding a boundary are folded into its
span so they always land in the same chunk as the unit they describe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from docsplit.splitter.adapters.base import GrammarAdapter, ParseResult, node_text
from docsplit.splitter.types import Boundary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingDoc:
    """Start of a documentation comment waiting for its boundary.

    Wrapper nodes also push an entry with empty text so the first boundary
    inside the wrapper starts where the wrapper does.
    """

    start_line: int
    start_byte: int
    text: str = ""


@dataclass(frozen=True)
class Frame:
    """Immutable traversal context for one level of recursion.

    Attributes:
        path: Names of the enclosing boundaries
        in_wrapper: Whether the walk is inside a deferred wrapper
    """

    path: tuple[str, ...] = ()
    in_wrapper: bool = False


class BoundaryExtractor:
    """Walks a parse tree and emits Boundary records in document order.

    Args:
        adapter: Grammar adapter for the document's language
    """

    def __init__(self, adapter: GrammarAdapter):
        self.adapter = adapter

    def extract(self, parsed: ParseResult | Any) -> list[Boundary]:
        """Extract boundaries from a parse result or a root node.

        Regions the parser marked as errors are skipped; boundaries found
        elsewhere in the tree are still returned.

        Args:
            parsed: ParseResult, parse tree or root node

        Returns:
            Boundaries in document order, without duplicates
        """
        if isinstance(parsed, ParseResult):
            if parsed.has_errors:
                logger.warning(
                    "%s parser reported %d syntax error(s), extracting valid regions only",
                    self.adapter.name,
                    parsed.error_count,
                )
            root = parsed.root_node
        else:
            root = getattr(parsed, "root_node", parsed)

        found: list[Boundary] = []
        self._visit(root, Frame(), (), found)
        return self._deduplicate(found)

    def _visit(
        self,
        node: Any,
        frame: Frame,
        pending: tuple[PendingDoc, ...],
        found: list[Boundary],
    ) -> tuple[PendingDoc, ...]:
        """Visit one node and return the pending docs for its next sibling."""
        adapter = self.adapter

        if adapter.is_documentation_comment(node):
            doc = PendingDoc(node.start_point[0] + 1, node.start_byte, node_text(node))
            return (*pending, doc)

        if self._is_whitespace(node):
            return pending

        if adapter.is_error(node):
            logger.debug(
                "Skipping error region at lines %d-%d",
                node.start_point[0] + 1,
                node.end_point[0] + 1,
            )
            return pending if frame.in_wrapper else ()

        if node.type in adapter.structural_node_kinds():
            if adapter.should_defer_to_children(node):
                anchor = PendingDoc(node.start_point[0] + 1, node.start_byte)
                inner = (*pending, anchor)
                wrapper_frame = replace(frame, in_wrapper=True)
                for child in node.children:
                    inner = self._visit(child, wrapper_frame, inner, found)
                return ()

            name = adapter.extract_name(node)
            if name:
                found.append(self._boundary(node, name, frame.path, pending))
                child_frame = Frame(path=(*frame.path, name))
                self._visit_children(node, child_frame, found)
                return ()

        if adapter.carries_pending_docs(node):
            # Comments sharing the line that opens the body are trailing, not docs
            opening_line = node.parent.start_point[0] + 1 if node.parent is not None else 0
            inner = tuple(doc for doc in pending if doc.start_line > opening_line)
            body_frame = replace(frame, in_wrapper=False)
            for child in node.children:
                inner = self._visit(child, body_frame, inner, found)
            return ()

        self._visit_children(node, replace(frame, in_wrapper=False), found)
        return pending if frame.in_wrapper else ()

    def _visit_children(self, node: Any, frame: Frame, found: list[Boundary]) -> None:
        pending: tuple[PendingDoc, ...] = ()
        for child in node.children:
            pending = self._visit(child, frame, pending, found)

    def _boundary(
        self,
        node: Any,
        name: str,
        path: tuple[str, ...],
        pending: tuple[PendingDoc, ...],
    ) -> Boundary:
        kind, category = self.adapter.classify(node)
        start_line = node.start_point[0] + 1
        start_byte = node.start_byte
        if pending:
            earliest = min(pending, key=lambda doc: doc.start_byte)
            if earliest.start_byte < start_byte:
                start_line, start_byte = earliest.start_line, earliest.start_byte
        return Boundary(
            kind=kind,
            category=category,
            name=name,
            start_line=start_line,
            end_line=node.end_point[0] + 1,
            start_byte=start_byte,
            end_byte=node.end_byte,
            path=path,
            modifiers=tuple(self.adapter.extract_modifiers(node)),
        )

    @staticmethod
    def _is_whitespace(node: Any) -> bool:
        if node.end_byte <= node.start_byte:
            return True
        if node.children:
            return False
        return not node_text(node).strip()

    @staticmethod
    def _deduplicate(boundaries: list[Boundary]) -> list[Boundary]:
        seen: set[tuple[int, int, str]] = set()
        unique = []
        for boundary in boundaries:
            key = (boundary.start_byte, boundary.end_byte, boundary.name)
            if key in seen:
                continue
            seen.add(key)
            unique.append(boundary)
        return unique
