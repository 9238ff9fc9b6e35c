"""JSON grammar adapter.

JSON needs no grammar library: a small recursive-descent scanner builds a
tree whose nodes expose the same attributes as tree-sitter nodes, so the
generic BoundaryExtractor can walk it unchanged. Object members become
"pair" nodes named by their key and array items become "element" nodes
named "[i]". Members holding a non-empty object or array are structural
containers, everything else is a content leaf.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, NoReturn

from docsplit.errors import ParseError
from docsplit.splitter.adapters.base import GrammarAdapter, ParseResult
from docsplit.splitter.types import BoundaryCategory, BoundaryKind

JSON_EXTENSIONS = (".json",)
JSON_MIME_TYPES = ("application/json", "text/json", "text/x-json")

MEMBER_NODES = frozenset({"pair", "element"})
CONTAINER_NODES = frozenset({"object", "array"})

# Guards the recursive scanner against the interpreter recursion limit
MAX_SCAN_DEPTH = 400

_WHITESPACE = b" \t\r\n"
_NUMBER = re.compile(rb"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_LITERALS = (b"true", b"false", b"null")


@dataclass(eq=False)
class JsonNode:
    """A node of the scanned JSON tree, shaped like a tree-sitter node.

    Attributes:
        type: document, object, array, pair, element, string, number,
            true, false or null
        start_byte: Start offset in the UTF-8 source
        end_byte: End offset (exclusive)
        start_point: (row, column) of the start, 0-indexed
        end_point: (row, column) of the end, 0-indexed
        source: The complete UTF-8 source the offsets refer to
        key: Member name for pair and element nodes
        children: Child nodes in document order
        parent: Enclosing node, None for the document
    """

    type: str
    start_byte: int
    end_byte: int
    start_point: tuple[int, int]
    end_point: tuple[int, int]
    source: bytes = field(repr=False)
    key: str | None = None
    children: list[JsonNode] = field(default_factory=list, repr=False)
    parent: JsonNode | None = field(default=None, repr=False)

    @property
    def text(self) -> bytes:
        return self.source[self.start_byte : self.end_byte]

    @property
    def value_node(self) -> JsonNode | None:
        """The value held by a pair or element node."""
        return self.children[-1] if self.children else None

    def child_by_field_name(self, name: str) -> JsonNode | None:
        if name == "value":
            return self.value_node
        return None


@dataclass(frozen=True)
class JsonTree:
    root_node: JsonNode


class _Scanner:
    """Recursive-descent scanner over UTF-8 encoded JSON."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0
        self.row = 0
        self.row_start = 0

    def scan(self) -> JsonNode:
        document = JsonNode(
            "document", 0, len(self.data), (0, 0), (0, 0), self.data
        )
        self._skip_whitespace()
        value = self._value(document, 0)
        self._skip_whitespace()
        if self.pos != len(self.data):
            self._fail("unexpected trailing content")
        document.children.append(value)
        document.end_point = self._point()
        return document

    def _point(self) -> tuple[int, int]:
        return (self.row, self.pos - self.row_start)

    def _fail(self, reason: str) -> NoReturn:
        line, column = self.row + 1, self.pos - self.row_start + 1
        raise ParseError(f"Invalid JSON at line {line}, column {column}: {reason}")

    def _skip_whitespace(self) -> None:
        data = self.data
        while self.pos < len(data) and data[self.pos] in _WHITESPACE:
            if data[self.pos] == 0x0A:
                self.row += 1
                self.row_start = self.pos + 1
            self.pos += 1

    def _expect(self, char: bytes) -> None:
        if self.data[self.pos : self.pos + 1] != char:
            self._fail(f"expected {char.decode()!r}")
        self.pos += 1

    def _node(self, node_type: str, start: int, start_point: tuple[int, int], parent: JsonNode) -> JsonNode:
        return JsonNode(node_type, start, self.pos, start_point, self._point(), self.data, parent=parent)

    def _value(self, parent: JsonNode, depth: int) -> JsonNode:
        if depth > MAX_SCAN_DEPTH:
            self._fail("nesting too deep")
        char = self.data[self.pos : self.pos + 1]
        if char == b"{":
            return self._object(parent, depth)
        if char == b"[":
            return self._array(parent, depth)
        if char == b'"':
            start, start_point = self.pos, self._point()
            self._string()
            return self._node("string", start, start_point, parent)
        for literal in _LITERALS:
            if self.data.startswith(literal, self.pos):
                start, start_point = self.pos, self._point()
                self.pos += len(literal)
                return self._node(literal.decode(), start, start_point, parent)
        match = _NUMBER.match(self.data, self.pos)
        if match and match.end() > self.pos:
            start, start_point = self.pos, self._point()
            self.pos = match.end()
            return self._node("number", start, start_point, parent)
        self._fail("expected a value")

    def _string(self) -> str:
        start = self.pos
        self.pos += 1
        data = self.data
        while self.pos < len(data):
            byte = data[self.pos]
            if byte == 0x5C:  # backslash
                self.pos += 2
                continue
            if byte == 0x22:  # closing quote
                self.pos += 1
                try:
                    return json.loads(data[start : self.pos])
                except ValueError as e:
                    self._fail(f"invalid string: {e}")
            if byte < 0x20:
                self._fail("control character in string")
            self.pos += 1
        self._fail("unterminated string")

    def _object(self, parent: JsonNode, depth: int) -> JsonNode:
        start, start_point = self.pos, self._point()
        node = self._node("object", start, start_point, parent)
        self._expect(b"{")
        self._skip_whitespace()
        if self.data[self.pos : self.pos + 1] == b"}":
            self.pos += 1
        else:
            while True:
                pair_start, pair_point = self.pos, self._point()
                if self.data[self.pos : self.pos + 1] != b'"':
                    self._fail("expected a property name")
                key = self._string()
                self._skip_whitespace()
                self._expect(b":")
                self._skip_whitespace()
                pair = JsonNode("pair", pair_start, 0, pair_point, (0, 0), self.data, key=key, parent=node)
                value = self._value(pair, depth + 1)
                pair.children.append(value)
                pair.end_byte, pair.end_point = value.end_byte, value.end_point
                node.children.append(pair)
                self._skip_whitespace()
                if self.data[self.pos : self.pos + 1] == b",":
                    self.pos += 1
                    self._skip_whitespace()
                    continue
                self._expect(b"}")
                break
        node.end_byte, node.end_point = self.pos, self._point()
        return node

    def _array(self, parent: JsonNode, depth: int) -> JsonNode:
        start, start_point = self.pos, self._point()
        node = self._node("array", start, start_point, parent)
        self._expect(b"[")
        self._skip_whitespace()
        if self.data[self.pos : self.pos + 1] == b"]":
            self.pos += 1
        else:
            index = 0
            while True:
                element = JsonNode(
                    "element", self.pos, 0, self._point(), (0, 0), self.data, key=f"[{index}]", parent=node
                )
                value = self._value(element, depth + 1)
                element.children.append(value)
                element.end_byte, element.end_point = value.end_byte, value.end_point
                node.children.append(element)
                index += 1
                self._skip_whitespace()
                if self.data[self.pos : self.pos + 1] == b",":
                    self.pos += 1
                    self._skip_whitespace()
                    continue
                self._expect(b"]")
                break
        node.end_byte, node.end_point = self.pos, self._point()
        return node


def scan_json(source: str) -> JsonNode:
    """Scan JSON source into a tree of JsonNode.

    Raises:
        ParseError: If the source is not valid JSON
    """
    return _Scanner(source.encode("utf-8")).scan()


class JsonAdapter(GrammarAdapter):
    """Adapter exposing JSON members as boundaries."""

    name = "json"
    file_extensions = JSON_EXTENSIONS
    mime_types = JSON_MIME_TYPES

    def parse(self, source: str) -> ParseResult:
        return ParseResult(tree=JsonTree(scan_json(source)))

    def structural_node_kinds(self) -> frozenset[str]:
        return MEMBER_NODES

    def classify(self, node: Any) -> tuple[BoundaryKind, BoundaryCategory]:
        value = node.child_by_field_name("value")
        if value is not None and value.type in CONTAINER_NODES and value.children:
            return BoundaryKind.OTHER, BoundaryCategory.STRUCTURAL
        return BoundaryKind.OTHER, BoundaryCategory.CONTENT

    def extract_name(self, node: Any) -> str | None:
        return getattr(node, "key", None)

    def extract_modifiers(self, node: Any) -> list[str]:
        value = node.child_by_field_name("value")
        return [value.type] if value is not None else []
