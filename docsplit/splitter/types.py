"""Shared data model for the structural splitter.

A document is parsed into Boundary records (functions, classes, JSON members,
...) which the segmenter turns into Chunk records. Both carry a hierarchical
path that mirrors the structural nesting of the source document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BoundaryKind(Enum):
    """Kind of structural unit discovered during parsing."""

    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    MODULE = "module"  # Imports, exports, namespaces
    OTHER = "other"


class BoundaryCategory(Enum):
    """Whether a boundary is a container or holds executable/leaf content."""

    STRUCTURAL = "structural"  # Classes, interfaces, enums, imports, namespaces
    CONTENT = "content"  # Functions, methods, arrow functions, JSON leaves


class ChunkType(Enum):
    """Provenance tag of a chunk."""

    CODE = "code"
    STRUCTURAL = "structural"
    CONTENT = "content"
    TEXT = "text"


@dataclass(frozen=True)
class Boundary:
    """A structural unit with a line/byte range and hierarchical path.

    Attributes:
        kind: Kind of unit (function, class, ...)
        category: Structural container or content unit
        name: Name of the unit (boundaries without a name are never created)
        start_line: First line (1-indexed, inclusive), pulled back over
            leading documentation comments
        end_line: Last line (1-indexed, inclusive)
        start_byte: Start offset (0-indexed)
        end_byte: End offset (exclusive)
        path: Names of all enclosing boundaries, outermost first
        modifiers: export/async/static/... (informational only)
    """

    kind: BoundaryKind
    category: BoundaryCategory
    name: str
    start_line: int
    end_line: int
    start_byte: int
    end_byte: int
    path: tuple[str, ...] = ()
    modifiers: tuple[str, ...] = ()

    @property
    def level(self) -> int:
        """Nesting depth of the boundary (number of enclosing boundaries)."""
        return len(self.path)

    @property
    def qualified_path(self) -> tuple[str, ...]:
        """Path of the boundary including its own name."""
        return (*self.path, self.name)

    @property
    def line_span(self) -> int:
        """Number of lines covered minus one, used to find innermost boundaries."""
        return self.end_line - self.start_line

    def contains_lines(self, start_line: int, end_line: int) -> bool:
        """Check whether this boundary fully contains a line range."""
        return self.start_line <= start_line and self.end_line >= end_line


@dataclass(frozen=True)
class Section:
    """Hierarchical position of a chunk.

    Attributes:
        level: Depth in the hierarchy, always equal to len(path)
        path: Names from the document root to the owning boundary
    """

    level: int = 0
    path: tuple[str, ...] = ()

    @classmethod
    def from_path(cls, path: tuple[str, ...] | list[str]) -> Section:
        """Create a section whose level matches the path length."""
        path = tuple(path)
        return cls(level=len(path), path=path)

    @classmethod
    def global_section(cls) -> Section:
        """Section for text that lies outside every boundary."""
        return cls(level=0, path=())


@dataclass(frozen=True)
class Chunk:
    """An immutable piece of a document, ready to be handed to a store.

    Attributes:
        content: Exact text of the source (never transformed, except for
            the path annotations of the JSON structural splitter)
        types: Provenance tags
        section: Hierarchical position
    """

    content: str
    types: frozenset[ChunkType] = field(default_factory=lambda: frozenset({ChunkType.CODE}))
    section: Section = field(default_factory=Section)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "content": self.content,
            "types": sorted(t.value for t in self.types),
            "section": {
                "level": self.section.level,
                "path": list(self.section.path),
            },
        }


def reconstruct(chunks: list[Chunk]) -> str:
    """Concatenate chunk contents back into the original document."""
    return "".join(chunk.content for chunk in chunks)
