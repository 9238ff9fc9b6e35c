"""Annotated structural splitter for JSON.

Produces one piece per opening delimiter, member, separator and closing
delimiter. Each member is prefixed with a ``// Path: a.b[0]`` line so the
hierarchy survives retrieval even though JSON has no comment syntax.
Members are re-serialized with two-space indentation, so unlike the
lossless grammar route this output does not concatenate back to the
source.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from docsplit.config import DocsplitConfig
from docsplit.errors import MinimumChunkSizeError
from docsplit.splitter.types import Chunk, ChunkType, Section

logger = logging.getLogger(__name__)

DELIMITER_TYPES = frozenset({ChunkType.STRUCTURAL})
MEMBER_TYPES = frozenset({ChunkType.CONTENT})


def format_path(path: tuple[str, ...]) -> str:
    """Render a JSON path as dotted keys with bracketed array indexes."""
    if not path:
        return "root"
    rendered = ""
    for segment in path:
        if segment.startswith("[") or not rendered:
            rendered += segment
        else:
            rendered += f".{segment}"
    return rendered


def _is_complex(value: Any) -> bool:
    return isinstance(value, (dict, list)) and len(value) > 0


def _serialize(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


class JsonStructuralSplitter:
    """Splits JSON documents along their object and array structure.

    Args:
        chunk_size: Maximum size of a single member piece
        max_nesting_depth: Containers nested deeper than this are emitted
            as one serialized member
        max_chunks: Maximum number of pieces per document
    """

    def __init__(self, chunk_size: int = 5000, max_nesting_depth: int = 5, max_chunks: int = 1000):
        self.chunk_size = chunk_size
        self.max_nesting_depth = max_nesting_depth
        self.max_chunks = max_chunks

    @classmethod
    def from_config(cls, config: DocsplitConfig) -> JsonStructuralSplitter:
        """Create a splitter with the configured size and nesting limits."""
        json_config = config.splitter.json
        return cls(
            chunk_size=config.splitter.max_chunk_size,
            max_nesting_depth=json_config.max_nesting_depth,
            max_chunks=json_config.max_chunks,
        )

    def split(self, content: str) -> list[str]:
        """Split JSON content into annotated pieces.

        Invalid JSON that fits in one chunk is returned verbatim.

        Raises:
            MinimumChunkSizeError: If the content is invalid JSON larger than
                chunk_size, a single member is larger than chunk_size, or the
                document needs more than max_chunks pieces
        """
        return [chunk.content for chunk in self.split_chunks(content)]

    def split_chunks(self, content: str) -> list[Chunk]:
        """Split JSON content into Chunks whose section path is the JSON path."""
        try:
            data = json.loads(content)
        except ValueError:
            if len(content) > self.chunk_size:
                raise MinimumChunkSizeError(len(content), self.chunk_size) from None
            logger.debug("Content is not valid JSON, keeping it as a single chunk")
            return [Chunk(content=content, types=MEMBER_TYPES, section=Section.global_section())]

        pieces: list[Chunk] = []
        self._split_value(data, (), "", pieces)
        return pieces

    def _split_value(self, value: Any, path: tuple[str, ...], prefix: str, pieces: list[Chunk]) -> None:
        """Emit pieces for one value.

        Args:
            value: Decoded JSON value
            path: JSON path of the value
            prefix: Text placed before the value (annotation and key)
            pieces: Output list
        """
        section = Section.from_path(path)

        # The root container is always delimited, even when empty
        is_root_container = not path and isinstance(value, (dict, list))
        if not is_root_container and (not _is_complex(value) or len(path) >= self.max_nesting_depth):
            self._emit_member(prefix + _serialize(value), section, pieces)
            return

        if isinstance(value, dict):
            opener, closer = "{", "}"
            members = [
                ((key,), f"{json.dumps(key, ensure_ascii=False)}: ", item) for key, item in value.items()
            ]
        else:
            opener, closer = "[", "]"
            members = [((f"[{index}]",), "", item) for index, item in enumerate(value)]

        self._emit(prefix + opener, DELIMITER_TYPES, section, pieces)
        for position, (segment, key_text, item) in enumerate(members):
            member_path = path + segment
            annotation = f"// Path: {format_path(member_path)}\n"
            self._split_value(item, member_path, annotation + key_text, pieces)
            if position < len(members) - 1:
                self._emit(",", DELIMITER_TYPES, section, pieces)
        self._emit(closer, DELIMITER_TYPES, section, pieces)

    def _emit_member(self, text: str, section: Section, pieces: list[Chunk]) -> None:
        if len(text) > self.chunk_size:
            raise MinimumChunkSizeError(len(text), self.chunk_size)
        self._emit(text, MEMBER_TYPES, section, pieces)

    def _emit(self, text: str, types: frozenset[ChunkType], section: Section, pieces: list[Chunk]) -> None:
        pieces.append(Chunk(content=text, types=types, section=section))
        if len(pieces) > self.max_chunks:
            total = sum(len(piece.content) for piece in pieces)
            raise MinimumChunkSizeError(total, self.chunk_size * self.max_chunks)
