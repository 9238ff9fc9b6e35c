"""Chunk segmentation by boundary cut points.

Every boundary contributes two cut points (its first line and the line
after its last one). Consecutive cut points delimit segments, so each
source line lands in exactly one segment and segments come out in document
order. The only text added to a segment is the newline that separated it
from the next one in the source, which keeps reconstruction exact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docsplit.splitter.types import (
    Boundary,
    BoundaryCategory,
    Chunk,
    ChunkType,
    Section,
)

logger = logging.getLogger(__name__)


@dataclass
class _Segment:
    text: str
    owner: Boundary | None


class ChunkSegmenter:
    """Turns boundaries plus raw text into lossless chunks."""

    def segment(self, content: str, boundaries: list[Boundary]) -> list[Chunk]:
        """Partition content along boundary lines.

        Args:
            content: Full document text
            boundaries: Boundaries found in the document

        Returns:
            Chunks whose contents concatenate back to content
        """
        lines = content.split("\n")
        total_lines = len(lines)
        last_cut = total_lines + 1

        cuts = {1, last_cut}
        for boundary in boundaries:
            cuts.add(min(max(boundary.start_line, 1), last_cut))
            cuts.add(min(max(boundary.end_line + 1, 1), last_cut))
        ordered = sorted(cuts)

        segments: list[_Segment] = []
        for start, end in zip(ordered, ordered[1:]):
            text = "\n".join(lines[start - 1 : end - 1])
            if end - 1 < total_lines:
                text += "\n"
            if not text:
                continue
            owner = self._innermost(boundaries, start, end - 1)
            segments.append(_Segment(text, owner))

        merged = self._merge_blank(segments)
        logger.debug(
            "Segmented %d lines into %d chunks using %d boundaries",
            total_lines,
            len(merged),
            len(boundaries),
        )
        return [self._to_chunk(segment) for segment in merged]

    @staticmethod
    def _innermost(boundaries: list[Boundary], start_line: int, end_line: int) -> Boundary | None:
        """Smallest boundary containing the range; deeper boundaries win ties."""
        best: Boundary | None = None
        for boundary in boundaries:
            if not boundary.contains_lines(start_line, end_line):
                continue
            if best is None:
                best = boundary
            elif boundary.line_span < best.line_span:
                best = boundary
            elif boundary.line_span == best.line_span and boundary.level > best.level:
                best = boundary
        return best

    @staticmethod
    def _merge_blank(segments: list[_Segment]) -> list[_Segment]:
        """Fold whitespace-only segments into a neighbouring segment."""
        merged: list[_Segment] = []
        carry = ""
        for segment in segments:
            if not segment.text.strip():
                if merged:
                    merged[-1].text += segment.text
                else:
                    carry += segment.text
                continue
            if carry:
                segment.text = carry + segment.text
                carry = ""
            merged.append(segment)
        if carry:
            # Document holds nothing but whitespace
            merged.append(_Segment(carry, None))
        return merged

    @staticmethod
    def _to_chunk(segment: _Segment) -> Chunk:
        owner = segment.owner
        if owner is None:
            return Chunk(
                content=segment.text,
                types=frozenset({ChunkType.CODE}),
                section=Section.global_section(),
            )
        types = {ChunkType.CODE}
        if owner.category == BoundaryCategory.STRUCTURAL:
            types.add(ChunkType.STRUCTURAL)
        return Chunk(
            content=segment.text,
            types=frozenset(types),
            section=Section.from_path(owner.qualified_path),
        )
