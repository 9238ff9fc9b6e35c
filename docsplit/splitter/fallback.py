"""Line-based fallback segmentation.

Used when no grammar adapter matches, parsing fails, the document is too
large for the grammar parser, or parsing finds no boundaries at all.
"""

from __future__ import annotations

import logging

from docsplit.splitter.types import Chunk, ChunkType, Section

logger = logging.getLogger(__name__)

# Chunks are closed once they reach this share of the maximum chunk size
FILL_RATIO = 0.8


class FallbackSegmenter:
    """Accumulates whole lines into chunks of bounded size.

    Args:
        max_chunk_size: Maximum chunk size in characters
    """

    def __init__(self, max_chunk_size: int = 5000):
        self.max_chunk_size = max_chunk_size
        self.target_size = max(1, int(max_chunk_size * FILL_RATIO))

    def segment(
        self,
        content: str,
        language: str | None = None,
        chunk_type: ChunkType = ChunkType.CODE,
    ) -> list[Chunk]:
        """Split content into line-aligned chunks.

        A single line longer than the target size becomes its own chunk;
        lines are never cut.

        Args:
            content: Document text
            language: Detected language name, used in the section path
            chunk_type: Type tag for every produced chunk

        Returns:
            Chunks whose contents concatenate back to content
        """
        if not content:
            return []

        root = f"{language}-file" if language else "source-file"
        types = frozenset({chunk_type})
        chunks: list[Chunk] = []
        buffer: list[str] = []
        size = 0

        def flush() -> None:
            nonlocal size
            section = Section.from_path((root, f"section-{len(chunks) + 1}"))
            chunks.append(
                Chunk(
                    content="".join(buffer),
                    types=types,
                    section=section,
                )
            )
            buffer.clear()
            size = 0

        for line in content.splitlines(keepends=True):
            if buffer and size + len(line) > self.target_size:
                flush()
            buffer.append(line)
            size += len(line)
            if size >= self.target_size:
                flush()
        if buffer:
            flush()

        logger.debug("Fallback produced %d chunks for %s", len(chunks), root)
        return chunks
