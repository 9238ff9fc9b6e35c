"""Splitter entry point.

``SourceSplitter.split(content, mime_type)`` picks a grammar adapter for the
MIME type, extracts boundaries and segments the document along them. Any
problem on that path (no adapter, document too large for the parser, parse
failure, no boundaries) routes the document to the line-based fallback.
Either way the returned chunks concatenate back to the input exactly.

JSON is the exception: by default it is split into pieces annotated with
their JSON path by JsonStructuralSplitter. Setting ``splitter.json.lossless``
sends it through the grammar route like any other language.
"""

from __future__ import annotations

import asyncio
import logging

from docsplit import mime
from docsplit.config import DocsplitConfig
from docsplit.errors import ParseError
from docsplit.splitter.adapters import GrammarAdapter
from docsplit.splitter.extractor import BoundaryExtractor
from docsplit.splitter.fallback import FallbackSegmenter
from docsplit.splitter.json_splitter import JsonStructuralSplitter
from docsplit.splitter.registry import AdapterRegistry
from docsplit.splitter.segmenter import ChunkSegmenter
from docsplit.splitter.types import Boundary, Chunk, ChunkType, reconstruct

logger = logging.getLogger(__name__)


class SourceSplitter:
    """Splits source code and JSON into hierarchical chunks.

    The splitter holds no per-document state, so one instance can serve
    concurrent calls.

    Args:
        registry: Adapter registry. Defaults to AdapterRegistry.default().
        config: Configuration. Defaults to DocsplitConfig.default().
    """

    def __init__(
        self,
        registry: AdapterRegistry | None = None,
        config: DocsplitConfig | None = None,
    ):
        self.registry = registry or AdapterRegistry.default()
        self.config = config or DocsplitConfig.default()
        self.size_limit = self.config.parser.tree_sitter_size_limit
        self.segmenter = ChunkSegmenter()
        self.fallback = FallbackSegmenter(self.config.splitter.max_chunk_size)
        self.json_splitter = JsonStructuralSplitter.from_config(self.config)

    def split(self, content: str, mime_type: str | None = None) -> list[Chunk]:
        """Split a document into chunks.

        Args:
            content: Cleaned document text
            mime_type: MIME type used to pick the grammar adapter

        Returns:
            Chunks in document order. Except for annotated JSON, their
            contents concatenate to content.

        Raises:
            MinimumChunkSizeError: If JSON content cannot be split into
                pieces within the configured chunk size
        """
        if not content:
            return []

        if mime.is_json(mime_type) and not self.config.splitter.json.lossless:
            return self.json_splitter.split_chunks(content)

        adapter = self.registry.lookup(mime_type)
        if adapter is None:
            logger.debug("No grammar adapter for %s, using line-based splitting", mime_type)
            return self._fallback(content, mime_type, None)

        if len(content) > self.size_limit:
            logger.info(
                "Document of %d characters exceeds parser limit of %d, using line-based splitting",
                len(content),
                self.size_limit,
            )
            return self._fallback(content, mime_type, adapter)

        boundaries = self.extract_boundaries(content, adapter)
        if not boundaries:
            logger.debug("No boundaries found by %s adapter, using line-based splitting", adapter.name)
            return self._fallback(content, mime_type, adapter)

        chunks = self.segmenter.segment(content, boundaries)
        if reconstruct(chunks) != content:
            logger.error(
                "Segmentation of %s content did not reconstruct the source, using line-based splitting",
                adapter.name,
            )
            return self._fallback(content, mime_type, adapter)
        return chunks

    async def split_async(self, content: str, mime_type: str | None = None) -> list[Chunk]:
        """Run split in a worker thread."""
        return await asyncio.to_thread(self.split, content, mime_type)

    def extract_boundaries(self, content: str, adapter: GrammarAdapter) -> list[Boundary]:
        """Parse content with an adapter and extract its boundaries.

        Parse failures are logged and give an empty list.
        """
        try:
            parsed = adapter.parse(content)
        except ParseError as e:
            logger.warning("Failed to parse %s content: %s", adapter.name, e)
            return []
        return BoundaryExtractor(adapter).extract(parsed)

    def _fallback(
        self,
        content: str,
        mime_type: str | None,
        adapter: GrammarAdapter | None,
    ) -> list[Chunk]:
        language = mime.extract_language(mime_type)
        if not language and adapter is not None:
            language = adapter.name
        chunk_type = ChunkType.CODE
        if not language and (mime.is_text(mime_type) or mime.is_markdown(mime_type)):
            language = "text"
            chunk_type = ChunkType.TEXT
        return self.fallback.segment(content, language or None, chunk_type)
