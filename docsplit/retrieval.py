"""Indexing and retrieval glue.

DocumentIndexer splits documents and persists their chunks.
ContextRetriever turns search hits into one assembled context per
document, choosing the assembly strategy from each document's MIME type.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from docsplit.assembly import create_assembly_strategy, group_hits_by_url
from docsplit.config import DocsplitConfig
from docsplit.splitter.source import SourceSplitter
from docsplit.store.base import ChunkStore
from docsplit.store.types import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssembledContext:
    """Context assembled around the hits of one document.

    Attributes:
        url: Document URL
        mime_type: Document MIME type
        content: Assembled context text
        score: Best score among the document's hits
        chunk_ids: Ids of the chunks the context was built from
    """

    url: str
    mime_type: str | None
    content: str
    score: float | None = None
    chunk_ids: tuple[str, ...] = field(default_factory=tuple)


def _score_key(context: AssembledContext) -> float:
    return context.score if context.score is not None else float("-inf")


class DocumentIndexer:
    """Splits documents and stores their chunks.

    Args:
        splitter: Splitter used for every document
        store: Store receiving the chunks
    """

    def __init__(self, splitter: SourceSplitter, store: ChunkStore):
        self.splitter = splitter
        self.store = store

    async def index_document(
        self,
        library: str,
        version: str,
        url: str,
        content: str,
        mime_type: str | None,
    ) -> list[Document]:
        """Split a document off the event loop and replace its stored chunks.

        Returns:
            The stored chunks in document order
        """
        chunks = await self.splitter.split_async(content, mime_type)
        documents = await self.store.add_chunks(library, version, url, mime_type, chunks)
        logger.info("Indexed %s (%d chunks)", url, len(documents))
        return documents


class ContextRetriever:
    """Assembles retrieval context from search hits.

    Args:
        store: Chunk store the hits came from
        config: Configuration providing the assembly limits
    """

    def __init__(self, store: ChunkStore, config: DocsplitConfig | None = None):
        self.store = store
        self.config = config or DocsplitConfig.default()

    async def assemble(
        self,
        library: str,
        version: str,
        hits: Sequence[Document],
    ) -> list[AssembledContext]:
        """Build one context per document, best scoring document first.

        Store failures degrade to less context, never to an exception.
        """
        results: list[AssembledContext] = []
        for group in group_hits_by_url(hits):
            mime_type = group.hits[0].mime_type
            strategy = create_assembly_strategy(mime_type, self.config)
            selected = await strategy.select_chunks(library, version, group.hits, self.store)
            scores = [hit.score for hit in group.hits if hit.score is not None]
            results.append(
                AssembledContext(
                    url=group.url,
                    mime_type=mime_type,
                    content=strategy.assemble_content(selected),
                    score=max(scores) if scores else None,
                    chunk_ids=tuple(chunk.id for chunk in selected),
                )
            )
            logger.debug(
                "Assembled %d chunks for %s with %s",
                len(selected),
                group.url,
                type(strategy).__name__,
            )

        results.sort(key=_score_key, reverse=True)
        return results

    async def assemble_by_ids(
        self,
        library: str,
        version: str,
        scored_ids: Sequence[tuple[str, float | None]],
    ) -> list[AssembledContext]:
        """Assemble context for hits given as (chunk id, score) pairs.

        Raises:
            DocumentNotFoundError: If an id is unknown to the store
        """
        hits = []
        for chunk_id, score in scored_ids:
            document = await self.store.require_by_id(chunk_id)
            hits.append(document.with_score(score))
        return await self.assemble(library, version, hits)
