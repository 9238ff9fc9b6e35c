"""Assembly for prose content (markdown, HTML, plain text).

Prose chunks are readable on their own, so a hit is widened with its
parent section, a few neighbouring chunks of the same section and the
first chunks of its subsections. Chunks are joined with blank lines.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from docsplit import mime
from docsplit.assembly.base import ContentAssemblyStrategy
from docsplit.config import AssemblyConfig
from docsplit.store.base import ChunkStore
from docsplit.store.types import Document

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n"

PROSE_MIME_TYPES = frozenset({"text/css"})


class ProseAssemblyStrategy(ContentAssemblyStrategy):
    """Assembly strategy for markdown, HTML and plain text. Also the default.

    Args:
        config: Assembly limits. Uses defaults if not provided.
    """

    def __init__(self, config: AssemblyConfig | None = None):
        self.config = config or AssemblyConfig()

    def can_handle(self, mime_type: str | None) -> bool:
        if not mime_type:
            return True
        return (
            mime.is_markdown(mime_type)
            or mime.is_html(mime_type)
            or mime.is_text(mime_type)
            or mime.normalize(mime_type) in PROSE_MIME_TYPES
        )

    def assemble_content(self, chunks: Sequence[Document]) -> str:
        return SEPARATOR.join(chunk.content for chunk in chunks)

    async def select_chunks(
        self,
        library: str,
        version: str,
        hits: Sequence[Document],
        store: ChunkStore,
    ) -> list[Document]:
        if not hits:
            return []

        ids: dict[str, None] = {}
        for hit in hits:
            ids.setdefault(hit.id, None)
            for related in await self._related(library, version, hit, store):
                ids.setdefault(related.id, None)

        try:
            return await store.find_chunks_by_ids(library, version, list(ids))
        except Exception as e:
            logger.warning("Failed to resolve prose context, returning hits unexpanded: %s", e)
            return list({hit.id: hit for hit in hits}.values())

    async def _related(
        self,
        library: str,
        version: str,
        hit: Document,
        store: ChunkStore,
    ) -> list[Document]:
        """Parent, siblings and children of a hit; failed lookups are skipped."""
        sibling_limit = self.config.prose_sibling_limit
        lookups = (
            ("parent", lambda: store.find_parent_chunk(library, version, hit.id)),
            (
                "preceding siblings",
                lambda: store.find_preceding_sibling_chunks(library, version, hit.id, sibling_limit),
            ),
            (
                "subsequent siblings",
                lambda: store.find_subsequent_sibling_chunks(library, version, hit.id, sibling_limit),
            ),
            (
                "children",
                lambda: store.find_child_chunks(library, version, hit.id, self.config.prose_child_limit),
            ),
        )

        related: list[Document] = []
        for label, lookup in lookups:
            try:
                result = await lookup()
            except Exception as e:
                logger.warning("Failed to find %s for chunk %s: %s", label, hit.id, e)
                continue
            if result is None:
                continue
            if isinstance(result, Document):
                related.append(result)
            else:
                related.extend(result)
        return related
