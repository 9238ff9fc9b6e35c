"""Chunk store contract used by the indexer and the assembly strategies.

A store persists chunks per (library, version, url) in document order and
derives the parent/child/sibling relations from the chunk paths. Every
lookup failure is raised as StoreLookupError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from docsplit.errors import DocumentNotFoundError
from docsplit.splitter.types import Chunk
from docsplit.store.types import Document


class ChunkStore(ABC):
    """Storage and path-derived lookups for chunks."""

    @abstractmethod
    async def add_chunks(
        self,
        library: str,
        version: str,
        url: str,
        mime_type: str | None,
        chunks: Sequence[Chunk],
    ) -> list[Document]:
        """Store the chunks of one document in order, replacing any previous version."""

    @abstractmethod
    async def get_by_id(self, chunk_id: str) -> Document | None:
        """Fetch a single chunk."""

    @abstractmethod
    async def find_parent_chunk(self, library: str, version: str, chunk_id: str) -> Document | None:
        """Nearest preceding chunk of the same document whose path is the
        chunk's path without its last element. None for top-level chunks."""

    @abstractmethod
    async def find_child_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        """Chunks one level below the given chunk, in document order."""

    @abstractmethod
    async def find_preceding_sibling_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        """Up to limit chunks with the same path before the chunk, in document order."""

    @abstractmethod
    async def find_subsequent_sibling_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        """Up to limit chunks with the same path after the chunk, in document order."""

    @abstractmethod
    async def find_chunks_by_ids(
        self, library: str, version: str, chunk_ids: Sequence[str]
    ) -> list[Document]:
        """Resolve ids to chunks, sorted in document order."""

    @abstractmethod
    async def find_chunks_by_path(
        self, library: str, version: str, url: str, path: Sequence[str]
    ) -> list[Document]:
        """All chunks of a document whose path equals path, in document order."""

    async def require_by_id(self, chunk_id: str) -> Document:
        """Fetch a chunk that must exist.

        Raises:
            DocumentNotFoundError: If no chunk has this id
        """
        document = await self.get_by_id(chunk_id)
        if document is None:
            raise DocumentNotFoundError(chunk_id)
        return document
