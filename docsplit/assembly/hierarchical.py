"""Hierarchical assembly for source code and JSON.

The read-time counterpart of the boundary extractor. A lone hit in a
document is shown with its chain of enclosing chunks up to the document
root. Several hits in one document are shown inside their closest common
container, each with its ancestors and its full subtree. Because the
splitter guarantees lossless chunks, the selection is joined without
separators.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Iterable, Sequence

from docsplit import mime
from docsplit.assembly.base import AssemblyGroup, ContentAssemblyStrategy, group_hits_by_url
from docsplit.config import AssemblyConfig
from docsplit.store.base import ChunkStore
from docsplit.store.types import Document

logger = logging.getLogger(__name__)


def common_path_prefix(paths: Iterable[Sequence[str]]) -> tuple[str, ...]:
    """Longest path prefix shared by all paths."""
    paths = [tuple(path) for path in paths]
    if not paths:
        return ()
    prefix = paths[0]
    for path in paths[1:]:
        length = 0
        for left, right in zip(prefix, path):
            if left != right:
                break
            length += 1
        prefix = prefix[:length]
        if not prefix:
            break
    return prefix


class _OrderedIds:
    """Insertion-ordered id set."""

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}

    def add_all(self, ids: Iterable[str]) -> None:
        for chunk_id in ids:
            self._ids.setdefault(chunk_id, None)

    def __len__(self) -> int:
        return len(self._ids)

    def to_list(self) -> list[str]:
        return list(self._ids)


class HierarchicalAssemblyStrategy(ContentAssemblyStrategy):
    """Assembly strategy for structured content.

    Args:
        config: Assembly limits. Uses defaults if not provided.
    """

    def __init__(self, config: AssemblyConfig | None = None):
        self.config = config or AssemblyConfig()

    def can_handle(self, mime_type: str | None) -> bool:
        return mime.is_source_code(mime_type) or mime.is_json(mime_type)

    def assemble_content(self, chunks: Sequence[Document]) -> str:
        return "".join(chunk.content for chunk in chunks)

    async def select_chunks(
        self,
        library: str,
        version: str,
        hits: Sequence[Document],
        store: ChunkStore,
    ) -> list[Document]:
        """Expand hits with their structural context.

        Store failures fall back to a conservative selection (hit, parent
        and a few children); if that fails too, the hits are returned as
        they are.
        """
        if not hits:
            return []

        groups = group_hits_by_url(hits)
        try:
            ids = _OrderedIds()
            for group in groups:
                ids.add_all(await self._select_group(library, version, group, store))
            return await store.find_chunks_by_ids(library, version, ids.to_list())
        except Exception as e:
            logger.warning("Hierarchical selection failed, using basic selection: %s", e)

        try:
            return await self._fallback_selection(library, version, groups, store)
        except Exception as e:
            logger.warning("Basic selection failed, returning hits unexpanded: %s", e)
            return [hit for group in groups for hit in group.hits]

    async def _select_group(
        self,
        library: str,
        version: str,
        group: AssemblyGroup,
        store: ChunkStore,
    ) -> list[str]:
        if len(group.hits) == 1:
            return await self.walk_to_root(library, version, group.hits[0], store)

        ids = _OrderedIds()
        prefix = common_path_prefix(hit.path for hit in group.hits)
        if prefix:
            containers = await store.find_chunks_by_path(library, version, group.url, prefix)
            ids.add_all(container.id for container in containers)
            if containers:
                ids.add_all(await self.walk_to_root(library, version, containers[0], store))

        expansions = await asyncio.gather(
            *(self._expand_hit(library, version, hit, store) for hit in group.hits)
        )
        for expansion in expansions:
            ids.add_all(expansion)
        logger.debug(
            "Reassembled %d hits in %s under %s into %d chunks",
            len(group.hits),
            group.url,
            list(prefix),
            len(ids),
        )
        return ids.to_list()

    async def _expand_hit(
        self,
        library: str,
        version: str,
        hit: Document,
        store: ChunkStore,
    ) -> list[str]:
        chain = await self.walk_to_root(library, version, hit, store)
        subtree = await self.collect_subtree(library, version, hit, store)
        return chain + subtree

    async def walk_to_root(
        self,
        library: str,
        version: str,
        chunk: Document,
        store: ChunkStore,
    ) -> list[str]:
        """Ids of the chunk and all its ancestors, innermost first.

        Stops with a warning when an id repeats or the depth cap is hit.
        """
        max_depth = self.config.max_parent_chain_depth
        chain: list[str] = []
        visited: set[str] = set()
        current: Document | None = chunk

        while current is not None:
            if current.id in visited:
                logger.warning("Circular reference detected in parent chain for chunk %s", current.id)
                break
            if len(chain) >= max_depth:
                logger.warning("Maximum parent chain depth (%d) reached for chunk %s", max_depth, chunk.id)
                break
            visited.add(current.id)
            chain.append(current.id)
            current = await store.find_parent_chunk(library, version, current.id)

        return chain

    async def collect_subtree(
        self,
        library: str,
        version: str,
        chunk: Document,
        store: ChunkStore,
    ) -> list[str]:
        """Ids of the chunk and its descendants, breadth first."""
        max_depth = self.config.max_parent_chain_depth
        limit = self.config.child_chunk_limit
        collected = [chunk.id]
        visited = {chunk.id}
        queue: deque[tuple[str, int]] = deque([(chunk.id, 0)])

        while queue:
            chunk_id, depth = queue.popleft()
            if depth >= max_depth:
                logger.warning("Maximum subtree depth (%d) reached below chunk %s", max_depth, chunk.id)
                break
            for child in await store.find_child_chunks(library, version, chunk_id, limit):
                if child.id in visited:
                    continue
                visited.add(child.id)
                collected.append(child.id)
                queue.append((child.id, depth + 1))

        return collected

    async def _fallback_selection(
        self,
        library: str,
        version: str,
        groups: list[AssemblyGroup],
        store: ChunkStore,
    ) -> list[Document]:
        """Each hit with its parent and up to fallback_child_limit children."""
        ids = _OrderedIds()
        for group in groups:
            for hit in group.hits:
                ids.add_all([hit.id])
                try:
                    parent = await store.find_parent_chunk(library, version, hit.id)
                    if parent is not None:
                        ids.add_all([parent.id])
                except Exception as e:
                    logger.warning("Failed to find parent for chunk %s: %s", hit.id, e)
                try:
                    children = await store.find_child_chunks(
                        library, version, hit.id, self.config.fallback_child_limit
                    )
                    ids.add_all(child.id for child in children)
                except Exception as e:
                    logger.warning("Failed to find children for chunk %s: %s", hit.id, e)

        return await store.find_chunks_by_ids(library, version, ids.to_list())
