"""Assembly strategy contract.

An assembly strategy turns search hits into the context handed to the
caller: ``select_chunks`` widens the hit set with related chunks from the
store and ``assemble_content`` joins the selection into one string.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from docsplit.store.base import ChunkStore
from docsplit.store.types import Document


@dataclass
class AssemblyGroup:
    """Hits belonging to one source document.

    Attributes:
        url: Document URL shared by the hits
        hits: Hits in the order they were received
    """

    url: str
    hits: list[Document] = field(default_factory=list)


def group_hits_by_url(hits: Sequence[Document]) -> list[AssemblyGroup]:
    """Group hits by document URL, keeping first-seen order and dropping duplicate ids."""
    groups: dict[str, AssemblyGroup] = {}
    seen: set[str] = set()
    for hit in hits:
        if hit.id in seen:
            continue
        seen.add(hit.id)
        group = groups.get(hit.url)
        if group is None:
            group = groups[hit.url] = AssemblyGroup(url=hit.url)
        group.hits.append(hit)
    return list(groups.values())


class ContentAssemblyStrategy(ABC):
    """Selects and joins chunks for one family of content types."""

    @abstractmethod
    def can_handle(self, mime_type: str | None) -> bool:
        """Whether this strategy applies to the MIME type."""

    @abstractmethod
    async def select_chunks(
        self,
        library: str,
        version: str,
        hits: Sequence[Document],
        store: ChunkStore,
    ) -> list[Document]:
        """Expand hits into the chunks to present. Never raises on store errors."""

    @abstractmethod
    def assemble_content(self, chunks: Sequence[Document]) -> str:
        """Join selected chunks into the final context string."""
