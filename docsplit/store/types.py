"""Records returned by chunk stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Document:
    """A stored chunk together with its metadata.

    Attributes:
        id: Store-assigned identifier
        content: Chunk text
        metadata: url, path, level, library, version, mime_type, types,
            sort_order and, for search hits, score
    """

    id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def url(self) -> str:
        return self.metadata.get("url", "")

    @property
    def path(self) -> tuple[str, ...]:
        return tuple(self.metadata.get("path") or ())

    @property
    def level(self) -> int:
        return self.metadata.get("level", len(self.path))

    @property
    def mime_type(self) -> str | None:
        return self.metadata.get("mime_type")

    @property
    def sort_order(self) -> int:
        return self.metadata.get("sort_order", 0)

    @property
    def types(self) -> tuple[str, ...]:
        return tuple(self.metadata.get("types") or ())

    @property
    def score(self) -> float | None:
        return self.metadata.get("score")

    def with_score(self, score: float | None) -> Document:
        """Copy of this document carrying a search score."""
        return Document(id=self.id, content=self.content, metadata={**self.metadata, "score": score})
