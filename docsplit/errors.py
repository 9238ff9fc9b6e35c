"""Exception hierarchy for docsplit.

Splitting errors are split into two kinds:
- ParseError: recoverable, the splitter logs it and falls back
- MinimumChunkSizeError: fatal, the content cannot be split at all

Store errors are always recovered by the assembly layer.
"""

from __future__ import annotations


class DocsplitError(Exception):
    """Base class for all docsplit errors."""


class SplitterError(DocsplitError):
    """Base class for errors raised while splitting a document."""


class ParseError(SplitterError):
    """A grammar adapter could not produce a usable parse tree."""


class MinimumChunkSizeError(SplitterError):
    """An atomic, unsplittable unit is larger than the allowed chunk size.

    Attributes:
        size: Size of the offending unit in characters
        max_size: Configured maximum chunk size
    """

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Cannot split content any further. Content requires minimum chunk size of "
            f"{size} characters, but maximum allowed is {max_size}."
        )


class StoreError(DocsplitError):
    """Base class for chunk store errors, with optional cause tracking."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(f"{message} caused by {cause}" if cause else message)
        if cause is not None:
            self.__cause__ = cause


class StoreLookupError(StoreError):
    """A chunk lookup against the store failed."""


class DocumentNotFoundError(StoreError):
    """A chunk with the requested id does not exist."""

    def __init__(self, chunk_id: str):
        self.chunk_id = chunk_id
        super().__init__(f"Chunk {chunk_id} not found")
