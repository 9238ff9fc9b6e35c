"""Structural document splitting.

Grammar adapters describe languages, the BoundaryExtractor walks parse
trees, the ChunkSegmenter cuts documents along the boundaries it finds and
the FallbackSegmenter handles everything else.
"""

from docsplit.splitter.extractor import BoundaryExtractor
from docsplit.splitter.fallback import FallbackSegmenter
from docsplit.splitter.json_splitter import JsonStructuralSplitter
from docsplit.splitter.registry import AdapterRegistry
from docsplit.splitter.segmenter import ChunkSegmenter
from docsplit.splitter.source import SourceSplitter
from docsplit.splitter.types import (
    Boundary,
    BoundaryCategory,
    BoundaryKind,
    Chunk,
    ChunkType,
    Section,
    reconstruct,
)

__all__ = [
    "AdapterRegistry",
    "Boundary",
    "BoundaryCategory",
    "BoundaryExtractor",
    "BoundaryKind",
    "Chunk",
    "ChunkSegmenter",
    "ChunkType",
    "FallbackSegmenter",
    "JsonStructuralSplitter",
    "Section",
    "SourceSplitter",
    "reconstruct",
]
