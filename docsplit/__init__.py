"""docsplit - structural document splitting and context assembly for retrieval."""

__version__ = "0.1.0"
