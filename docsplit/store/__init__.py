"""Chunk storage.

Usage:
    from docsplit.store import SQLiteChunkStore

    store = SQLiteChunkStore(db_path=":memory:")
    await store.initialize()
    docs = await store.add_chunks("lib", "1.0", "src/app.ts", "text/x-typescript", chunks)
"""

from docsplit.store.base import ChunkStore
from docsplit.store.sqlite import SQLiteChunkStore
from docsplit.store.types import Document

__all__ = ["ChunkStore", "Document", "SQLiteChunkStore"]
