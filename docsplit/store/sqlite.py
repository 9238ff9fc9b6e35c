"""SQLite chunk store.

Persists split documents with aiosqlite. Each chunk row keeps its section
path (as JSON) and the path of its parent section, so parent, child and
sibling relations are answered by indexed equality lookups.

The database is stored at ~/.docsplit/data/docsplit.db by default.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from docsplit.config import StoreConfig
from docsplit.errors import StoreError, StoreLookupError
from docsplit.splitter.types import Chunk
from docsplit.store.base import ChunkStore
from docsplit.store.types import Document

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

# Ids per query when resolving large id sets
ID_BATCH_SIZE = 500

MEMORY_DB = ":memory:"

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- Chunks of indexed documents, in document order per url
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    library TEXT NOT NULL,
    version TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL,
    mime_type TEXT,
    content TEXT NOT NULL,
    path TEXT NOT NULL DEFAULT '[]',
    parent_path TEXT,
    level INTEGER NOT NULL DEFAULT 0,
    types TEXT NOT NULL DEFAULT '[]',
    sort_order INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- Path lookups for containers, parents and siblings
CREATE INDEX IF NOT EXISTS idx_documents_path
    ON documents(library, version, url, path);

-- Child lookups
CREATE INDEX IF NOT EXISTS idx_documents_parent_path
    ON documents(library, version, url, parent_path);

-- Document order
CREATE INDEX IF NOT EXISTS idx_documents_sort_order
    ON documents(library, version, url, sort_order);
"""


def encode_path(path: Sequence[str]) -> str:
    """Canonical JSON encoding of a section path."""
    return json.dumps(list(path), ensure_ascii=False)


def _normalize(library: str, version: str | None) -> tuple[str, str]:
    return library.lower(), (version or "").lower()


class SQLiteChunkStore(ChunkStore):
    """SQLite-based chunk store.

    Usage:
        store = SQLiteChunkStore()
        await store.initialize()

        docs = await store.add_chunks("react", "18.2.0", url, "text/x-typescript", chunks)
        parent = await store.find_parent_chunk("react", "18.2.0", docs[3].id)

        await store.close()

    Args:
        config: Store configuration. Uses defaults if not provided.
        db_path: Overrides config.db_path (":memory:" for a private database)
    """

    def __init__(self, config: StoreConfig | None = None, db_path: Path | str | None = None):
        self.config = config or StoreConfig()
        if db_path is None:
            self.db_path: Path | str = self.config.resolved_path()
        elif str(db_path) == MEMORY_DB:
            self.db_path = MEMORY_DB
        else:
            self.db_path = Path(db_path).expanduser()
        self._connection = None
        self._initialized = False

    async def initialize(self) -> None:
        """Open the database connection and apply the schema.

        Must be called before using the store.
        """
        if self._initialized:
            return

        try:
            import aiosqlite
        except ImportError as e:
            raise ImportError(
                "aiosqlite is required for the chunk store. Install with: pip install aiosqlite"
            ) from e

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(
            self.db_path,
            timeout=self.config.busy_timeout / 1000.0,
        )
        if self.db_path != MEMORY_DB:
            await self._connection.execute(f"PRAGMA journal_mode={self.config.journal_mode.value}")
        await self._connection.execute(f"PRAGMA busy_timeout={self.config.busy_timeout}")
        self._connection.row_factory = aiosqlite.Row

        await self._apply_schema()
        self._initialized = True
        logger.info("Chunk store initialized: %s", self.db_path)

    async def _apply_schema(self) -> None:
        """Apply database schema and migrations."""
        async with self._connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
        ) as cursor:
            has_version_table = await cursor.fetchone() is not None

        current_version = 0
        if has_version_table:
            async with self._connection.execute("SELECT MAX(version) FROM schema_version") as cursor:
                row = await cursor.fetchone()
                current_version = row[0] if row and row[0] else 0

        if current_version < SCHEMA_VERSION:
            await self._connection.executescript(SCHEMA_SQL)
            await self._connection.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("Applied schema version %d", SCHEMA_VERSION)

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._initialized = False
            logger.info("Chunk store closed")

    async def __aenter__(self) -> SQLiteChunkStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Context manager for database transactions.

        Usage:
            async with store.transaction():
                await store.delete_document(...)
                # Commits on success, rolls back on error
        """
        self._require_initialized()
        try:
            yield
            await self._connection.commit()
        except Exception:
            await self._connection.rollback()
            raise

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreError("Chunk store not initialized. Call initialize() first.")

    # Write operations

    async def add_chunks(
        self,
        library: str,
        version: str,
        url: str,
        mime_type: str | None,
        chunks: Sequence[Chunk],
    ) -> list[Document]:
        """Store the chunks of one document, replacing any previous version.

        Args:
            library: Library name
            version: Library version ("" for unversioned)
            url: Document URL
            mime_type: Document MIME type
            chunks: Chunks in document order

        Returns:
            Stored documents with their assigned ids
        """
        self._require_initialized()
        library, version = _normalize(library, version)
        stored: list[Document] = []

        try:
            async with self.transaction():
                await self._connection.execute(
                    "DELETE FROM documents WHERE library = ? AND version = ? AND url = ?",
                    (library, version, url),
                )
                for sort_order, chunk in enumerate(chunks):
                    path = chunk.section.path
                    types = sorted(t.value for t in chunk.types)
                    async with self._connection.execute(
                        """
                        INSERT INTO documents (
                            library, version, url, mime_type, content,
                            path, parent_path, level, types, sort_order
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            library,
                            version,
                            url,
                            mime_type,
                            chunk.content,
                            encode_path(path),
                            encode_path(path[:-1]) if path else None,
                            chunk.section.level,
                            json.dumps(types),
                            sort_order,
                        ),
                    ) as cursor:
                        chunk_id = cursor.lastrowid
                    stored.append(
                        Document(
                            id=str(chunk_id),
                            content=chunk.content,
                            metadata={
                                "url": url,
                                "path": list(path),
                                "level": chunk.section.level,
                                "library": library,
                                "version": version,
                                "mime_type": mime_type,
                                "types": types,
                                "sort_order": sort_order,
                            },
                        )
                    )
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to store chunks for {url}", e) from e

        logger.debug("Stored %d chunks for %s", len(stored), url)
        return stored

    async def delete_document(self, library: str, version: str, url: str) -> int:
        """Delete all chunks of a document.

        Returns:
            Number of deleted chunks
        """
        self._require_initialized()
        library, version = _normalize(library, version)
        try:
            async with self._connection.execute(
                "DELETE FROM documents WHERE library = ? AND version = ? AND url = ?",
                (library, version, url),
            ) as cursor:
                deleted = cursor.rowcount
            await self._connection.commit()
        except Exception as e:
            raise StoreError(f"Failed to delete chunks for {url}", e) from e
        return deleted

    # Lookups

    async def _fetch_all(self, sql: str, params: Sequence[Any], action: str) -> list[Document]:
        self._require_initialized()
        try:
            async with self._connection.execute(sql, tuple(params)) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StoreLookupError(f"Failed to {action}", e) from e
        return [self._row_to_document(row) for row in rows]

    async def _reference(self, chunk_id: str, action: str) -> Document | None:
        try:
            return await self.get_by_id(chunk_id)
        except StoreLookupError:
            raise
        except StoreError as e:
            raise StoreLookupError(f"Failed to {action}", e) from e

    async def get_by_id(self, chunk_id: str) -> Document | None:
        try:
            row_id = int(chunk_id)
        except (TypeError, ValueError):
            return None
        documents = await self._fetch_all(
            "SELECT * FROM documents WHERE id = ?", (row_id,), f"fetch chunk {chunk_id}"
        )
        return documents[0] if documents else None

    async def find_parent_chunk(self, library: str, version: str, chunk_id: str) -> Document | None:
        action = f"find parent chunk for ID {chunk_id}"
        child = await self._reference(chunk_id, action)
        if child is None or len(child.path) <= 1:
            return None
        library, version = _normalize(library, version)
        documents = await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ?
            AND path = ? AND sort_order < ?
            ORDER BY sort_order DESC
            LIMIT 1
            """,
            (library, version, child.url, encode_path(child.path[:-1]), child.sort_order),
            action,
        )
        return documents[0] if documents else None

    async def find_child_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        action = f"find child chunks for ID {chunk_id}"
        parent = await self._reference(chunk_id, action)
        if parent is None:
            return []
        library, version = _normalize(library, version)
        return await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ?
            AND parent_path = ? AND sort_order > ?
            ORDER BY sort_order
            LIMIT ?
            """,
            (library, version, parent.url, encode_path(parent.path), parent.sort_order, limit),
            action,
        )

    async def find_preceding_sibling_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        action = f"find preceding sibling chunks for ID {chunk_id}"
        reference = await self._reference(chunk_id, action)
        if reference is None:
            return []
        library, version = _normalize(library, version)
        documents = await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ?
            AND path = ? AND sort_order < ?
            ORDER BY sort_order DESC
            LIMIT ?
            """,
            (library, version, reference.url, encode_path(reference.path), reference.sort_order, limit),
            action,
        )
        documents.reverse()
        return documents

    async def find_subsequent_sibling_chunks(
        self, library: str, version: str, chunk_id: str, limit: int
    ) -> list[Document]:
        action = f"find subsequent sibling chunks for ID {chunk_id}"
        reference = await self._reference(chunk_id, action)
        if reference is None:
            return []
        library, version = _normalize(library, version)
        return await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ?
            AND path = ? AND sort_order > ?
            ORDER BY sort_order
            LIMIT ?
            """,
            (library, version, reference.url, encode_path(reference.path), reference.sort_order, limit),
            action,
        )

    async def find_chunks_by_ids(
        self, library: str, version: str, chunk_ids: Sequence[str]
    ) -> list[Document]:
        row_ids = sorted({int(chunk_id) for chunk_id in chunk_ids if str(chunk_id).isdigit()})
        if not row_ids:
            return []
        library, version = _normalize(library, version)

        documents: list[Document] = []
        for start in range(0, len(row_ids), ID_BATCH_SIZE):
            batch = row_ids[start : start + ID_BATCH_SIZE]
            placeholders = ", ".join("?" for _ in batch)
            documents.extend(
                await self._fetch_all(
                    f"""
                    SELECT * FROM documents
                    WHERE library = ? AND version = ? AND id IN ({placeholders})
                    """,
                    (library, version, *batch),
                    f"fetch {len(batch)} chunks by id",
                )
            )
        documents.sort(key=lambda doc: (doc.url, doc.sort_order))
        return documents

    async def find_chunks_by_path(
        self, library: str, version: str, url: str, path: Sequence[str]
    ) -> list[Document]:
        library, version = _normalize(library, version)
        return await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ? AND path = ?
            ORDER BY sort_order
            """,
            (library, version, url, encode_path(path)),
            f"find chunks at path {list(path)} in {url}",
        )

    async def find_chunks_by_url(self, library: str, version: str, url: str) -> list[Document]:
        """All chunks of a document in document order."""
        library, version = _normalize(library, version)
        return await self._fetch_all(
            """
            SELECT * FROM documents
            WHERE library = ? AND version = ? AND url = ?
            ORDER BY sort_order
            """,
            (library, version, url),
            f"find chunks for {url}",
        )

    async def count_chunks(self, library: str | None = None, version: str | None = None) -> int:
        """Count stored chunks, optionally for one library (and version)."""
        self._require_initialized()
        conditions = []
        params: list[Any] = []
        if library is not None:
            conditions.append("library = ?")
            params.append(library.lower())
            if version is not None:
                conditions.append("version = ?")
                params.append(version.lower())
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        try:
            async with self._connection.execute(
                f"SELECT COUNT(*) FROM documents {where}", tuple(params)
            ) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StoreLookupError("Failed to count chunks", e) from e
        return row[0] if row else 0

    def _row_to_document(self, row) -> Document:
        """Convert a database row to a Document."""
        return Document(
            id=str(row["id"]),
            content=row["content"],
            metadata={
                "url": row["url"],
                "path": json.loads(row["path"]) if row["path"] else [],
                "level": row["level"],
                "library": row["library"],
                "version": row["version"],
                "mime_type": row["mime_type"],
                "types": json.loads(row["types"]) if row["types"] else [],
                "sort_order": row["sort_order"],
            },
        )
