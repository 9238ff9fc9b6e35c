"""Unit tests for context assembly.

Tests cover:
- Strategy selection by MIME type
- Hierarchical selection for single and multiple hits
- Cycle and depth protection on ancestor walks
- Fallback selection when the store fails
- Prose selection with neighbours and children
- Indexing into a store other than SQLite
"""

from __future__ import annotations

import logging
import sqlite3

import pytest

from docsplit.assembly import (
    HierarchicalAssemblyStrategy,
    ProseAssemblyStrategy,
    common_path_prefix,
    create_assembly_strategy,
    group_hits_by_url,
)
from docsplit.config import AssemblyConfig, DocsplitConfig
from docsplit.errors import StoreLookupError
from docsplit.retrieval import ContextRetriever, DocumentIndexer
from docsplit.splitter.source import SourceSplitter
from docsplit.splitter.types import Chunk, Section
from docsplit.store.base import ChunkStore
from docsplit.store.sqlite import SQLiteChunkStore
from docsplit.store.types import Document

URL = "file:///src/calculator.ts"
MIME = "text/x-typescript"


def _doc(chunk_id: str, path: tuple[str, ...], sort_order: int, url: str = URL) -> Document:
    return Document(
        id=chunk_id,
        content=f"<{chunk_id}>",
        metadata={"url": url, "path": list(path), "sort_order": sort_order, "mime_type": MIME},
    )


class FakeChunkStore(ChunkStore):
    """In-memory store with injectable parent links and failures.

    Args:
        documents: Stored documents
        parents: Explicit child id -> parent id links. Parents are derived
            from paths when not given.
        failing: Names of methods that raise
        error: Exception type raised by failing methods
    """

    def __init__(
        self,
        documents: list[Document],
        parents: dict[str, str] | None = None,
        failing: set[str] | None = None,
        error: type[Exception] = StoreLookupError,
    ):
        self.documents = {doc.id: doc for doc in documents}
        self.parents = parents
        self.failing = failing or set()
        self.error = error
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise self.error(f"{name} failed")

    def _ordered(self) -> list[Document]:
        return sorted(self.documents.values(), key=lambda doc: (doc.url, doc.sort_order))

    async def add_chunks(self, library, version, url, mime_type, chunks):
        self._check("add_chunks")
        start = len(self.documents)
        added = [
            Document(
                id=str(start + offset + 1),
                content=chunk.content,
                metadata={
                    "url": url,
                    "path": list(chunk.section.path),
                    "sort_order": offset,
                    "mime_type": mime_type,
                },
            )
            for offset, chunk in enumerate(chunks)
        ]
        self.documents.update((doc.id, doc) for doc in added)
        return added

    async def get_by_id(self, chunk_id):
        self._check("get_by_id")
        return self.documents.get(chunk_id)

    async def find_parent_chunk(self, library, version, chunk_id):
        self._check("find_parent_chunk")
        child = self.documents.get(chunk_id)
        if child is None:
            return None
        if self.parents is not None:
            return self.documents.get(self.parents.get(chunk_id, ""))
        if len(child.path) <= 1:
            return None
        candidates = [
            doc
            for doc in self._ordered()
            if doc.url == child.url and doc.path == child.path[:-1] and doc.sort_order < child.sort_order
        ]
        return candidates[-1] if candidates else None

    async def find_child_chunks(self, library, version, chunk_id, limit):
        self._check("find_child_chunks")
        parent = self.documents.get(chunk_id)
        if parent is None:
            return []
        children = [
            doc
            for doc in self._ordered()
            if doc.url == parent.url
            and doc.path[:-1] == parent.path
            and len(doc.path) == len(parent.path) + 1
            and doc.sort_order > parent.sort_order
        ]
        return children[:limit]

    async def find_preceding_sibling_chunks(self, library, version, chunk_id, limit):
        self._check("find_preceding_sibling_chunks")
        return []

    async def find_subsequent_sibling_chunks(self, library, version, chunk_id, limit):
        self._check("find_subsequent_sibling_chunks")
        return []

    async def find_chunks_by_ids(self, library, version, chunk_ids):
        self._check("find_chunks_by_ids")
        wanted = set(chunk_ids)
        return [doc for doc in self._ordered() if doc.id in wanted]

    async def find_chunks_by_path(self, library, version, url, path):
        self._check("find_chunks_by_path")
        return [doc for doc in self._ordered() if doc.url == url and doc.path == tuple(path)]


class TestHelpers:
    """Tests for grouping and path helpers."""

    def test_common_path_prefix(self):
        assert common_path_prefix([("a", "b", "c"), ("a", "b", "d")]) == ("a", "b")
        assert common_path_prefix([("a",), ("b",)]) == ()
        assert common_path_prefix([("a", "b")]) == ("a", "b")
        assert common_path_prefix([]) == ()

    def test_group_hits_by_url(self):
        hits = [
            _doc("1", (), 0, url="a"),
            _doc("2", (), 0, url="b"),
            _doc("3", (), 1, url="a"),
            _doc("1", (), 0, url="a"),
        ]
        groups = group_hits_by_url(hits)

        assert [group.url for group in groups] == ["a", "b"]
        assert [hit.id for hit in groups[0].hits] == ["1", "3"]


class TestCreateAssemblyStrategy:
    """Tests for strategy selection."""

    @pytest.mark.parametrize(
        "mime_type",
        ["text/x-typescript", "text/javascript", "text/x-python", "text/x-go", "application/json"],
    )
    def test_structured_content(self, mime_type: str):
        assert isinstance(create_assembly_strategy(mime_type), HierarchicalAssemblyStrategy)

    @pytest.mark.parametrize(
        "mime_type",
        [None, "", "text/markdown", "text/html", "text/plain", "application/octet-stream", "image/png"],
    )
    def test_prose_and_unknown_content(self, mime_type):
        assert isinstance(create_assembly_strategy(mime_type), ProseAssemblyStrategy)

    def test_config_is_passed(self):
        config = DocsplitConfig(assembly=AssemblyConfig(max_parent_chain_depth=7))
        strategy = create_assembly_strategy("text/x-python", config)
        assert strategy.config.max_parent_chain_depth == 7


class TestHierarchicalAssembly:
    """Tests for HierarchicalAssemblyStrategy."""

    def test_assemble_content_adds_nothing(self):
        strategy = HierarchicalAssemblyStrategy()
        chunks = [
            Document(id="1", content="class A {\n"),
            Document(id="2", content="  m() {}\n"),
            Document(id="3", content="}"),
        ]
        assert strategy.assemble_content(chunks) == "class A {\n  m() {}\n}"
        assert strategy.assemble_content(chunks[:1]) == "class A {\n"
        assert strategy.assemble_content([]) == ""

    @pytest.mark.asyncio
    async def test_no_hits(self, store: SQLiteChunkStore):
        assert await HierarchicalAssemblyStrategy().select_chunks("calc", "1.0", [], store) == []

    @pytest.mark.asyncio
    async def test_single_hit_walks_to_root(
        self, store: SQLiteChunkStore, calculator_chunks: list[Chunk]
    ):
        documents = await store.add_chunks("calc", "1.0", URL, MIME, calculator_chunks)
        strategy = HierarchicalAssemblyStrategy()

        selected = await strategy.select_chunks("calc", "1.0", [documents[2]], store)

        assert [doc.id for doc in selected] == [documents[1].id, documents[2].id]
        assert strategy.assemble_content(selected) == (
            "class Calculator {\n  add(x, y) {\n    return x + y;\n  }\n"
        )

    @pytest.mark.asyncio
    async def test_top_level_hit_is_returned_alone(
        self, store: SQLiteChunkStore, calculator_chunks: list[Chunk]
    ):
        documents = await store.add_chunks("calc", "1.0", URL, MIME, calculator_chunks)
        selected = await HierarchicalAssemblyStrategy().select_chunks(
            "calc", "1.0", [documents[6]], store
        )
        assert [doc.id for doc in selected] == [documents[6].id]

    @pytest.mark.asyncio
    async def test_sibling_hits_rebuild_container(
        self, store: SQLiteChunkStore, calculator_chunks: list[Chunk]
    ):
        """Two methods of one class should bring back the whole class."""
        documents = await store.add_chunks("calc", "1.0", URL, MIME, calculator_chunks)
        strategy = HierarchicalAssemblyStrategy()

        selected = await strategy.select_chunks("calc", "1.0", [documents[4], documents[2]], store)

        assert [doc.id for doc in selected] == [doc.id for doc in documents[1:6]]
        assert strategy.assemble_content(selected) == "".join(c.content for c in calculator_chunks[1:6])

    @pytest.mark.asyncio
    async def test_subtree_included(self):
        documents = [
            _doc("1", ("A",), 0),
            _doc("2", ("A", "b"), 1),
            _doc("3", ("A", "b", "c"), 2),
            _doc("4", ("A", "d"), 3),
            _doc("5", ("A", "d", "e"), 4),
        ]
        store = FakeChunkStore(documents)

        selected = await HierarchicalAssemblyStrategy().select_chunks(
            "lib", "1", [documents[1], documents[3]], store
        )
        assert [doc.id for doc in selected] == ["1", "2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_parent_cycle_terminates(self, caplog):
        """A parent cycle A -> B -> A should stop with a warning."""
        documents = [_doc("1", ("x", "a"), 1), _doc("2", ("x",), 0)]
        store = FakeChunkStore(documents, parents={"1": "2", "2": "1"})
        strategy = HierarchicalAssemblyStrategy()

        with caplog.at_level(logging.WARNING, logger="docsplit.assembly.hierarchical"):
            selected = await strategy.select_chunks("lib", "1", [documents[0]], store)

        assert sorted(doc.id for doc in selected) == ["1", "2"]
        assert "Circular reference" in caplog.text

    @pytest.mark.asyncio
    async def test_depth_cap(self, caplog):
        documents = [_doc(str(i), ("p",) * (i + 1), i) for i in range(20)]
        parents = {str(i): str(i - 1) for i in range(1, 20)}
        store = FakeChunkStore(documents, parents=parents)
        strategy = HierarchicalAssemblyStrategy(AssemblyConfig(max_parent_chain_depth=5))

        with caplog.at_level(logging.WARNING):
            chain = await strategy.walk_to_root("lib", "1", documents[19], store)

        assert chain == ["19", "18", "17", "16", "15"]
        assert "Maximum parent chain depth" in caplog.text

    @pytest.mark.asyncio
    async def test_store_failure_uses_fallback_selection(self):
        documents = [
            _doc("1", ("A",), 0),
            _doc("2", ("A", "b"), 1),
            _doc("3", ("A", "c"), 2),
        ]
        store = FakeChunkStore(documents, failing={"find_chunks_by_path"})

        selected = await HierarchicalAssemblyStrategy().select_chunks(
            "lib", "1", [documents[1], documents[2]], store
        )

        assert [doc.id for doc in selected] == ["1", "2", "3"]
        assert "find_chunks_by_path" in store.calls

    @pytest.mark.asyncio
    async def test_fallback_tolerates_failed_lookups(self):
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(documents, failing={"find_parent_chunk", "find_child_chunks"})

        selected = await HierarchicalAssemblyStrategy().select_chunks("lib", "1", [documents[1]], store)
        assert [doc.id for doc in selected] == ["2"]

    @pytest.mark.asyncio
    async def test_driver_errors_are_recovered(self):
        """Errors that are not StoreErrors still degrade to the hits."""
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(
            documents,
            failing={"find_parent_chunk", "find_child_chunks", "find_chunks_by_ids"},
            error=ConnectionError,
        )

        selected = await HierarchicalAssemblyStrategy().select_chunks("lib", "1", [documents[1]], store)
        assert selected == [documents[1]]

    @pytest.mark.asyncio
    async def test_driver_error_falls_back_to_basic_selection(self):
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(documents, failing={"find_chunks_by_path"}, error=sqlite3.OperationalError)

        selected = await HierarchicalAssemblyStrategy().select_chunks(
            "lib", "1", [documents[0], documents[1]], store
        )
        assert [doc.id for doc in selected] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_total_failure_returns_hits(self):
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(documents, failing={"find_parent_chunk", "find_chunks_by_ids"})

        selected = await HierarchicalAssemblyStrategy().select_chunks(
            "lib", "1", [documents[1], documents[1]], store
        )
        assert selected == [documents[1]]


PROSE_URL = "file:///docs/guide.md"


@pytest.fixture
def guide_chunks() -> list[Chunk]:
    return [
        Chunk("# Guide\n", section=Section.from_path(("Guide",))),
        Chunk("Intro text.\n", section=Section.from_path(("Guide",))),
        Chunk("## Install\n", section=Section.from_path(("Guide", "Install"))),
        Chunk("Run the installer.\n", section=Section.from_path(("Guide", "Install"))),
        Chunk("## Usage\n", section=Section.from_path(("Guide", "Usage"))),
    ]


class TestProseAssembly:
    """Tests for ProseAssemblyStrategy."""

    def test_assemble_content_uses_blank_lines(self):
        chunks = [Document(id="1", content="First."), Document(id="2", content="Second.")]
        assert ProseAssemblyStrategy().assemble_content(chunks) == "First.\n\nSecond."

    @pytest.mark.asyncio
    async def test_hit_widened_with_neighbours(
        self, store: SQLiteChunkStore, guide_chunks: list[Chunk]
    ):
        documents = await store.add_chunks("guide", "", PROSE_URL, "text/markdown", guide_chunks)
        strategy = ProseAssemblyStrategy(AssemblyConfig(prose_child_limit=1))

        selected = await strategy.select_chunks("guide", "", [documents[1]], store)

        assert [doc.id for doc in selected] == [doc.id for doc in documents[:3]]

    @pytest.mark.asyncio
    async def test_parent_included(self, store: SQLiteChunkStore, guide_chunks: list[Chunk]):
        documents = await store.add_chunks("guide", "", PROSE_URL, "text/markdown", guide_chunks)

        selected = await ProseAssemblyStrategy().select_chunks("guide", "", [documents[3]], store)

        ids = [doc.id for doc in selected]
        assert documents[1].id in ids
        assert documents[2].id in ids
        assert documents[3].id in ids

    @pytest.mark.asyncio
    async def test_failed_lookups_are_skipped(self):
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(documents, failing={"find_parent_chunk"})

        selected = await ProseAssemblyStrategy().select_chunks("lib", "1", [documents[0]], store)
        assert [doc.id for doc in selected] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_resolution_failure_returns_hits(self):
        documents = [_doc("1", ("A",), 0)]
        store = FakeChunkStore(documents, failing={"find_chunks_by_ids"})

        selected = await ProseAssemblyStrategy().select_chunks(
            "lib", "1", [documents[0], documents[0]], store
        )
        assert selected == [documents[0]]

    @pytest.mark.asyncio
    async def test_driver_errors_return_hits(self):
        documents = [_doc("1", ("A",), 0), _doc("2", ("A", "b"), 1)]
        store = FakeChunkStore(
            documents,
            failing={
                "find_parent_chunk",
                "find_preceding_sibling_chunks",
                "find_subsequent_sibling_chunks",
                "find_child_chunks",
                "find_chunks_by_ids",
            },
            error=ConnectionError,
        )

        selected = await ProseAssemblyStrategy().select_chunks("lib", "1", [documents[1]], store)
        assert selected == [documents[1]]


class TestIndexingIntoAnyStore:
    """Indexing and assembly over a ChunkStore that is not SQLite."""

    @pytest.mark.asyncio
    async def test_indexer_accepts_chunk_store(self):
        store = FakeChunkStore([])
        indexer = DocumentIndexer(SourceSplitter(), store)

        documents = await indexer.index_document(
            "proj", "1.0", "file:///project/package.json", '{"a": {"b": 1}}', "application/json"
        )

        assert store.calls == ["add_chunks"]
        assert [doc.path for doc in documents] == [(), ("a",), ("a", "b"), ("a",), ()]

        results = await ContextRetriever(store).assemble("proj", "1.0", [documents[2]])
        assert results[0].content == '// Path: a\n"a": {// Path: a.b\n"b": 1}'
