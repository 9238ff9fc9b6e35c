"""Shared fixtures for docsplit tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsplit.splitter.types import Chunk, ChunkType, Section
from docsplit.store.sqlite import SQLiteChunkStore


@pytest.fixture
async def store(tmp_path: Path) -> SQLiteChunkStore:
    """Create and initialize a chunk store in a temporary directory."""
    store = SQLiteChunkStore(db_path=tmp_path / "docsplit.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def calculator_chunks() -> list[Chunk]:
    """Chunks of a small TypeScript module, as the splitter produces them.

    Layout (sort order: path):
        0: ()                          import line
        1: ("Calculator",)             class header
        2: ("Calculator", "add")       method
        3: ("Calculator",)             blank line between methods
        4: ("Calculator", "multiply")  method
        5: ("Calculator",)             closing brace
        6: ("divide",)                 arrow function
    """
    code = frozenset({ChunkType.CODE})
    structural = frozenset({ChunkType.CODE, ChunkType.STRUCTURAL})
    return [
        Chunk("import { log } from './log';\n", code, Section.global_section()),
        Chunk("class Calculator {\n", structural, Section.from_path(("Calculator",))),
        Chunk(
            "  add(x, y) {\n    return x + y;\n  }\n",
            code,
            Section.from_path(("Calculator", "add")),
        ),
        Chunk("\n", structural, Section.from_path(("Calculator",))),
        Chunk(
            "  multiply(x, y) {\n    return x * y;\n  }\n",
            code,
            Section.from_path(("Calculator", "multiply")),
        ),
        Chunk("}\n", structural, Section.from_path(("Calculator",))),
        Chunk(
            "const divide = (a, b) => {\n  return a / b;\n};\n",
            code,
            Section.from_path(("divide",)),
        ),
    ]
