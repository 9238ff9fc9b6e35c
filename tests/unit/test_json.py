"""Unit tests for JSON splitting.

Tests cover:
- The annotated structural splitter (delimiter and member pieces)
- Size limits and invalid input
- The JSON scanner and adapter used by the lossless splitter
"""

from __future__ import annotations

import json

import pytest

from docsplit.config import DocsplitConfig, JsonSplitterConfig, SplitterConfig
from docsplit.errors import MinimumChunkSizeError, ParseError
from docsplit.splitter.adapters.json import JsonAdapter, scan_json
from docsplit.splitter.extractor import BoundaryExtractor
from docsplit.splitter.json_splitter import JsonStructuralSplitter, format_path
from docsplit.splitter.types import BoundaryCategory, ChunkType


class TestFormatPath:
    """Tests for format_path."""

    def test_root(self):
        assert format_path(()) == "root"

    def test_keys_and_indexes(self):
        assert format_path(("a", "b", "[0]", "c")) == "a.b[0].c"

    def test_leading_index(self):
        assert format_path(("[0]", "id")) == "[0].id"


class TestJsonStructuralSplitter:
    """Tests for JsonStructuralSplitter."""

    def test_flat_object(self):
        """A two-member object should give exactly five pieces."""
        pieces = JsonStructuralSplitter().split('{"name":"John","age":30}')

        assert len(pieces) == 5
        assert pieces[0] == "{"
        assert "// Path: name" in pieces[1]
        assert '"name": "John"' in pieces[1]
        assert pieces[2] == ","
        assert "// Path: age" in pieces[3]
        assert '"age": 30' in pieces[3]
        assert pieces[4] == "}"

    def test_empty_object(self):
        assert JsonStructuralSplitter().split("{}") == ["{", "}"]

    def test_empty_array(self):
        assert JsonStructuralSplitter().split("[]") == ["[", "]"]

    def test_primitive_document(self):
        assert JsonStructuralSplitter().split("42") == ["42"]

    def test_nested_object(self):
        pieces = JsonStructuralSplitter().split('{"a":{"b":1},"c":[true]}')

        assert pieces == [
            "{",
            '// Path: a\n"a": {',
            '// Path: a.b\n"b": 1',
            "}",
            ",",
            '// Path: c\n"c": [',
            "// Path: c[0]\ntrue",
            "]",
            "}",
        ]

    def test_array_of_objects(self):
        pieces = JsonStructuralSplitter().split('[{"id":1}]')
        assert pieces == ["[", "// Path: [0]\n{", '// Path: [0].id\n"id": 1', "}", "]"]

    def test_nested_empty_containers_are_members(self):
        pieces = JsonStructuralSplitter().split('{"a":{},"b":[]}')
        assert pieces == ["{", '// Path: a\n"a": {}', ",", '// Path: b\n"b": []', "}"]

    def test_max_nesting_depth(self):
        """Containers at the depth limit should be serialized whole."""
        splitter = JsonStructuralSplitter(max_nesting_depth=1)
        pieces = splitter.split('{"a":{"b":{"c":1}}}')

        assert pieces[0] == "{"
        assert pieces[-1] == "}"
        assert len(pieces) == 3
        assert json.loads(pieces[1].split("\n", 1)[1].split(": ", 1)[1]) == {"b": {"c": 1}}

    def test_unicode_kept(self):
        pieces = JsonStructuralSplitter().split('{"greeting":"héllo"}')
        assert '"greeting": "héllo"' in pieces[1]

    def test_chunk_sections(self):
        chunks = JsonStructuralSplitter().split_chunks('{"a":{"b":1}}')

        assert chunks[0].types == frozenset({ChunkType.STRUCTURAL})
        member = next(c for c in chunks if "a.b" in c.content)
        assert member.types == frozenset({ChunkType.CONTENT})
        assert member.section.path == ("a", "b")
        assert member.section.level == 2

    def test_invalid_json_small(self):
        """Invalid JSON within the size limit is kept verbatim."""
        content = "not json at all"
        assert JsonStructuralSplitter(chunk_size=100).split(content) == [content]

    def test_invalid_json_large(self):
        """Invalid JSON larger than a chunk cannot be split."""
        content = "x" * 200
        with pytest.raises(MinimumChunkSizeError) as exc_info:
            JsonStructuralSplitter(chunk_size=100).split(content)
        assert exc_info.value.size == 200
        assert exc_info.value.max_size == 100

    def test_oversized_primitive(self):
        content = json.dumps({"blob": "y" * 500})
        with pytest.raises(MinimumChunkSizeError):
            JsonStructuralSplitter(chunk_size=100).split(content)

    def test_max_chunks(self):
        content = json.dumps(list(range(20)))
        with pytest.raises(MinimumChunkSizeError):
            JsonStructuralSplitter(max_chunks=10).split(content)

    def test_from_config(self):
        config = DocsplitConfig(
            splitter=SplitterConfig(
                max_chunk_size=300,
                json=JsonSplitterConfig(max_nesting_depth=2, max_chunks=40),
            )
        )
        splitter = JsonStructuralSplitter.from_config(config)

        assert (splitter.chunk_size, splitter.max_nesting_depth, splitter.max_chunks) == (300, 2, 40)


SAMPLE = """{
  "name": "docsplit",
  "scripts": {
    "build": "tsc"
  },
  "files": ["dist", "src"]
}
"""


class TestScanJson:
    """Tests for the JSON scanner."""

    def test_tree_shape(self):
        document = scan_json(SAMPLE)
        obj = document.children[0]

        assert document.type == "document"
        assert obj.type == "object"
        assert [pair.key for pair in obj.children] == ["name", "scripts", "files"]
        files = obj.children[2].value_node
        assert [element.key for element in files.children] == ["[0]", "[1]"]

    def test_positions(self):
        document = scan_json(SAMPLE)
        scripts = document.children[0].children[1]

        assert scripts.start_point == (2, 2)
        assert scripts.end_point[0] == 4
        assert scripts.text.decode().startswith('"scripts": {')
        assert scripts.parent is document.children[0]

    def test_multibyte_offsets(self):
        """Byte offsets should index the UTF-8 encoding."""
        document = scan_json('{"ä": "ö"}')
        pair = document.children[0].children[0]
        assert pair.text.decode() == '"ä": "ö"'

    @pytest.mark.parametrize(
        "source",
        ['{"a": 1,}', '{"a" 1}', "[1, 2", '{"a": tru}', '"unterminated', "{} {}"],
    )
    def test_invalid(self, source: str):
        with pytest.raises(ParseError):
            scan_json(source)


class TestJsonAdapter:
    """Tests for JsonAdapter with the boundary extractor."""

    def test_boundaries(self):
        adapter = JsonAdapter()
        boundaries = BoundaryExtractor(adapter).extract(adapter.parse(SAMPLE))
        by_name = {b.name: b for b in boundaries}

        assert [b.name for b in boundaries] == ["name", "scripts", "build", "files", "[0]", "[1]"]
        assert by_name["scripts"].category == BoundaryCategory.STRUCTURAL
        assert by_name["name"].category == BoundaryCategory.CONTENT
        assert by_name["build"].path == ("scripts",)
        assert by_name["[1]"].path == ("files",)
        assert by_name["scripts"].start_line == 3
        assert by_name["scripts"].end_line == 5

    def test_modifiers_name_value_type(self):
        adapter = JsonAdapter()
        boundaries = BoundaryExtractor(adapter).extract(adapter.parse('{"a": [1]}'))
        assert boundaries[0].modifiers == ("array",)
        assert boundaries[1].modifiers == ("number",)

    def test_empty_container_is_content(self):
        adapter = JsonAdapter()
        boundaries = BoundaryExtractor(adapter).extract(adapter.parse('{"a": {}}'))
        assert boundaries[0].category == BoundaryCategory.CONTENT

    def test_parse_error(self):
        with pytest.raises(ParseError):
            JsonAdapter().parse("{")
