"""Grammar adapters for the structural splitter.

Each adapter describes one language family. The JSON adapter uses its own
scanner, the others parse with tree-sitter via tree-sitter-language-pack.
"""

from docsplit.splitter.adapters.base import GrammarAdapter, ParseResult, node_text
from docsplit.splitter.adapters.json import JsonAdapter, JsonNode, scan_json
from docsplit.splitter.adapters.python import PythonAdapter
from docsplit.splitter.adapters.typescript import TypeScriptAdapter, detect_jsx

__all__ = [
    "GrammarAdapter",
    "JsonAdapter",
    "JsonNode",
    "ParseResult",
    "PythonAdapter",
    "TypeScriptAdapter",
    "detect_jsx",
    "node_text",
    "scan_json",
]
