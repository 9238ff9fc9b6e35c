"""Adapter registry.

Maps MIME types and file extensions to grammar adapters. The registry is
built once and never mutated; pass it to the splitter explicitly.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from types import MappingProxyType

from docsplit.splitter.adapters import GrammarAdapter, JsonAdapter, PythonAdapter, TypeScriptAdapter

logger = logging.getLogger(__name__)

_EXTENSION_SUFFIX = re.compile(r"\.([a-zA-Z0-9]+)$")

# Substring heuristics for MIME types no adapter declares, checked in order
_SUBSTRING_HINTS = (
    ("tsx", "tsx"),
    ("jsx", "tsx"),
    ("typescript", "typescript"),
    ("javascript", "typescript"),
    ("python", "python"),
    ("json", "json"),
)


class AdapterRegistry:
    """Immutable lookup table from MIME type / extension to adapter.

    When two adapters declare the same key, the one registered later wins.

    Args:
        adapters: Adapters to register
    """

    def __init__(self, adapters: Iterable[GrammarAdapter]):
        self._adapters = tuple(adapters)
        by_name: dict[str, GrammarAdapter] = {}
        by_mime: dict[str, GrammarAdapter] = {}
        by_extension: dict[str, GrammarAdapter] = {}
        for adapter in self._adapters:
            by_name[adapter.name] = adapter
            for mime_type in adapter.mime_types:
                by_mime[mime_type.lower()] = adapter
            for extension in adapter.file_extensions:
                by_extension[extension.lower()] = adapter
        self._by_name = MappingProxyType(by_name)
        self._by_mime = MappingProxyType(by_mime)
        self._by_extension = MappingProxyType(by_extension)

    @classmethod
    def default(cls) -> AdapterRegistry:
        """Registry with the TypeScript/JavaScript, TSX, Python and JSON adapters."""
        return cls(
            [
                TypeScriptAdapter(),
                TypeScriptAdapter(force_tsx=True),
                PythonAdapter(),
                JsonAdapter(),
            ]
        )

    @property
    def adapters(self) -> tuple[GrammarAdapter, ...]:
        return self._adapters

    def get(self, name: str) -> GrammarAdapter | None:
        """Adapter by its registered name."""
        return self._by_name.get(name)

    def by_extension(self, extension: str) -> GrammarAdapter | None:
        extension = extension.lower()
        if not extension.startswith("."):
            extension = f".{extension}"
        return self._by_extension.get(extension)

    def lookup(self, mime_type: str | None) -> GrammarAdapter | None:
        """Find the adapter for a MIME type.

        Tries an exact MIME match, then a trailing file extension, then
        substring hints.

        Args:
            mime_type: MIME type (parameters are ignored)

        Returns:
            Matching adapter, or None when no adapter applies
        """
        if not mime_type:
            return None
        normalized = mime_type.split(";", 1)[0].strip().lower()

        adapter = self._by_mime.get(normalized)
        if adapter is not None:
            return adapter

        match = _EXTENSION_SUFFIX.search(normalized)
        if match:
            adapter = self.by_extension(match.group(1))
            if adapter is not None:
                return adapter

        for hint, name in _SUBSTRING_HINTS:
            if hint in normalized:
                adapter = self.get(name)
                if adapter is not None:
                    logger.debug("Resolved %s to the %s adapter by substring", mime_type, name)
                    return adapter
        return None

    def supports(self, mime_type: str | None) -> bool:
        return self.lookup(mime_type) is not None

    @property
    def supported_mime_types(self) -> list[str]:
        return sorted(self._by_mime)

    @property
    def supported_extensions(self) -> list[str]:
        return sorted(self._by_extension)
