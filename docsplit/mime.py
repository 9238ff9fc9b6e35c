"""MIME type helpers.

Classifies MIME types into the families the splitter and the assembly
strategies care about (source code, JSON, markdown, HTML, plain text) and
detects the MIME type of a file from its extension.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

DEFAULT_MIME_TYPE = "application/octet-stream"

JSON_MIME_TYPES = frozenset({"application/json", "text/json", "text/x-json"})
MARKDOWN_MIME_TYPES = frozenset({"text/markdown", "text/x-markdown"})
HTML_MIME_TYPES = frozenset({"text/html", "application/xhtml+xml"})

# Source code MIME type to language name
MIME_TO_LANGUAGE: dict[str, str] = {
    "text/x-typescript": "typescript",
    "text/typescript": "typescript",
    "application/typescript": "typescript",
    "text/x-tsx": "tsx",
    "text/tsx": "tsx",
    "text/javascript": "javascript",
    "application/javascript": "javascript",
    "application/x-javascript": "javascript",
    "text/x-jsx": "jsx",
    "text/jsx": "jsx",
    "text/x-python": "python",
    "text/python": "python",
    "application/python": "python",
    "application/x-python": "python",
    "text/x-cython": "cython",
    "text/x-c": "c",
    "text/x-csrc": "c",
    "text/x-chdr": "c",
    "text/x-c++src": "cpp",
    "text/x-c++hdr": "cpp",
    "text/x-go": "go",
    "text/x-rust": "rust",
    "text/x-java": "java",
    "text/x-kotlin": "kotlin",
    "text/x-scala": "scala",
    "text/x-swift": "swift",
    "text/x-csharp": "csharp",
    "text/x-ruby": "ruby",
    "text/x-php": "php",
    "text/x-lua": "lua",
    "text/x-perl": "perl",
    "text/x-shellscript": "bash",
    "text/x-sh": "bash",
    "application/x-sh": "bash",
    "text/x-sql": "sql",
    "text/x-toml": "toml",
    "text/x-yaml": "yaml",
}

# Extensions the platform mimetypes table gets wrong or does not know
EXTENSION_TO_MIME: dict[str, str] = {
    ".ts": "text/x-typescript",
    ".mts": "text/x-typescript",
    ".cts": "text/x-typescript",
    ".tsx": "text/x-tsx",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".cjs": "text/javascript",
    ".jsx": "text/x-jsx",
    ".py": "text/x-python",
    ".pyi": "text/x-python",
    ".pyw": "text/x-python",
    ".pyx": "text/x-cython",
    ".json": "application/json",
    ".md": "text/markdown",
    ".mdx": "text/markdown",
    ".markdown": "text/markdown",
    ".html": "text/html",
    ".htm": "text/html",
    ".txt": "text/plain",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".c": "text/x-csrc",
    ".h": "text/x-chdr",
    ".cpp": "text/x-c++src",
    ".cc": "text/x-c++src",
    ".hpp": "text/x-c++hdr",
    ".java": "text/x-java",
    ".kt": "text/x-kotlin",
    ".scala": "text/x-scala",
    ".swift": "text/x-swift",
    ".cs": "text/x-csharp",
    ".rb": "text/x-ruby",
    ".php": "text/x-php",
    ".lua": "text/x-lua",
    ".pl": "text/x-perl",
    ".sh": "text/x-shellscript",
    ".bash": "text/x-shellscript",
    ".sql": "text/x-sql",
    ".toml": "text/x-toml",
    ".yaml": "text/x-yaml",
    ".yml": "text/x-yaml",
}

# MIME types reported by generic tables for source files
NORMALIZED_MIME_TYPES: dict[str, str] = {
    "application/node": "text/javascript",
    "video/mp2t": "text/x-typescript",
    "application/rls-services+xml": "text/x-rust",
    "application/x-perl": "text/x-perl",
    "application/toml": "text/x-toml",
}


def parse_content_type(header: str | None) -> tuple[str, str | None]:
    """Split a Content-Type header into MIME type and charset.

    Args:
        header: Header value such as ``text/html; charset=utf-8``

    Returns:
        Tuple of (lowercased MIME type, charset or None)
    """
    if not header:
        return DEFAULT_MIME_TYPE, None
    parts = [part.strip() for part in header.split(";")]
    charset = None
    for param in parts[1:]:
        if param.lower().startswith("charset="):
            charset = param[len("charset=") :].lower()
            break
    return parts[0].lower(), charset


def normalize(mime_type: str | None) -> str | None:
    """Lowercase a MIME type, drop parameters and fix known misdetections."""
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    return NORMALIZED_MIME_TYPES.get(base, base)


def is_json(mime_type: str | None) -> bool:
    return normalize(mime_type) in JSON_MIME_TYPES


def is_markdown(mime_type: str | None) -> bool:
    return normalize(mime_type) in MARKDOWN_MIME_TYPES


def is_html(mime_type: str | None) -> bool:
    return normalize(mime_type) in HTML_MIME_TYPES


def is_text(mime_type: str | None) -> bool:
    """Plain text/* content, excluding JSON and markdown."""
    normalized = normalize(mime_type)
    if not normalized or not normalized.startswith("text/"):
        return False
    return normalized not in JSON_MIME_TYPES and normalized not in MARKDOWN_MIME_TYPES


def extract_language(mime_type: str | None) -> str:
    """Language name for a source code MIME type, or an empty string."""
    normalized = normalize(mime_type)
    if not normalized:
        return ""
    return MIME_TO_LANGUAGE.get(normalized, "")


def is_source_code(mime_type: str | None) -> bool:
    return extract_language(mime_type) != ""


def detect_mime_type(path: str | Path) -> str | None:
    """Detect the MIME type of a file from its name.

    Args:
        path: File path or name

    Returns:
        MIME type, or None when unknown
    """
    suffix = Path(path).suffix.lower()
    if suffix in EXTENSION_TO_MIME:
        return EXTENSION_TO_MIME[suffix]
    guessed, _ = mimetypes.guess_type(str(path))
    return normalize(guessed)
