"""Configuration management for docsplit.

Handles loading, saving, and validating configuration from TOML files.
Configuration is stored at ~/.docsplit/config.toml by default.

Example configuration:
    [splitter]
    max_chunk_size = 5000

    [splitter.json]
    max_nesting_depth = 5
    max_chunks = 1000
    lossless = false

    [parser]
    tree_sitter_size_limit = 30000

    [assembly]
    max_parent_chain_depth = 50
    child_chunk_limit = 100

    [store]
    db_path = "~/.docsplit/data/docsplit.db"

    [output]
    verbosity = "normal"  # "quiet" | "normal" | "verbose"
    color_enabled = true
"""

from __future__ import annotations

import sys
import warnings
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# Python 3.11+ has tomllib in stdlib (read-only)
# For Python 3.10, use tomli package as fallback
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore


class OutputVerbosity(Enum):
    """Output verbosity levels."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


class JournalMode(Enum):
    """SQLite journal modes supported by the chunk store."""

    WAL = "WAL"
    DELETE = "DELETE"
    TRUNCATE = "TRUNCATE"
    MEMORY = "MEMORY"


@dataclass
class JsonSplitterConfig:
    """Configuration for the annotated JSON splitter."""

    max_nesting_depth: int = 5
    max_chunks: int = 1000
    # Split along the syntax tree without path annotations
    lossless: bool = False


@dataclass
class SplitterConfig:
    """Chunk size limit, in characters."""

    max_chunk_size: int = 5000
    json: JsonSplitterConfig = field(default_factory=JsonSplitterConfig)


@dataclass
class ParserConfig:
    """Configuration for grammar parsing."""

    # Documents longer than this bypass tree-sitter and use the fallback
    tree_sitter_size_limit: int = 30000


@dataclass
class AssemblyConfig:
    """Configuration for context assembly at query time."""

    max_parent_chain_depth: int = 50
    child_chunk_limit: int = 100
    fallback_child_limit: int = 3
    prose_sibling_limit: int = 2
    prose_child_limit: int = 3


@dataclass
class StoreConfig:
    """Configuration for the SQLite chunk store."""

    db_path: str = "~/.docsplit/data/docsplit.db"
    busy_timeout: int = 5000  # milliseconds
    journal_mode: JournalMode = JournalMode.WAL

    def resolved_path(self) -> Path:
        """Database path with ~ expanded."""
        return Path(self.db_path).expanduser()


@dataclass
class OutputConfig:
    """Configuration for CLI output."""

    verbosity: OutputVerbosity = OutputVerbosity.NORMAL
    color_enabled: bool = True


@dataclass
class DocsplitConfig:
    """Complete docsplit configuration."""

    splitter: SplitterConfig = field(default_factory=SplitterConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def default(cls) -> DocsplitConfig:
        """Create default configuration."""
        return cls()


# Default configuration file paths
DEFAULT_CONFIG_DIR = Path.home() / ".docsplit"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


def ensure_config_dir() -> Path:
    """Ensure the configuration directory exists.

    Returns:
        Path to the configuration directory
    """
    DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return DEFAULT_CONFIG_DIR


def _parse_splitter_config(data: dict[str, Any]) -> SplitterConfig:
    """Parse splitter configuration from dict."""
    json_data = data.get("json", {})
    return SplitterConfig(
        max_chunk_size=data.get("max_chunk_size", 5000),
        json=JsonSplitterConfig(
            max_nesting_depth=json_data.get("max_nesting_depth", 5),
            max_chunks=json_data.get("max_chunks", 1000),
            lossless=json_data.get("lossless", False),
        ),
    )


def _parse_parser_config(data: dict[str, Any]) -> ParserConfig:
    """Parse parser configuration from dict."""
    return ParserConfig(
        tree_sitter_size_limit=data.get("tree_sitter_size_limit", 30000),
    )


def _parse_assembly_config(data: dict[str, Any]) -> AssemblyConfig:
    """Parse assembly configuration from dict."""
    return AssemblyConfig(
        max_parent_chain_depth=data.get("max_parent_chain_depth", 50),
        child_chunk_limit=data.get("child_chunk_limit", 100),
        fallback_child_limit=data.get("fallback_child_limit", 3),
        prose_sibling_limit=data.get("prose_sibling_limit", 2),
        prose_child_limit=data.get("prose_child_limit", 3),
    )


def _parse_store_config(data: dict[str, Any]) -> StoreConfig:
    """Parse store configuration from dict."""
    journal_str = str(data.get("journal_mode", "WAL")).upper()
    try:
        journal_mode = JournalMode(journal_str)
    except ValueError:
        journal_mode = JournalMode.WAL

    return StoreConfig(
        db_path=data.get("db_path", "~/.docsplit/data/docsplit.db"),
        busy_timeout=data.get("busy_timeout", 5000),
        journal_mode=journal_mode,
    )


def _parse_output_config(data: dict[str, Any]) -> OutputConfig:
    """Parse output configuration from dict."""
    verbosity_str = data.get("verbosity", "normal")
    try:
        verbosity = OutputVerbosity(verbosity_str)
    except ValueError:
        verbosity = OutputVerbosity.NORMAL

    return OutputConfig(
        verbosity=verbosity,
        color_enabled=data.get("color_enabled", True),
    )


def load_config(config_path: Path | None = None) -> DocsplitConfig:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. Uses default if not provided.

    Returns:
        Loaded configuration, or default if file doesn't exist.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        return DocsplitConfig.default()

    if tomllib is None:
        warnings.warn(
            "TOML parsing not available. Install tomli for Python 3.10: pip install tomli"
        )
        return DocsplitConfig.default()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        warnings.warn(f"Failed to load config from {path}: {e}")
        return DocsplitConfig.default()

    return DocsplitConfig(
        splitter=_parse_splitter_config(data.get("splitter", {})),
        parser=_parse_parser_config(data.get("parser", {})),
        assembly=_parse_assembly_config(data.get("assembly", {})),
        store=_parse_store_config(data.get("store", {})),
        output=_parse_output_config(data.get("output", {})),
    )


def _format_toml_value(value: Any) -> str:
    """Format a Python value as TOML."""
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, Enum):
        return f'"{value.value}"'
    else:
        return f'"{value}"'


def save_config(config: DocsplitConfig, config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration to save
        config_path: Path to config file. Uses default if not provided.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    splitter = config.splitter
    assembly = config.assembly
    lines = [
        "# docsplit Configuration",
        "# Generated by docsplit config command",
        "",
        "[splitter]",
        f"max_chunk_size = {splitter.max_chunk_size}",
        "",
        "[splitter.json]",
        f"max_nesting_depth = {splitter.json.max_nesting_depth}",
        f"max_chunks = {splitter.json.max_chunks}",
        f"lossless = {_format_toml_value(splitter.json.lossless)}",
        "",
        "[parser]",
        f"tree_sitter_size_limit = {config.parser.tree_sitter_size_limit}",
        "",
        "[assembly]",
        f"max_parent_chain_depth = {assembly.max_parent_chain_depth}",
        f"child_chunk_limit = {assembly.child_chunk_limit}",
        f"fallback_child_limit = {assembly.fallback_child_limit}",
        f"prose_sibling_limit = {assembly.prose_sibling_limit}",
        f"prose_child_limit = {assembly.prose_child_limit}",
        "",
        "[store]",
        f"db_path = {_format_toml_value(config.store.db_path)}",
        f"busy_timeout = {config.store.busy_timeout}",
        f"journal_mode = {_format_toml_value(config.store.journal_mode)}",
        "",
        "[output]",
        f"verbosity = {_format_toml_value(config.output.verbosity)}",
        f"color_enabled = {_format_toml_value(config.output.color_enabled)}",
        "",
    ]

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def generate_default_config() -> str:
    """Generate default configuration as TOML string.

    Returns:
        Default configuration in TOML format
    """
    return """# docsplit Configuration
# Copy this file to ~/.docsplit/config.toml and customize

[splitter]
# Largest chunk in characters
max_chunk_size = 5000

[splitter.json]
# Deeper containers are kept as a single chunk
max_nesting_depth = 5

# Documents needing more chunks than this are rejected
max_chunks = 1000

# Split JSON along its syntax tree, keeping the source text exact,
# instead of into pieces annotated with // Path: comments
lossless = false

[parser]
# Documents larger than this skip tree-sitter and use line-based splitting
tree_sitter_size_limit = 30000

[assembly]
# Hard cap on parent hops when walking to the document root
max_parent_chain_depth = 50

# Children fetched per chunk when expanding a subtree
child_chunk_limit = 100

# Children kept per hit when the store fails during expansion
fallback_child_limit = 3

# Neighbours added around prose hits
prose_sibling_limit = 2
prose_child_limit = 3

[store]
# SQLite database holding indexed chunks
db_path = "~/.docsplit/data/docsplit.db"

# Milliseconds to wait on a locked database
busy_timeout = 5000

# SQLite journal mode: "WAL", "DELETE", "TRUNCATE" or "MEMORY"
journal_mode = "WAL"

[output]
# Output verbosity: "quiet", "normal", or "verbose"
verbosity = "normal"

# Enable colored output
color_enabled = true
"""
