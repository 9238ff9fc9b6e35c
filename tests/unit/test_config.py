"""Unit tests for configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from docsplit.config import (
    AssemblyConfig,
    DocsplitConfig,
    JournalMode,
    JsonSplitterConfig,
    OutputConfig,
    OutputVerbosity,
    ParserConfig,
    SplitterConfig,
    StoreConfig,
    generate_default_config,
    load_config,
    save_config,
)


class TestOutputVerbosity:
    """Tests for OutputVerbosity enum."""

    def test_verbosity_values(self):
        assert OutputVerbosity.QUIET.value == "quiet"
        assert OutputVerbosity.NORMAL.value == "normal"
        assert OutputVerbosity.VERBOSE.value == "verbose"

    def test_verbosity_from_string(self):
        assert OutputVerbosity("verbose") == OutputVerbosity.VERBOSE


class TestDefaults:
    """Tests for default configuration values."""

    def test_splitter_defaults(self):
        config = SplitterConfig()
        assert config.max_chunk_size == 5000
        assert config.json == JsonSplitterConfig(max_nesting_depth=5, max_chunks=1000, lossless=False)

    def test_parser_defaults(self):
        assert ParserConfig().tree_sitter_size_limit == 30000

    def test_assembly_defaults(self):
        config = AssemblyConfig()
        assert config.max_parent_chain_depth == 50
        assert config.child_chunk_limit == 100
        assert config.fallback_child_limit == 3

    def test_store_defaults(self):
        config = StoreConfig()
        assert config.journal_mode == JournalMode.WAL
        assert config.busy_timeout == 5000
        assert config.resolved_path() == Path.home() / ".docsplit" / "data" / "docsplit.db"

    def test_database_path_is_the_only_data_location(self):
        from docsplit import config as config_module

        assert not hasattr(config_module, "DEFAULT_DATA_DIR")
        assert StoreConfig(db_path="~/elsewhere.db").resolved_path() == Path.home() / "elsewhere.db"

    def test_output_defaults(self):
        config = OutputConfig()
        assert config.verbosity == OutputVerbosity.NORMAL
        assert config.color_enabled is True

    def test_default_factory(self):
        config = DocsplitConfig.default()
        assert config.splitter == SplitterConfig()
        assert config.store == StoreConfig()


class TestConfigIO:
    """Tests for config loading and saving."""

    def test_load_nonexistent_file(self):
        """Loading from a nonexistent file returns defaults."""
        config = load_config(Path("/nonexistent/path/config.toml"))
        assert config == DocsplitConfig.default()

    def test_save_and_load_config(self, tmp_path: Path):
        """Saved configuration should load back unchanged."""
        config_path = tmp_path / "config.toml"
        config = DocsplitConfig(
            splitter=SplitterConfig(
                max_chunk_size=2000,
                json=JsonSplitterConfig(max_nesting_depth=3, max_chunks=50, lossless=True),
            ),
            parser=ParserConfig(tree_sitter_size_limit=10000),
            assembly=AssemblyConfig(max_parent_chain_depth=10, child_chunk_limit=20),
            store=StoreConfig(db_path=str(tmp_path / "chunks.db"), journal_mode=JournalMode.DELETE),
            output=OutputConfig(verbosity=OutputVerbosity.VERBOSE, color_enabled=False),
        )

        save_config(config, config_path)
        assert config_path.exists()

        loaded = load_config(config_path)
        assert loaded == config

    def test_save_creates_directory(self, tmp_path: Path):
        config_path = tmp_path / "subdir" / "config.toml"
        save_config(DocsplitConfig.default(), config_path)
        assert config_path.exists()

    def test_load_partial_config(self, tmp_path: Path):
        """Missing values fall back to defaults."""
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            """
[splitter]
max_chunk_size = 1200

[splitter.json]
max_chunks = 10
"""
        )

        loaded = load_config(config_path)
        assert loaded.splitter.max_chunk_size == 1200
        assert loaded.splitter.json.max_chunks == 10
        assert loaded.splitter.json.lossless is False
        assert loaded.splitter.json.max_nesting_depth == 5
        assert loaded.assembly == AssemblyConfig()

    def test_unused_size_settings_ignored(self, tmp_path: Path):
        """Only max_chunk_size bounds chunks; other size keys are not read."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("[splitter]\nmin_chunk_size = 10\npreferred_chunk_size = 20\nmax_chunk_size = 300\n")

        loaded = load_config(config_path)
        assert loaded.splitter == SplitterConfig(max_chunk_size=300)

    def test_unknown_enum_values_use_defaults(self, tmp_path: Path):
        config_path = tmp_path / "config.toml"
        config_path.write_text('[output]\nverbosity = "loud"\n\n[store]\njournal_mode = "wal2"\n')

        loaded = load_config(config_path)
        assert loaded.output.verbosity == OutputVerbosity.NORMAL
        assert loaded.store.journal_mode == JournalMode.WAL

    def test_journal_mode_case_insensitive(self, tmp_path: Path):
        config_path = tmp_path / "config.toml"
        config_path.write_text('[store]\njournal_mode = "truncate"\n')
        assert load_config(config_path).store.journal_mode == JournalMode.TRUNCATE

    def test_load_invalid_toml(self, tmp_path: Path):
        """Invalid TOML warns and returns defaults."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("this is not valid toml [[[")

        with pytest.warns(UserWarning, match="Failed to load config"):
            loaded = load_config(config_path)
        assert loaded == DocsplitConfig.default()


class TestGenerateDefaultConfig:
    """Tests for default config generation."""

    def test_generate_default_config(self):
        config_str = generate_default_config()

        for section in ("[splitter]", "[splitter.json]", "[parser]", "[assembly]", "[store]", "[output]"):
            assert section in config_str

    def test_generated_config_lists_live_settings(self):
        config_str = generate_default_config()

        assert "max_chunk_size = 5000" in config_str
        assert "lossless = false" in config_str
        assert "min_chunk_size" not in config_str
        assert "preferred_chunk_size" not in config_str

    def test_generated_config_matches_defaults(self, tmp_path: Path):
        """The generated file should load as the default configuration."""
        if sys.version_info >= (3, 11):
            import tomllib
        else:
            import tomli as tomllib

        config_str = generate_default_config()
        assert "splitter" in tomllib.loads(config_str)

        config_path = tmp_path / "config.toml"
        config_path.write_text(config_str)
        assert load_config(config_path) == DocsplitConfig.default()
