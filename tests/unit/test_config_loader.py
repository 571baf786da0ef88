"""Tests for YAML + environment configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from klay.config.loader import load_config, load_settings
from klay.config.settings import Settings

YAML = """\
infrastructure:
  backend: embedded
  sqlite_path: /tmp/kb.db
embedding:
  provider: hash
  dimensions: 128
chunking:
  strategy: sentence
  chunk_size: 400
retrieval:
  default_top_k: 7
unknown_section:
  ignored: true
"""


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(YAML, encoding="utf-8")
    return path


class TestLoadSettings:
    def test_yaml_values_map_onto_settings(self, config_path: Path) -> None:
        settings = load_settings(str(config_path))

        assert settings.backend == "embedded"
        assert settings.sqlite_path == "/tmp/kb.db"
        assert settings.embedding_dimensions == 128
        assert settings.chunking_strategy == "sentence"
        assert settings.chunk_size == 400
        assert settings.default_top_k == 7

    def test_unset_keys_keep_defaults(self, config_path: Path) -> None:
        settings = load_settings(str(config_path))

        assert settings.chunk_overlap == 200
        assert settings.batch_concurrency == 8

    def test_environment_beats_yaml(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("EMBEDDING_DIMENSIONS", "32")

        settings = load_settings(str(config_path))

        assert settings.embedding_dimensions == 32

    def test_overrides_beat_everything(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BACKEND", "remote")

        settings = load_settings(str(config_path), backend="in_memory")

        assert settings.backend == "in_memory"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(str(tmp_path / "absent.yaml"))

        assert settings.backend == Settings().backend
        assert settings.embedding_provider == "hash"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_settings(str(path)).chunk_size == 1000


class TestLoadConfig:
    def test_returns_yaml_sections(self, config_path: Path) -> None:
        config = load_config(str(config_path))

        assert config["embedding"]["dimensions"] == 128
        assert config["unknown_section"] == {"ignored": True}

    def test_environment_merged_into_section(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHUNK_SIZE", "250")

        config = load_config(str(config_path))

        assert config["chunking"] == {"strategy": "sentence", "chunk_size": 250}
        assert config["infrastructure"]["backend"] == "embedded"
