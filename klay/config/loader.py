"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

``load_settings`` flattens the YAML sections onto :class:`Settings` field
names and lets explicit environment values win.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from klay.config.settings import Settings

# YAML section/key -> Settings field
_YAML_FIELD_MAP: dict[tuple[str, str], str] = {
    ("infrastructure", "backend"): "backend",
    ("infrastructure", "sqlite_path"): "sqlite_path",
    ("infrastructure", "chromadb_persist_dir"): "chromadb_persist_dir",
    ("infrastructure", "chromadb_collection"): "chromadb_collection",
    ("embedding", "provider"): "embedding_provider",
    ("embedding", "dimensions"): "embedding_dimensions",
    ("embedding", "openai_model"): "openai_embedding_model",
    ("embedding", "cohere_model"): "cohere_embedding_model",
    ("embedding", "max_retries"): "embedding_max_retries",
    ("embedding", "backoff_base"): "embedding_backoff_base",
    ("embedding", "timeout"): "embedding_timeout",
    ("chunking", "strategy"): "chunking_strategy",
    ("chunking", "chunk_size"): "chunk_size",
    ("chunking", "chunk_overlap"): "chunk_overlap",
    ("chunking", "min_chunk_size"): "min_chunk_size",
    ("chunking", "max_chunk_size"): "max_chunk_size",
    ("retrieval", "default_top_k"): "default_top_k",
    ("retrieval", "query_cache_size"): "query_cache_size",
    ("retrieval", "query_cache_ttl"): "query_cache_ttl",
    ("batch", "concurrency"): "batch_concurrency",
    ("logging", "level"): "log_level",
}


def load_config(path: str = "config/config.yaml") -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Fully resolved configuration dictionary.
    """
    yaml_config = _read_yaml(path)

    settings = Settings()
    env_overrides: dict[str, Any] = {}
    for (section, key), field in _YAML_FIELD_MAP.items():
        if field.upper() in os.environ:
            env_overrides.setdefault(section, {})[key] = getattr(settings, field)

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def load_settings(path: str = "config/config.yaml", **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML defaults, the environment and *overrides*.

    Precedence: *overrides* > environment variables > YAML > .env > field
    defaults.
    """
    yaml_config = _read_yaml(path)
    values: dict[str, Any] = {}
    for (section, key), field in _YAML_FIELD_MAP.items():
        section_values = yaml_config.get(section) or {}
        if key in section_values and field.upper() not in os.environ:
            values[field] = section_values[key]
    values.update(overrides)
    return Settings(**values)


def _read_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
