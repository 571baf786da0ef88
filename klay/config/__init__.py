"""Configuration module -- exports Settings and the YAML-aware loaders."""

from klay.config.loader import load_config, load_settings
from klay.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]
