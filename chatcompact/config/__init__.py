"""Configuration module for chatcompact."""

from chatcompact.config.loader import get_config_path, load_config, save_config
from chatcompact.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
