"""
Configuration for RuntimeKit.
"""

from .parser import (
    CONFIG_FILENAME,
    RuntimeConfig,
    default_config,
    get_default_cache_dir,
    load_config,
    parse_config_file,
)

__all__ = [
    "CONFIG_FILENAME",
    "RuntimeConfig",
    "default_config",
    "get_default_cache_dir",
    "load_config",
    "parse_config_file",
]
