"""
Shared utilities for CLI commands.

This module provides common helpers used by CLI command implementations.
"""

import logging
from typing import Optional

from runtimekit.config import RuntimeConfig, load_config
from runtimekit.runtime.installer import RuntimeInstaller
from runtimekit.runtime.manifest import Manifest

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


def config_from_args(args) -> RuntimeConfig:
    """
    Build the run configuration from the config file and CLI overrides.

    Command line options win over the config file and the environment.

    Args:
        args: Parsed command-line arguments

    Returns:
        RuntimeConfig for this invocation

    Raises:
        ConfigError: If the configuration file is invalid
    """
    config = load_config(getattr(args, "config", None))

    lock_installs = True if getattr(args, "lock", False) else None
    return config.with_overrides(
        architecture=getattr(args, "arch", None),
        manifest=getattr(args, "manifest", None),
        install_root=getattr(args, "install_root", None),
        cache_dir=getattr(args, "cache_dir", None),
        lock_installs=lock_installs,
    )


def installer_from_args(args, manifest: Optional[Manifest] = None) -> RuntimeInstaller:
    config = config_from_args(args)
    logger.debug(f"Configuration: {config}")
    return RuntimeInstaller(config, manifest=manifest)


# ============================================================================
# Output Formatting
# ============================================================================


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII if the message can't be encoded.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        print(message.encode("ascii", "replace").decode("ascii"), file=file)


def print_fields(fields: dict, file=None):
    """Print aligned 'name: value' lines."""
    width = max((len(name) for name in fields), default=0)
    for name, value in fields.items():
        safe_print(f"{name + ':':<{width + 1}} {value}", file=file)
