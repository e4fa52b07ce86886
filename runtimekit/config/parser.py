"""YAML configuration parser for RuntimeKit.

Settings come from three layers, lowest precedence first: built-in defaults
(derived from the detected platform), the ``runtimekit.yaml`` file, and the
process environment (``RUNNER_TEMP``, ``RUNNER_OS``, ``RUNTIMEKIT_CACHE_DIR``).
Command-line overrides are applied on top by the CLI.

The resulting RuntimeConfig is passed explicitly into the install pipeline so
the pipeline itself never reads the environment.
"""

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from runtimekit.core.exceptions import ConfigError
from runtimekit.core.platform import detect_platform, os_name_for

CONFIG_FILENAME = "runtimekit.yaml"
DEFAULT_TOOL_NAME = "nogil"
DEFAULT_CACHE_KEY_PREFIX = "runtimekit/setup-python"

_KNOWN_KEYS = {
    "version",
    "architecture",
    "install_root",
    "cache_dir",
    "temp_dir",
    "manifest",
    "tool_name",
    "cache_key_prefix",
    "lock_installs",
    "download_timeout",
}


def get_default_cache_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Get the platform-specific default cache directory.

    Returns:
        - Windows: %USERPROFILE%\\.runtimekit\\cache
        - Linux/macOS: ~/.runtimekit/cache
    """
    environ = os.environ if environ is None else environ
    if os.name == "nt":
        user_profile = environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine cache directory."
            )
        return Path(user_profile) / ".runtimekit" / "cache"
    return Path.home() / ".runtimekit" / "cache"


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved settings for one install run."""

    platform: str
    architecture: str
    os_name: str
    temp_dir: Path
    install_root: Path
    cache_dir: Path
    manifest: Optional[Path] = None
    tool_name: str = DEFAULT_TOOL_NAME
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    lock_installs: bool = False
    download_timeout: int = 30

    @property
    def download_dir(self) -> Path:
        """Directory that receives archives downloaded under generated names."""
        return self.temp_dir / "runtimekit-downloads"

    def with_overrides(self, **overrides) -> "RuntimeConfig":
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        for key in ("temp_dir", "install_root", "cache_dir", "manifest"):
            if key in values:
                values[key] = Path(values[key]).expanduser()
        return replace(self, **values)


def default_config(environ: Optional[Mapping[str, str]] = None) -> RuntimeConfig:
    """
    Build the configuration from platform detection and the environment only.

    Args:
        environ: Environment mapping (default: os.environ)
    """
    environ = os.environ if environ is None else environ
    info = detect_platform()

    cache_dir = environ.get("RUNTIMEKIT_CACHE_DIR")
    return RuntimeConfig(
        platform=info.platform,
        architecture=info.arch,
        os_name=environ.get("RUNNER_OS") or os_name_for(info.platform),
        temp_dir=Path(environ.get("RUNNER_TEMP") or tempfile.gettempdir()),
        install_root=Path.home(),
        cache_dir=Path(cache_dir) if cache_dir else get_default_cache_dir(environ),
    )


def parse_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Parse and validate a runtimekit.yaml file.

    Args:
        config_path: Path to the YAML file

    Returns:
        Validated settings dictionary (without the version key)

    Raises:
        ConfigError: If the file is missing or invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise ConfigError("Configuration file is empty")

    return _parse_and_validate(data)


def _parse_and_validate(data: Any) -> Dict[str, Any]:
    """Validate raw YAML data and convert it to RuntimeConfig field values."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    if "version" not in data:
        raise ConfigError("Missing required field: version")

    if data["version"] != 1:
        raise ConfigError(f"Unsupported version: {data['version']} (expected 1)")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    settings: Dict[str, Any] = {}

    for key in ("install_root", "cache_dir", "temp_dir", "manifest"):
        if key in data and data[key] is not None:
            if not isinstance(data[key], str):
                raise ConfigError(f"'{key}' must be a path string")
            settings[key] = Path(data[key]).expanduser()

    for key in ("architecture", "tool_name", "cache_key_prefix"):
        if key in data and data[key] is not None:
            if not isinstance(data[key], str) or not data[key]:
                raise ConfigError(f"'{key}' must be a non-empty string")
            settings[key] = data[key]

    if "lock_installs" in data:
        if not isinstance(data["lock_installs"], bool):
            raise ConfigError("'lock_installs' must be true or false")
        settings["lock_installs"] = data["lock_installs"]

    if "download_timeout" in data:
        timeout = data["download_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError("'download_timeout' must be a positive integer")
        settings["download_timeout"] = timeout

    return settings


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    search_dir: Optional[Path] = None,
) -> RuntimeConfig:
    """
    Load configuration from defaults, an optional YAML file and the environment.

    If ``config_path`` is None, ``runtimekit.yaml`` in ``search_dir`` (default:
    current directory) is used when it exists.

    RUNNER_TEMP and RUNTIMEKIT_CACHE_DIR from the environment win over the file.

    Raises:
        ConfigError: If the configuration file is invalid
    """
    environ = os.environ if environ is None else environ
    config = default_config(environ)

    if config_path is None:
        candidate = (search_dir or Path.cwd()) / CONFIG_FILENAME
        if candidate.exists():
            config_path = candidate

    if config_path is not None:
        settings = parse_config_file(Path(config_path))
        if environ.get("RUNNER_TEMP"):
            settings.pop("temp_dir", None)
        if environ.get("RUNTIMEKIT_CACHE_DIR"):
            settings.pop("cache_dir", None)
        config = replace(config, **settings)

    return config
