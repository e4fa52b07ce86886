"""
Acquisition strategies package.

``strategy_for_platform`` picks the strategy for a catalog platform.
"""

from pathlib import Path

from runtimekit.runtime.strategies.standard import ArchiveStrategy, InstallerStrategy
from runtimekit.runtime.strategy import AcquisitionStrategy

INSTALLER_PLATFORMS = frozenset({"win32"})


def strategy_for_platform(platform: str, temp_dir: Path) -> AcquisitionStrategy:
    """
    Return the acquisition strategy for a platform family.

    Example:
        >>> strategy_for_platform("win32", Path("/tmp")).name
        'installer'
        >>> strategy_for_platform("darwin", Path("/tmp")).name
        'archive'
    """
    if platform in INSTALLER_PLATFORMS:
        return InstallerStrategy(temp_dir)
    return ArchiveStrategy(temp_dir)


__all__ = [
    "ArchiveStrategy",
    "InstallerStrategy",
    "INSTALLER_PLATFORMS",
    "strategy_for_platform",
]
