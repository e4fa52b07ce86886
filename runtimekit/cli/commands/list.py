"""
List command implementation.

Lists the releases in the release catalog with their platforms.
"""

import logging

from runtimekit.cli.utils import config_from_args, safe_print
from runtimekit.runtime.manifest import Manifest

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments with optional manifest

    Returns:
        Exit code (0 for success)
    """
    config = config_from_args(args)
    manifest = Manifest.load(config.manifest)

    if not len(manifest):
        safe_print("No releases in catalog")
        return 0

    for version in manifest.versions():
        platforms = ", ".join(manifest.platforms(version))
        safe_print(f"{config.tool_name}-{version}: {platforms}")
    return 0
