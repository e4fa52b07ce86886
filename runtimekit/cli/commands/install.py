"""
Install command implementation.

Installs a runtime and publishes its location to the CI runner.
"""

import logging

from runtimekit.cli.utils import installer_from_args
from runtimekit.runtime.publish import ActionsPublisher

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - version_spec: Requested version
            - arch: Target architecture (optional)
            - no_publish: Skip exporting env, PATH and outputs

    Returns:
        Exit code (0 for success)
    """
    installer = installer_from_args(args)
    runtime = installer.install(args.version_spec, args.arch)

    if runtime.was_cached:
        logger.info(f"{runtime.display_version} restored from cache")

    if not args.no_publish:
        ActionsPublisher().publish(runtime)

    logger.info(f"Python: {runtime.binary_path}")
    return 0
