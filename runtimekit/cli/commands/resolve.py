"""
Resolve command implementation.

Shows the release, file and install location a version spec resolves to.
"""

import logging

from runtimekit.cli.utils import installer_from_args, print_fields

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    installer = installer_from_args(args)
    resolution = installer.resolve(args.version_spec, args.arch)
    match = resolution.match

    print_fields(
        {
            "Requested": resolution.request.version_spec,
            "Range": str(resolution.version_range),
            "Version": match.version,
            "Stable": "yes" if match.release.stable else "no",
            "Platform": f"{match.file.platform}-{match.file.arch}",
            "File": match.file.filename,
            "URL": match.download_url,
            "Install dir": resolution.install_dir,
            "Cache key": resolution.cache_key,
        }
    )
    return 0
