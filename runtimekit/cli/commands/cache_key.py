"""
Cache-key command implementation.

Prints only the cache key, for use in scripts.
"""

from runtimekit.cli.utils import installer_from_args


def run(args) -> int:
    installer = installer_from_args(args)
    print(installer.resolve(args.version_spec, args.arch).cache_key)
    return 0
