"""
RuntimeKit CLI argument parser.

This module implements the command-line interface for RuntimeKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from runtimekit.core.exceptions import RuntimeKitError

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("runtimekit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """RuntimeKit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="rtkit",
            description="RuntimeKit - cached setup of free-threaded Python runtimes",
            epilog='Use "rtkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"RuntimeKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./runtimekit.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_resolve_command(subparsers)
        self._add_cache_key_command(subparsers)
        self._add_list_command(subparsers)

        return parser

    def _add_request_arguments(self, parser):
        """Arguments shared by commands that resolve a version spec."""
        parser.add_argument(
            "version_spec",
            metavar="VERSION",
            help="Requested version (e.g. nogil-3.9.10, 3.9, 3.11-dev)",
        )
        parser.add_argument(
            "--arch",
            metavar="ARCH",
            help="Target architecture (default: detected, e.g. x64)",
        )
        parser.add_argument(
            "--manifest",
            type=Path,
            metavar="PATH",
            help="Release catalog JSON (default: bundled catalog)",
        )
        parser.add_argument(
            "--install-root",
            type=Path,
            metavar="PATH",
            help="Directory runtimes are installed under (default: home directory)",
        )

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install a runtime",
            description="Resolve, download and install a runtime, using the cache",
        )
        self._add_request_arguments(parser)
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="PATH",
            help="Install cache directory (default: ~/.runtimekit/cache)",
        )
        parser.add_argument(
            "--lock",
            action="store_true",
            help="Serialize concurrent installs of the same runtime",
        )
        parser.add_argument(
            "--no-publish",
            action="store_true",
            help="Do not export environment variables, PATH entries and outputs",
        )

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Show which release a version spec resolves to",
            description="Resolve a version spec against the catalog without installing",
        )
        self._add_request_arguments(parser)

    def _add_cache_key_command(self, subparsers):
        """Add 'cache-key' subcommand."""
        parser = subparsers.add_parser(
            "cache-key",
            help="Print the cache key for a version spec",
            description="Print the install cache key a version spec maps to",
        )
        self._add_request_arguments(parser)

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        parser = subparsers.add_parser(
            "list",
            help="List catalog releases",
            description="List releases and platforms in the release catalog",
        )
        parser.add_argument(
            "--manifest",
            type=Path,
            metavar="PATH",
            help="Release catalog JSON (default: bundled catalog)",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except RuntimeKitError as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "install": "runtimekit.cli.commands.install",
            "resolve": "runtimekit.cli.commands.resolve",
            "cache-key": "runtimekit.cli.commands.cache_key",
            "list": "runtimekit.cli.commands.list",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
