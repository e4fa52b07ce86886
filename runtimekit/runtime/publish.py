"""
Result publishing for installed runtimes.

Computes the interpreter path, the environment variables and PATH entries a
build should see, and the named outputs of a setup run. ``ActionsPublisher``
writes them using the GitHub Actions file commands.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, TextIO

logger = logging.getLogger(__name__)

WINDOWS_PLATFORM = "win32"


@dataclass(frozen=True)
class InstalledRuntime:
    """
    Result of a setup run.

    Attributes:
        impl: Implementation name ('nogil')
        version: Resolved release version
        install_dir: Install directory
        binary_path: Interpreter executable
        platform: Platform family the runtime was installed for
        was_cached: True if restored from the install cache
    """

    impl: str
    version: str
    install_dir: Path
    binary_path: Path
    platform: str
    was_cached: bool = False

    @property
    def display_version(self) -> str:
        return f"{self.impl}-{self.version}"


def binary_path(install_dir: Path, platform: str) -> Path:
    """
    Interpreter executable inside an install directory.

    Example:
        >>> binary_path(Path("/home/u/nogil-3.9.10"), "darwin")
        PosixPath('/home/u/nogil-3.9.10/bin/python')
    """
    if platform == WINDOWS_PLATFORM:
        return Path(install_dir) / "python.exe"
    return Path(install_dir) / "bin" / "python"


def scripts_dir(install_dir: Path, platform: str) -> Path:
    """Directory holding entry-point scripts (pip, etc.)."""
    if platform == WINDOWS_PLATFORM:
        return Path(install_dir) / "Scripts"
    return Path(install_dir) / "bin"


def python_location(runtime: InstalledRuntime) -> Path:
    # Windows installs are rooted at the install dir, others at bin/
    if runtime.platform == WINDOWS_PLATFORM:
        return runtime.install_dir
    return scripts_dir(runtime.install_dir, runtime.platform)


def environment_exports(runtime: InstalledRuntime) -> Dict[str, str]:
    location = str(python_location(runtime))
    return {
        "pythonLocation": location,
        "Python_ROOT_DIR": location,
        "Python2_ROOT_DIR": location,
        "Python3_ROOT_DIR": location,
        "PKG_CONFIG_PATH": location + "/lib/pkgconfig",
    }


def path_entries(runtime: InstalledRuntime) -> List[str]:
    entries = [
        str(python_location(runtime)),
        str(scripts_dir(runtime.install_dir, runtime.platform)),
    ]
    # On non-Windows platforms both resolve to bin/
    return list(dict.fromkeys(entries))


def outputs(runtime: InstalledRuntime) -> Dict[str, str]:
    return {
        "python-version": runtime.display_version,
        "python-path": str(runtime.binary_path),
    }


class ActionsPublisher:
    """
    Publish an installed runtime to a CI runner.

    File paths are taken from ``GITHUB_ENV``, ``GITHUB_PATH`` and
    ``GITHUB_OUTPUT``. Anything without a target file is printed as
    ``name=value`` lines instead.

    Example:
        >>> publisher = ActionsPublisher(os.environ)
        >>> publisher.publish(runtime)
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None, stream: TextIO = None):
        environ = os.environ if environ is None else environ
        self.env_file = self._target(environ, "GITHUB_ENV")
        self.path_file = self._target(environ, "GITHUB_PATH")
        self.output_file = self._target(environ, "GITHUB_OUTPUT")
        self.stream = stream or sys.stdout

    @staticmethod
    def _target(environ: Mapping[str, str], name: str) -> Optional[Path]:
        value = environ.get(name)
        return Path(value) if value else None

    def publish(self, runtime: InstalledRuntime) -> None:
        self.export_variables(environment_exports(runtime))
        self.add_path(path_entries(runtime))
        self.set_outputs(outputs(runtime))

    def export_variables(self, variables: Dict[str, str]) -> None:
        lines = [f"{name}={value}" for name, value in variables.items()]
        self._emit(self.env_file, lines)

    def add_path(self, entries: List[str]) -> None:
        if self.path_file is None:
            self._emit(None, [f"PATH+={entry}" for entry in entries])
        else:
            self._emit(self.path_file, entries)

    def set_outputs(self, values: Dict[str, str]) -> None:
        lines = [f"{name}={value}" for name, value in values.items()]
        self._emit(self.output_file, lines)

    def _emit(self, target: Optional[Path], lines: List[str]) -> None:
        if target is None:
            for line in lines:
                print(line, file=self.stream)
            return

        logger.debug(f"Appending {len(lines)} line(s) to {target}")
        with open(target, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
