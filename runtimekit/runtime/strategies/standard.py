"""
Standard Acquisition Strategies.

Implementations for the two artifact kinds in the release catalog: Windows
installer executables and tar/zip archives.
"""

import logging
from pathlib import Path
from typing import Optional

from runtimekit.core.download import filename_from_url
from runtimekit.core.exceptions import InstallFailed, UnexpectedArchiveLayout
from runtimekit.core.filesystem import (
    ArchiveExtractionError,
    FilesystemError,
    extract_archive,
    list_top_level_entries,
    move_directory,
    temporary_directory,
)
from runtimekit.core.process import ProcessLaunchError, run_command
from runtimekit.runtime.install_cache import InstallRecord
from runtimekit.runtime.manifest import ReleaseFile
from ..strategy import AcquisitionStrategy, SetupRequest

logger = logging.getLogger(__name__)


class InstallerStrategy(AcquisitionStrategy):
    """Strategy for self-installing Windows executables."""

    name = "installer"

    def download_destination(self, release_file: ReleaseFile) -> Optional[Path]:
        # The installer keeps its published file name
        return self.temp_dir / filename_from_url(release_file.download_url)

    def installer_args(self, install_dir: Path) -> list:
        return ["/passive", f"TargetDir={install_dir}"]

    def materialize(
        self, downloaded: Path, install_dir: Path, request: SetupRequest
    ) -> InstallRecord:
        logger.info("Installing downloaded exe...")

        try:
            exit_code = run_command(downloaded, self.installer_args(install_dir))
        except ProcessLaunchError as e:
            raise InstallFailed(
                f"Failed to run installer {downloaded}: {e}",
                request.version_spec,
                request.architecture,
            ) from e

        if exit_code != 0:
            raise InstallFailed(
                f"Installer {downloaded.name} exited with code {exit_code}",
                request.version_spec,
                request.architecture,
                exit_code=exit_code,
            )

        return InstallRecord(install_dir=install_dir)


class ArchiveStrategy(AcquisitionStrategy):
    """Strategy for archives holding a single top-level install directory."""

    name = "archive"

    def materialize(
        self, downloaded: Path, install_dir: Path, request: SetupRequest
    ) -> InstallRecord:
        logger.info("Extracting downloaded archive...")

        with temporary_directory(prefix="extract_", parent=self.temp_dir) as staging:
            try:
                extract_archive(downloaded, staging)
            except ArchiveExtractionError as e:
                raise InstallFailed(
                    f"Failed to extract {downloaded}: {e}",
                    request.version_spec,
                    request.architecture,
                ) from e

            entries = list_top_level_entries(staging)
            if len(entries) != 1:
                names = [entry.name for entry in entries]
                raise UnexpectedArchiveLayout(
                    f"Archive must contain exactly one top-level entry, "
                    f"found {len(entries)}: {names}",
                    request.version_spec,
                    request.architecture,
                    entries=names,
                )

            logger.debug(f"Moving {entries[0].name} to {install_dir}")
            try:
                move_directory(entries[0], install_dir)
            except FilesystemError as e:
                raise InstallFailed(
                    f"Failed to move extracted runtime into place: {e}",
                    request.version_spec,
                    request.architecture,
                ) from e

        return InstallRecord(install_dir=install_dir)
