"""
Acquisition Strategy Interface.

A strategy turns a downloaded release file into an install directory. The
platform family decides which one applies: Windows releases ship a
self-installing executable, the others ship an archive.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from runtimekit.runtime.install_cache import InstallRecord
from runtimekit.runtime.manifest import ReleaseFile


@dataclass(frozen=True)
class SetupRequest:
    """What the caller asked for; attached to every fatal error."""

    version_spec: str
    architecture: str


class AcquisitionStrategy(ABC):
    """
    Abstract base class for acquisition strategies.

    Attributes:
        temp_dir: Scratch directory for downloads and extraction
    """

    name = "abstract"

    def __init__(self, temp_dir: Path):
        self.temp_dir = Path(temp_dir)

    def download_destination(self, release_file: ReleaseFile) -> Optional[Path]:
        """
        Path the artifact should be downloaded to.

        Returns:
            A fixed path, or None to let the transport pick a generated name
        """
        return None

    @abstractmethod
    def materialize(
        self, downloaded: Path, install_dir: Path, request: SetupRequest
    ) -> InstallRecord:
        """
        Produce the install directory from a downloaded artifact.

        Args:
            downloaded: Local path of the downloaded file
            install_dir: Final install directory
            request: Original request, for error reporting

        Returns:
            InstallRecord for install_dir
        """
        pass
