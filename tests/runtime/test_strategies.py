"""
Unit tests for acquisition strategies.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from runtimekit.core.exceptions import InstallFailed, UnexpectedArchiveLayout
from runtimekit.core.process import ProcessLaunchError
from runtimekit.runtime.install_cache import InstallRecord
from runtimekit.runtime.manifest import ReleaseFile
from runtimekit.runtime.strategies import (
    ArchiveStrategy,
    InstallerStrategy,
    strategy_for_platform,
)
from runtimekit.runtime.strategy import SetupRequest

REQUEST = SetupRequest(version_spec="nogil-3.9.10", architecture="x64")

EXE_FILE = ReleaseFile(
    filename="python-3.9.10-amd64.exe",
    arch="x64",
    platform="win32",
    download_url="https://example.com/v3.9.10/python-3.9.10-amd64.exe",
)
TAR_FILE = ReleaseFile(
    filename="python-3.9.10-nogil-macos.tar.gz",
    arch="x64",
    platform="darwin",
    download_url="https://example.com/v3.9.10/python-3.9.10-nogil-macos.tar.gz",
)


class TestStrategyForPlatform:
    """Test strategy dispatch."""

    def test_windows_uses_installer(self, tmp_path):
        """Test win32 gets the installer strategy."""
        assert isinstance(strategy_for_platform("win32", tmp_path), InstallerStrategy)

    @pytest.mark.parametrize("platform", ["darwin", "linux"])
    def test_others_use_archive(self, tmp_path, platform):
        """Test non-Windows platforms extract archives."""
        assert isinstance(strategy_for_platform(platform, tmp_path), ArchiveStrategy)


class TestInstallerStrategy:
    """Test InstallerStrategy class."""

    def test_download_destination(self, tmp_path):
        """Test the installer is downloaded under its own name into temp_dir."""
        strategy = InstallerStrategy(tmp_path)
        assert strategy.download_destination(EXE_FILE) == tmp_path / "python-3.9.10-amd64.exe"

    @patch("runtimekit.runtime.strategies.standard.run_command", return_value=0)
    def test_runs_installer(self, mock_run, tmp_path):
        """Test the installer is run passively into the install dir."""
        exe = tmp_path / "python-3.9.10-amd64.exe"
        install_dir = tmp_path / "nogil-3.9.10"

        record = InstallerStrategy(tmp_path).materialize(exe, install_dir, REQUEST)

        mock_run.assert_called_once_with(exe, ["/passive", f"TargetDir={install_dir}"])
        assert record == InstallRecord(install_dir=install_dir)

    @patch("runtimekit.runtime.strategies.standard.run_command", return_value=1603)
    def test_nonzero_exit(self, mock_run, tmp_path):
        """Test a failing installer raises InstallFailed with the exit code."""
        with pytest.raises(InstallFailed) as exc_info:
            InstallerStrategy(tmp_path).materialize(
                tmp_path / "python.exe", tmp_path / "nogil-3.9.10", REQUEST
            )

        error = exc_info.value
        assert error.exit_code == 1603
        assert error.version_spec == "nogil-3.9.10"
        assert error.architecture == "x64"
        assert "1603" in str(error)

    @patch("runtimekit.runtime.strategies.standard.run_command")
    def test_launch_failure(self, mock_run, tmp_path):
        """Test an installer that cannot start raises InstallFailed."""
        mock_run.side_effect = ProcessLaunchError("not executable")

        with pytest.raises(InstallFailed, match="not executable") as exc_info:
            InstallerStrategy(tmp_path).materialize(
                tmp_path / "python.exe", tmp_path / "nogil-3.9.10", REQUEST
            )

        assert exc_info.value.exit_code is None


class TestArchiveStrategy:
    """Test ArchiveStrategy class."""

    def test_download_destination_is_generated(self, tmp_path):
        """Test archives are downloaded under a transport-chosen name."""
        assert ArchiveStrategy(tmp_path).download_destination(TAR_FILE) is None

    def test_single_root_is_moved(self, tmp_path, nogil_tarball):
        """Test the top-level directory becomes the install dir."""
        temp_dir = tmp_path / "runner-temp"
        install_dir = tmp_path / "home" / "nogil-3.9.10"

        record = ArchiveStrategy(temp_dir).materialize(nogil_tarball, install_dir, REQUEST)

        assert record.install_dir == install_dir
        assert (install_dir / "bin" / "python").exists()
        assert (install_dir / "lib" / "python3.9" / "os.py").exists()
        # The extraction directory is removed
        assert list(temp_dir.iterdir()) == []

    def test_generated_download_name(self, tmp_path, nogil_tarball):
        """Test an archive without extension is still extracted."""
        renamed = nogil_tarball.rename(nogil_tarball.parent / "0b6f2c5e-download")
        install_dir = tmp_path / "nogil-3.9.10"

        ArchiveStrategy(tmp_path / "t").materialize(renamed, install_dir, REQUEST)

        assert (install_dir / "bin" / "python").exists()

    def test_multiple_roots(self, tmp_path, make_tarball):
        """Test several top-level entries raise UnexpectedArchiveLayout."""
        archive = make_tarball(
            tmp_path / "a.tar.gz", {"one/bin/python": b"x", "two/README": b"y"}
        )
        temp_dir = tmp_path / "runner-temp"
        install_dir = tmp_path / "nogil-3.9.10"

        with pytest.raises(UnexpectedArchiveLayout) as exc_info:
            ArchiveStrategy(temp_dir).materialize(archive, install_dir, REQUEST)

        assert exc_info.value.entries == ["one", "two"]
        assert exc_info.value.version_spec == "nogil-3.9.10"
        assert not install_dir.exists()
        assert list(temp_dir.iterdir()) == []

    def test_empty_archive(self, tmp_path, make_tarball):
        """Test an archive without entries raises UnexpectedArchiveLayout."""
        archive = make_tarball(tmp_path / "empty.tar.gz", {})

        with pytest.raises(UnexpectedArchiveLayout) as exc_info:
            ArchiveStrategy(tmp_path / "t").materialize(
                archive, tmp_path / "nogil-3.9.10", REQUEST
            )

        assert exc_info.value.entries == []

    def test_corrupt_archive(self, tmp_path):
        """Test extraction failure raises InstallFailed."""
        archive = tmp_path / "bad.tar.gz"
        archive.write_bytes(b"\x1f\x8b not really gzip")

        with pytest.raises(InstallFailed, match="Failed to extract"):
            ArchiveStrategy(tmp_path / "t").materialize(
                archive, tmp_path / "nogil-3.9.10", REQUEST
            )

    def test_existing_install_dir(self, tmp_path, nogil_tarball):
        """Test a leftover install dir is reported, not overwritten."""
        install_dir = tmp_path / "nogil-3.9.10"
        install_dir.mkdir()
        (install_dir / "keep").write_text("x")

        with pytest.raises(InstallFailed, match="already exists"):
            ArchiveStrategy(tmp_path / "t").materialize(nogil_tarball, install_dir, REQUEST)

        assert (install_dir / "keep").exists()

    @patch("runtimekit.runtime.strategies.standard.move_directory")
    @patch("runtimekit.runtime.strategies.standard.list_top_level_entries")
    @patch("runtimekit.runtime.strategies.standard.extract_archive")
    def test_first_entry_moved(self, mock_extract, mock_list, mock_move, tmp_path):
        """Test the single extracted entry is what gets moved."""
        mock_list.return_value = [Path("/staging/python-3.9.10")]
        install_dir = tmp_path / "nogil-3.9.10"

        ArchiveStrategy(tmp_path).materialize(Path("a.tar.gz"), install_dir, REQUEST)

        mock_extract.assert_called_once()
        mock_move.assert_called_once_with(Path("/staging/python-3.9.10"), install_dir)
