"""
Pytest configuration and shared fixtures for RuntimeKit tests.
"""

import io
import tarfile
from pathlib import Path

import pytest

from runtimekit.config import RuntimeConfig
from runtimekit.runtime.manifest import Manifest


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """
    Skip integration tests unless --integration flag is provided.
    """
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================

MACOS_URL = (
    "https://github.com/colesbury/nogil/releases/download/"
    "v3.9.10-nogil-2022-12-21/python-3.9.10-nogil-macos.tar.gz"
)
WINDOWS_URL = (
    "https://github.com/colesbury/nogil/releases/download/"
    "v3.9.10-nogil-2022-12-21/python-3.9.10-amd64.exe"
)


def build_tarball(path: Path, entries: dict) -> Path:
    """
    Write a tar.gz holding the given files.

    Args:
        path: Archive to create
        entries: Mapping of archive member name -> file content (bytes)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, content in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))
    return path


@pytest.fixture
def catalog() -> Manifest:
    """The embedded release catalog."""
    return Manifest.load()


@pytest.fixture
def darwin_config(tmp_path: Path) -> RuntimeConfig:
    """Configuration for a macOS x64 runner rooted in tmp_path."""
    return RuntimeConfig(
        platform="darwin",
        architecture="x64",
        os_name="macOS",
        temp_dir=tmp_path / "runner-temp",
        install_root=tmp_path / "home",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def win32_config(tmp_path: Path) -> RuntimeConfig:
    """Configuration for a Windows x64 runner rooted in tmp_path."""
    return RuntimeConfig(
        platform="win32",
        architecture="x64",
        os_name="Windows",
        temp_dir=tmp_path / "runner-temp",
        install_root=tmp_path / "home",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def make_tarball():
    """Factory fixture for build_tarball()."""
    return build_tarball


@pytest.fixture
def nogil_tarball(tmp_path: Path) -> Path:
    """A release archive with a single top-level install directory."""
    return build_tarball(
        tmp_path / "downloads" / "python-3.9.10-nogil-macos.tar.gz",
        {
            "python-3.9.10-nogil/bin/python": b"#!/bin/sh\necho nogil\n",
            "python-3.9.10-nogil/lib/python3.9/os.py": b"# os\n",
        },
    )


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "fake-home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home
