"""
Unit tests for the release catalog and release matching.
"""

import json

import pytest

from runtimekit.core.exceptions import (
    ManifestError,
    NoMatchingPlatform,
    NoMatchingVersion,
)
from runtimekit.runtime.manifest import Manifest, default_manifest_path, find_release
from runtimekit.runtime.versions import normalize_version_spec


def release(version, files, stable=True):
    return {
        "version": version,
        "stable": stable,
        "release_url": f"https://example.com/{version}",
        "files": [
            {
                "filename": f"python-{version}-{plat}-{arch}.tar.gz",
                "arch": arch,
                "platform": plat,
                "download_url": f"https://example.com/{version}/{plat}-{arch}.tar.gz",
            }
            for plat, arch in files
        ],
    }


@pytest.fixture
def multi_catalog():
    return Manifest.from_data(
        [
            release("3.9.9", [("linux", "x64"), ("darwin", "x64")]),
            release("3.9.10", [("darwin", "x64")], stable=False),
            release("3.11.0a1", [("linux", "x64")], stable=False),
        ]
    )


class TestManifestLoading:
    """Test Manifest construction and loading."""

    def test_embedded_catalog(self, catalog):
        """Test the bundled catalog has the nogil 3.9.10 release."""
        assert default_manifest_path().exists()
        assert catalog.versions() == ["3.9.10"]
        assert catalog.platforms("3.9.10") == ["win32-x64", "darwin-x64"]
        assert catalog.releases[0].stable is False

    def test_load_custom_file(self, tmp_path):
        """Test loading another catalog file."""
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps([release("1.0.0", [("linux", "x64")])]))

        manifest = Manifest.load(path)

        assert len(manifest) == 1
        assert manifest.releases[0].files[0].platform == "linux"

    def test_missing_file(self, tmp_path):
        """Test missing catalog raises ManifestError."""
        with pytest.raises(ManifestError, match="not found"):
            Manifest.load(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises ManifestError."""
        path = tmp_path / "manifest.json"
        path.write_text("[{")

        with pytest.raises(ManifestError, match="Invalid JSON"):
            Manifest.load(path)

    @pytest.mark.parametrize(
        "data",
        [
            {"version": "1.0"},
            [{"stable": True}],
            [{"version": "1.0", "files": {}}],
            [{"version": "1.0", "files": [{"arch": "x64"}]}],
        ],
    )
    def test_invalid_shape(self, data):
        """Test structural problems raise ManifestError."""
        with pytest.raises(ManifestError):
            Manifest.from_data(data)

    def test_platforms_unknown_version(self, catalog):
        """Test an unknown version has no platforms."""
        assert catalog.platforms("9.9.9") == []


class TestFindRelease:
    """Test find_release function."""

    def test_match_embedded_catalog(self, catalog):
        """Test nogil-3.9 resolves to the darwin archive."""
        match = find_release(normalize_version_spec("nogil-3.9"), "x64", catalog, "darwin")

        assert match.version == "3.9.10"
        assert match.file.filename == "python-3.9.10-nogil-macos.tar.gz"
        assert match.download_url.endswith("python-3.9.10-nogil-macos.tar.gz")

    def test_highest_version_wins(self, multi_catalog):
        """Test the highest satisfying version is selected."""
        match = find_release(normalize_version_spec("3.9"), "x64", multi_catalog, "darwin")
        assert match.version == "3.9.10"

    def test_unstable_releases_included(self, multi_catalog):
        """Test stable=False releases are candidates by default."""
        match = find_release(
            normalize_version_spec("3.11-dev"), "x64", multi_catalog, "linux"
        )
        assert match.version == "3.11.0a1"

    def test_stable_only(self, multi_catalog):
        """Test stable_only skips unstable releases."""
        match = find_release(
            normalize_version_spec("3.9"), "x64", multi_catalog, "darwin", stable_only=True
        )
        assert match.version == "3.9.9"

    def test_no_matching_version(self, catalog):
        """Test a version outside the catalog raises NoMatchingVersion."""
        with pytest.raises(NoMatchingVersion) as exc_info:
            find_release(normalize_version_spec("2.0.0"), "x64", catalog, "darwin")

        assert exc_info.value.version_spec == "2.0.0"
        assert exc_info.value.architecture == "x64"

    def test_no_version_wins_over_no_platform(self, catalog):
        """Test an unknown platform still reports the version problem first."""
        with pytest.raises(NoMatchingVersion):
            find_release(normalize_version_spec("2.0.0"), "ppc64", catalog, "aix")

    def test_no_matching_platform(self, catalog):
        """Test a matching version without a file raises NoMatchingPlatform."""
        with pytest.raises(NoMatchingPlatform) as exc_info:
            find_release(normalize_version_spec("3.9.10"), "arm64", catalog, "linux")

        error = exc_info.value
        assert error.platform == "linux"
        assert error.release_version == "3.9.10"
        assert "win32-x64" in str(error)
        assert "arm64" in str(error)

    def test_first_file_wins(self):
        """Test duplicate platform files resolve to the first entry."""
        data = release("1.0.0", [("linux", "x64"), ("linux", "x64")])
        data["files"][1]["download_url"] = "https://example.com/second"
        manifest = Manifest.from_data([data])

        match = find_release(normalize_version_spec("1.0.0"), "x64", manifest, "linux")

        assert match.download_url == "https://example.com/1.0.0/linux-x64.tar.gz"
