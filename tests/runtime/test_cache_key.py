"""
Unit tests for cache key derivation.
"""

import re

import pytest

from runtimekit.runtime.cache_key import derive_cache_key, url_digest

URL = "https://example.com/python-3.9.10-nogil-macos.tar.gz"


class TestUrlDigest:
    """Test url_digest function."""

    def test_length_and_alphabet(self):
        """Test unpadded URL-safe base64 of SHA-256."""
        digest = url_digest(URL)
        assert len(digest) == 43
        assert re.fullmatch(r"[A-Za-z0-9_-]+", digest)

    def test_known_value(self):
        """Test digest of the empty string."""
        assert url_digest("") == "47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU"


class TestDeriveCacheKey:
    """Test derive_cache_key function."""

    def test_format(self):
        """Test key layout."""
        key = derive_cache_key("macOS", "nogil", "3.9.10", URL)

        assert key == f"runtimekit/setup-python/macOS/nogil/3.9.10/{url_digest(URL)}"

    def test_deterministic(self):
        """Test same inputs give the same key."""
        assert derive_cache_key("Linux", "nogil", "3.9.10", URL) == derive_cache_key(
            "Linux", "nogil", "3.9.10", URL
        )

    @pytest.mark.parametrize(
        "changed",
        [
            ("Windows", "nogil", "3.9.10", URL),
            ("macOS", "cpython", "3.9.10", URL),
            ("macOS", "nogil", "3.9.11", URL),
            ("macOS", "nogil", "3.9.10", URL + "?v=2"),
        ],
    )
    def test_any_field_changes_key(self, changed):
        """Test each input contributes to the key."""
        assert derive_cache_key(*changed) != derive_cache_key("macOS", "nogil", "3.9.10", URL)

    def test_custom_prefix(self):
        """Test a custom prefix, trailing slash ignored."""
        key = derive_cache_key("Linux", "nogil", "3.9.10", URL, prefix="ci/cache/")
        assert key.startswith("ci/cache/Linux/nogil/3.9.10/")

    @pytest.mark.parametrize(
        "args",
        [
            ("", "nogil", "3.9.10", URL),
            ("Linux", "", "3.9.10", URL),
            ("Linux", "nogil", "", URL),
            ("Linux", "nogil", "3.9.10", ""),
            ("Linux/x", "nogil", "3.9.10", URL),
            ("Linux", "nogil", "3.9/10", URL),
        ],
    )
    def test_invalid_fields(self, args):
        """Test empty fields and delimiter characters are rejected."""
        with pytest.raises(ValueError):
            derive_cache_key(*args)

    def test_empty_prefix(self):
        """Test an empty prefix is rejected."""
        with pytest.raises(ValueError, match="prefix"):
            derive_cache_key("Linux", "nogil", "3.9.10", URL, prefix="")
