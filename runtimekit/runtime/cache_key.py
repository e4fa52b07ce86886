"""
Cache key derivation.

A key names one installed runtime: the runner OS, the tool, the resolved
version and a digest of the download URL, so an upstream URL change always
yields a new key.

Format::

    <prefix>/<os_name>/<tool_name>/<version>/<url digest>

The URL digest is SHA-256 encoded as unpadded URL-safe base64, which never
contains the ``/`` delimiter.
"""

import base64
import hashlib

DEFAULT_KEY_PREFIX = "runtimekit/setup-python"
KEY_DELIMITER = "/"


def url_digest(url: str) -> str:
    """
    SHA-256 of a URL as unpadded URL-safe base64 (43 characters).

    Example:
        >>> len(url_digest("https://example.com/python.tar.gz"))
        43
    """
    digest = hashlib.sha256(url.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def derive_cache_key(
    os_name: str,
    tool_name: str,
    version: str,
    download_url: str,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> str:
    """
    Build the cache key for an installed runtime.

    Args:
        os_name: Runner OS name ('Linux', 'macOS', 'Windows')
        tool_name: Logical tool name ('nogil')
        version: Resolved release version
        download_url: URL the artifact is downloaded from
        prefix: Key namespace; may itself contain '/'

    Returns:
        Opaque cache key

    Raises:
        ValueError: If a field is empty or contains the delimiter

    Example:
        >>> derive_cache_key("macOS", "nogil", "3.9.10", "https://example.com/a.tar.gz")
        'runtimekit/setup-python/macOS/nogil/3.9.10/...'
    """
    if not download_url:
        raise ValueError("Download URL cannot be empty")
    if not prefix:
        raise ValueError("Key prefix cannot be empty")

    fields = {"os_name": os_name, "tool_name": tool_name, "version": version}
    for name, value in fields.items():
        if not value:
            raise ValueError(f"Cache key field '{name}' cannot be empty")
        if KEY_DELIMITER in value:
            raise ValueError(
                f"Cache key field '{name}' cannot contain '{KEY_DELIMITER}': {value}"
            )

    return KEY_DELIMITER.join(
        [prefix.rstrip(KEY_DELIMITER), os_name, tool_name, version, url_digest(download_url)]
    )
