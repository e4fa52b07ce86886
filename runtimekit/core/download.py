"""
Network download transport for runtime artifacts.

This module provides the download step of the install pipeline:
- HTTP/HTTPS downloads with TLS verification and redirects
- Streaming to disk in chunks
- Timeout handling
- Optional bounded retry with exponential backoff (off by default; the
  install pipeline leaves retry policy to its caller)
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class DownloadError(Exception):
    """Exception raised when download fails."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


def filename_from_url(url: str) -> str:
    """
    Get the last path component of a URL.

    Example:
        >>> filename_from_url("https://example.com/a/python-3.9.10-amd64.exe?x=1")
        'python-3.9.10-amd64.exe'
    """
    name = Path(urlparse(url).path).name
    if not name:
        raise ValueError(f"URL has no file name: {url}")
    return name


def download_file(
    url: str,
    destination: Optional[Path] = None,
    download_dir: Optional[Path] = None,
    timeout: int = 30,
    max_retries: int = 1,
) -> Path:
    """
    Download file from URL to a local path.

    When ``destination`` is omitted the file is written to a fresh, uniquely
    named path inside ``download_dir``, mirroring a tool cache that manages
    its own download names.

    Args:
        url: URL to download from
        destination: Explicit local path to save the file to
        download_dir: Directory for generated paths (used when destination is None)
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts (1 means no retry)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the request fails or returns a non-2xx status
        ValueError: If URL is empty or no destination can be determined

    Example:
        >>> from runtimekit.core.download import download_file
        >>> download_file("https://example.com/python.tar.gz", Path("/tmp/python.tar.gz"))
        PosixPath('/tmp/python.tar.gz')
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if destination is None:
        if download_dir is None:
            raise ValueError("Either destination or download_dir must be given")
        destination = Path(download_dir) / str(uuid.uuid4())

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            return _stream_to_file(url, destination, timeout)
        except RequestException as e:
            status_code = getattr(getattr(e, "response", None), "status_code", None)
            if attempt == attempts - 1:
                if attempts == 1:
                    message = f"Download failed: {e}"
                else:
                    message = f"Download failed after {attempts} attempts: {e}"
                raise DownloadError(message, url=url, status_code=status_code) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise DownloadError("Download failed for unknown reason", url=url)


def _stream_to_file(url: str, destination: Path, timeout: int) -> Path:
    """
    Perform a single streaming GET into destination.

    Internal helper for download_file(). A partially written file is removed
    when the transfer fails.
    """
    logger.debug(f"GET {url} -> {destination}")

    response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    try:
        response.raise_for_status()

        downloaded = 0
        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    downloaded += len(chunk)
    except RequestException:
        destination.unlink(missing_ok=True)
        raise
    finally:
        response.close()

    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination
