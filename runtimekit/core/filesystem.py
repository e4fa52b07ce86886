"""
File system utilities for RuntimeKit.

This module provides the file operations the install pipeline and the cache
store depend on:
- Archive extraction (tar.gz, tar.xz, tar.bz2, zip) with traversal checks
- Archive creation for cache entries
- Safe file operations (atomic writes, guarded deletion, directory moves)
- Temporary directory management
"""

import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, List, Optional, Union

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Errors
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def _validate_link_target(member: tarfile.TarInfo, destination: Path) -> None:
    """
    Validate that a tar link member points inside the destination.

    Symlink targets are relative to the link's own directory, hard link
    targets are relative to the archive root.

    Raises:
        InsecureArchiveError: If the link target escapes destination
    """
    if member.issym():
        target = destination / Path(member.name).parent / member.linkname
    elif member.islnk():
        target = destination / member.linkname
    else:
        return

    if not target.resolve().is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive link '{member.name}' -> '{member.linkname}' points outside "
            "the extraction directory. Extraction has been blocked."
        )


def detect_archive_format(archive_path: Union[str, Path]) -> str:
    """
    Detect archive format from the file name, falling back to content sniffing.

    Downloads stored under generated names carry no extension, so the
    content check is what usually decides for them.

    Returns:
        'zip', 'tar:gz', 'tar:xz', 'tar:bz2' or 'tar'

    Raises:
        UnsupportedArchiveFormat: If the format cannot be determined
    """
    archive_path = Path(archive_path)
    name = archive_path.name.lower()

    if name.endswith(".zip"):
        return "zip"
    if name.endswith((".tar.gz", ".tgz")):
        return "tar:gz"
    if name.endswith((".tar.xz", ".txz")):
        return "tar:xz"
    if name.endswith((".tar.bz2", ".tbz2")):
        return "tar:bz2"
    if name.endswith(".tar"):
        return "tar"

    if zipfile.is_zipfile(archive_path):
        return "zip"

    with open(archive_path, "rb") as f:
        magic = f.read(6)
    if magic.startswith(b"\x1f\x8b"):
        return "tar:gz"
    if magic.startswith(b"\xfd7zXZ\x00"):
        return "tar:xz"
    if magic.startswith(b"BZh"):
        return "tar:bz2"
    if tarfile.is_tarfile(archive_path):
        return "tar"

    raise UnsupportedArchiveFormat(
        f"Unsupported archive format: {archive_path.name}. "
        "Supported: .zip, .tar.gz, .tar.xz, .tar.bz2, .tar"
    )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
) -> Path:
    """
    Extract an archive to a destination directory.

    Validates all member paths to prevent directory traversal attacks.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to (created if missing)

    Returns:
        The destination directory

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('python-3.9.10-nogil-macos.tar.gz', '/tmp/nogil')
        PosixPath('/tmp/nogil')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        archive_format = detect_archive_format(archive_path)
        if archive_format == "zip":
            _extract_zip(archive_path, destination)
        else:
            mode = "r:" + archive_format.split(":")[1] if ":" in archive_format else "r"
            _extract_tar(archive_path, destination, mode)
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e

    return destination


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()

        for member in members:
            _validate_archive_path(member, destination)

        for member in members:
            zf.extract(member, destination)


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()

        for member in members:
            _validate_archive_path(member.name, destination)
            _validate_link_target(member, destination)

        # Symlinks inside a Python install point at siblings (python -> python3.9)
        # so the "tar" filter is used rather than "data".
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


def create_tar_archive(
    archive_path: Union[str, Path], members: Iterable[tuple]
) -> Path:
    """
    Write a gzip-compressed tarball from (source path, archive name) pairs.

    Directories are added recursively and symlinks are stored as links.

    Args:
        archive_path: Tarball to create
        members: Iterable of (source_path, arcname) tuples

    Returns:
        Path to the created archive
    """
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    with tarfile.open(archive_path, "w:gz") as tar:
        for source, arcname in members:
            tar.add(str(source), arcname=arcname, recursive=True)

    return archive_path


# ============================================================================
# Directory Inspection
# ============================================================================


def list_top_level_entries(path: Union[str, Path]) -> List[Path]:
    """
    List the entries directly under a directory, sorted by name.

    Example:
        >>> list_top_level_entries('/tmp/extract')
        [PosixPath('/tmp/extract/python-3.9.10')]
    """
    return sorted(Path(path).iterdir(), key=lambda p: p.name)


def directory_size(path: Union[str, Path]) -> int:
    """
    Calculate total size of a directory in bytes.

    Example:
        >>> size = directory_size('/home/runner/nogil-3.9.10')
        >>> print(f"Install is {size / 1024 / 1024:.2f} MB")
    """
    path = Path(path)
    total_size = 0

    for item in path.rglob("*"):
        if item.is_file() and not item.is_symlink():
            total_size += item.stat().st_size

    return total_size


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('index.json', '{"version": 1}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/runtimekit_extract_x', require_prefix='/tmp')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def move_directory(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Move a directory to a new path.

    Uses a rename when both paths share a filesystem and falls back to a
    copy + delete otherwise (temp dirs often live on another mount).

    Raises:
        FilesystemError: If destination already exists or the move fails
    """
    source = Path(source)
    destination = Path(destination)

    if destination.exists():
        raise FilesystemError(f"Destination already exists: {destination}")

    destination.parent.mkdir(parents=True, exist_ok=True)

    try:
        source.rename(destination)
    except OSError:
        try:
            shutil.move(str(source), str(destination))
        except (OSError, shutil.Error) as e:
            raise FilesystemError(
                f"Failed to move '{source}' to '{destination}': {e}"
            ) from e

    return destination


# ============================================================================
# Temporary Directory Management
# ============================================================================


@contextmanager
def temporary_directory(
    prefix: str = "runtimekit_",
    parent: Optional[Union[str, Path]] = None,
    cleanup: bool = True,
):
    """
    Context manager for temporary directory with automatic cleanup.

    Args:
        prefix: Prefix for temp directory name
        parent: Directory to create it in (default: system temp)
        cleanup: If True, remove directory on exit

    Yields:
        Path to temporary directory

    Example:
        >>> with temporary_directory(parent='/tmp/runner') as tmp:
        ...     (tmp / 'file.txt').write_text('test')
    """
    if parent is not None:
        Path(parent).mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))

    try:
        yield temp_dir
    finally:
        if cleanup and temp_dir.exists():
            safe_rmtree(temp_dir)


__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "detect_archive_format",
    "extract_archive",
    "create_tar_archive",
    "list_top_level_entries",
    "directory_size",
    "atomic_write",
    "safe_rmtree",
    "move_directory",
    "temporary_directory",
]
