"""
Local disk cache directory.

Stores one file per cached key directly under the cache directory. Writes
go through a uniquely named temporary file that is renamed into place, so a
reader never observes a partially written file.

Temporary names have a fixed shape (`.<32 hex digits>.part`) independent of
the key, so any name the filesystem accepts can be cached.
"""

import logging
import os
import re
import shutil
import uuid
from pathlib import Path
from typing import Callable

from gateway.errors import InvalidFilename, LocalIOFailure

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"
PARTIAL_NAME = re.compile(r"\.[0-9a-f]{32}\.part")

# Longest single path component on common filesystems, in bytes
NAME_MAX = 255


def partial_name() -> str:
    """Fresh temporary file (or scratch directory) name for the cache directory."""
    return f".{uuid.uuid4().hex}{PARTIAL_SUFFIX}"


def is_partial_name(name: str) -> bool:
    return PARTIAL_NAME.fullmatch(name) is not None


def sanitize_filename(filename: str) -> str:
    """
    Ensure filename is a single, safe path segment.

    Args:
        filename: Name requested by the client

    Returns:
        str: The unchanged filename

    Raises:
        InvalidFilename: If it is empty, a dot segment, too long, contains
            separators or NUL bytes, or is one of our temporary file names
    """
    if not filename or not filename.strip():
        raise InvalidFilename("Filename must not be empty", key=filename)

    if filename in (".", ".."):
        raise InvalidFilename(f"Invalid filename: {filename!r}", key=filename)

    if "/" in filename or "\\" in filename or "\x00" in filename:
        raise InvalidFilename(
            f"Filename must be a single path segment: {filename!r}", key=filename
        )

    if os.path.isabs(filename) or os.path.basename(filename) != filename:
        raise InvalidFilename(f"Invalid filename: {filename!r}", key=filename)

    if len(filename.encode("utf-8", errors="surrogatepass")) > NAME_MAX:
        raise InvalidFilename(
            f"Filename longer than {NAME_MAX} bytes", key=filename
        )

    if is_partial_name(filename):
        raise InvalidFilename(f"Reserved filename: {filename!r}", key=filename)

    return filename


class DiskCache:
    """
    Directory of cached media files keyed by filename.

    Only the media cache writes here; nothing else should share the directory.
    """

    def __init__(self, cache_dir: str):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._root = self.cache_dir.resolve()

    def path_for(self, filename: str) -> Path:
        """Return the cache path for filename, rejecting anything outside the directory."""
        sanitize_filename(filename)
        path = self.cache_dir / filename
        if path.resolve().parent != self._root:
            raise InvalidFilename(
                f"Filename escapes cache directory: {filename!r}", key=filename
            )
        return path

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    def write_with(self, filename: str, writer: Callable[[Path], None]) -> Path:
        """
        Populate the cache entry for filename using writer.

        writer receives a temporary path in the cache directory and must
        fill it. On success the temporary file is renamed onto the final
        path; on any failure it is removed and the exception propagates.

        Raises:
            LocalIOFailure: If the rename into place fails
        """
        final_path = self.path_for(filename)
        temp_path = self.cache_dir / partial_name()

        try:
            writer(temp_path)
        except BaseException:
            self._discard(temp_path)
            raise

        try:
            os.replace(temp_path, final_path)
        except OSError as e:
            self._discard(temp_path)
            raise LocalIOFailure(
                f"Failed to store {filename} in cache: {e}", key=filename
            ) from e

        return final_path

    def delete(self, filename: str) -> bool:
        """
        Delete a cached file. A missing file is not an error.

        Returns:
            bool: True if a file was removed

        Raises:
            LocalIOFailure: If the file exists but cannot be removed
        """
        path = self.path_for(filename)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise LocalIOFailure(f"Failed to delete {path}: {e}", key=filename) from e

    def purge_partials(self) -> int:
        """Remove temporary files and scratch directories left by an interrupted process."""
        removed = 0
        for path in self.cache_dir.iterdir():
            if is_partial_name(path.name) and self._discard(path):
                removed += 1
        if removed:
            logger.info(f"Removed {removed} stale partial downloads from {self.cache_dir}")
        return removed

    def _discard(self, path: Path) -> bool:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove partial file {path}: {e}")
            return False
