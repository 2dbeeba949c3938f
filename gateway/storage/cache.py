"""
High-level media cache: resolves a filename to a ready-to-serve local path.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

from gateway.errors import LocalIOFailure
from gateway.storage.core import ObjectSource
from gateway.storage.disk import DiskCache
from gateway.storage.eviction import CacheIndex
from gateway.storage.retry import RetryPolicy

logger = logging.getLogger(__name__)


class MediaCache:
    """
    Cache resolver.

    Serves from the disk cache when the file is present, otherwise pulls it
    from the remote source through the retry policy. Every successful
    resolution re-arms the file's eviction timer.

    Requests for the same filename are serialized, so concurrent misses for
    one key trigger a single download; the others find the file on disk.
    """

    def __init__(
        self,
        source: ObjectSource,
        cache_dir: str,
        eviction_seconds: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.source = source
        self.disk = DiskCache(cache_dir)
        self.index = CacheIndex(self.disk, eviction_seconds=eviction_seconds)
        self.retry_policy = retry_policy or RetryPolicy()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _key_lock(self, filename: str):
        lock = self._locks.setdefault(filename, asyncio.Lock())
        self._lock_users[filename] = self._lock_users.get(filename, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[filename] -= 1
            if self._lock_users[filename] == 0:
                del self._lock_users[filename]
                del self._locks[filename]

    async def resolve(self, filename: str) -> Path:
        """
        Return a local path holding the media file for filename.

        Callers must have authorized the request already.

        Args:
            filename: Single path segment naming the remote object

        Returns:
            Path: File inside the cache directory

        Raises:
            InvalidFilename: If filename is not a safe single segment
            ObjectNotFound: If the backend has no such object
            BackendUnavailable: If the backend rejects our configuration
            RemoteFetchFailed: If transient failures exhausted the retries
            LocalIOFailure: If the file could not be stored
        """
        local_path = self.disk.path_for(filename)

        async with self._key_lock(filename):
            if local_path.is_file():
                logger.info(f"[cache] serving {filename}")
                self.index.touch(filename, local_path)
                return local_path

            # File may have vanished under a still-armed timer
            self.index.cancel(filename)

            logger.info(f"[download] {filename} not cached, downloading from {self.source.name}")
            download = asyncio.ensure_future(
                self.retry_policy.run(lambda: self._fetch_once(filename), key=filename)
            )
            try:
                # The worker thread cannot be interrupted; if we are cancelled
                # the download finishes in the background and still gets a timer.
                await asyncio.shield(download)
            except asyncio.CancelledError:
                download.add_done_callback(
                    lambda task: self._arm_orphaned(filename, local_path, task)
                )
                raise

            self.index.touch(filename, local_path)
            logger.info(f"[done] downloaded & cached {filename}")
            return local_path

    def _arm_orphaned(self, filename: str, local_path: Path, task: asyncio.Future) -> None:
        """Arm the timer for a download whose requester went away."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"[download] abandoned fetch of {filename} failed: {error}")
            return
        if local_path.is_file():
            self.index.touch(filename, local_path)
            logger.info(f"[done] cached {filename} after its request was cancelled")

    async def _fetch_once(self, filename: str) -> Path:
        def write(temp_path: Path) -> None:
            try:
                self.source.fetch(filename, temp_path)
            except OSError as e:
                raise LocalIOFailure(
                    f"Failed to write {filename} to cache: {e}", key=filename
                ) from e

        return await asyncio.to_thread(self.disk.write_with, filename, write)

    def is_cached(self, filename: str) -> bool:
        """Check if filename is currently on disk, without touching its timer."""
        return self.disk.exists(filename)

    def stats(self) -> Dict:
        return {
            "backend": self.source.name,
            "cache_dir": str(self.disk.cache_dir),
            "tracked_entries": len(self.index),
            "eviction_seconds": self.index.eviction_seconds,
        }

    def shutdown(self) -> None:
        """Cancel all pending evictions."""
        self.index.cancel_all()
