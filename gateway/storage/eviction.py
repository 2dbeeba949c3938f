"""
Time-based eviction of cached media files.

CacheIndex keeps at most one live timer per filename. Touching a filename
cancels its pending timer before arming a new one, so a file is never
deleted while a more recent access is still inside its idle window.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Dict, Optional

from gateway.errors import LocalIOFailure
from gateway.storage.core import CacheEntry
from gateway.storage.disk import DiskCache

logger = logging.getLogger(__name__)


class CacheIndex:
    """
    Process-wide mapping of filename -> CacheEntry with its eviction timer.

    Timers run on the asyncio event loop, so every method here must be called
    from within that loop.
    """

    def __init__(self, disk: DiskCache, eviction_seconds: float = 10.0):
        self.disk = disk
        self.eviction_seconds = eviction_seconds
        self._entries: Dict[str, CacheEntry] = {}

    def __contains__(self, filename: str) -> bool:
        return filename in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, filename: str) -> Optional[CacheEntry]:
        return self._entries.get(filename)

    def touch(self, filename: str, local_path: Path) -> CacheEntry:
        """
        Arm (or re-arm) the eviction timer for filename.

        Args:
            filename: Cache key
            local_path: File deleted when the timer fires

        Returns:
            CacheEntry: The entry with its new timer
        """
        loop = asyncio.get_running_loop()

        entry = self._entries.get(filename)
        if entry is not None and entry.timer_handle is not None:
            entry.timer_handle.cancel()

        if entry is None:
            entry = CacheEntry(filename=filename, local_path=local_path)
            self._entries[filename] = entry

        entry.local_path = local_path
        entry.last_touched_at = time.monotonic()
        entry.timer_handle = loop.call_later(self.eviction_seconds, self._fire, filename)

        logger.debug(f"[evict] armed {filename} for {self.eviction_seconds}s")
        return entry

    def cancel(self, filename: str) -> bool:
        """Drop the timer and entry for filename without touching the file."""
        entry = self._entries.pop(filename, None)
        if entry is None:
            return False
        if entry.timer_handle is not None:
            entry.timer_handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer, e.g. on shutdown."""
        count = len(self._entries)
        for entry in self._entries.values():
            if entry.timer_handle is not None:
                entry.timer_handle.cancel()
        self._entries.clear()
        if count:
            logger.info(f"[evict] cancelled {count} pending evictions")
        return count

    def _fire(self, filename: str) -> None:
        # Entry leaves the index regardless of whether the delete succeeds
        self._entries.pop(filename, None)
        try:
            if self.disk.delete(filename):
                logger.info(f"[evict] deleted cached file: {filename}")
        except LocalIOFailure as e:
            logger.error(f"[evict] {e}")
