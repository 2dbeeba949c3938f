"""
Shared fixtures for the gateway test suite.
"""

import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from gateway.errors import ObjectNotFound
from gateway.storage import ObjectSource


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedSource(ObjectSource):
    """
    Object source that raises queued errors before serving real data.

    Each fetch pops the next entry from `failures`; None means succeed.
    """

    name = "scripted"

    def __init__(
        self,
        objects: Optional[Dict[str, bytes]] = None,
        failures: Optional[List[Optional[Exception]]] = None,
        delay: float = 0.0,
        partial_write: bool = False,
    ):
        self.objects = dict(objects or {})
        self.failures = list(failures or [])
        self.delay = delay
        self.partial_write = partial_write
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, key: str, destination: Path) -> None:
        with self._lock:
            self.calls.append(key)
            failure = self.failures.pop(0) if self.failures else None

        if self.delay:
            time.sleep(self.delay)

        if failure is not None:
            if self.partial_write:
                destination.write_bytes(b"partial")
            raise failure

        if key not in self.objects:
            raise ObjectNotFound(f"No such object: {key}", key=key)
        destination.write_bytes(self.objects[key])


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
