"""
Core data structures and interfaces for the media cache.

Defines:
- ObjectSource: Abstract interface for remote media backends
- CacheEntry: A cached file and its pending eviction timer
- FetchAttempt: Record of one try at pulling an object from a backend
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class FetchOutcome(str, Enum):
    """Result of a single fetch attempt."""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class FetchAttempt:
    """One attempt at fetching `key`. Not persisted, only logged."""

    key: str
    attempt_number: int
    outcome: FetchOutcome
    error: Optional[str] = None


@dataclass
class CacheEntry:
    """
    A file present in the cache directory.

    The timer handle is whatever the event loop returned when the eviction
    was armed; it is only ever cancelled, never inspected.
    """

    filename: str
    local_path: Path
    timer_handle: Any = None
    last_touched_at: float = field(default_factory=time.monotonic)


class ObjectSource(ABC):
    """
    Abstract base class for remote media backends.

    Implementations are synchronous and are run in a worker thread by the
    resolver. They must raise:
    - ObjectNotFound when the key does not exist remotely
    - BackendUnavailable for credential or configuration problems
    - TransientFetchError for anything worth retrying
    """

    name: str = "source"

    @abstractmethod
    def fetch(self, key: str, destination: Path) -> None:
        """Stream the bytes of object `key` into `destination`."""
        pass
