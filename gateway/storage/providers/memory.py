"""
In-memory media source for testing/development.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from gateway.errors import ObjectNotFound
from gateway.storage.core import ObjectSource

logger = logging.getLogger(__name__)


class InMemoryObjectSource(ObjectSource):
    """
    In-memory object source for testing/development.

    Stores objects in a dict, simulating a bucket. Counts fetches per key so
    tests can assert how often the remote was hit.
    """

    name = "memory"

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.fetch_counts: Dict[str, int] = {}

    def put(self, key: str, data: bytes) -> None:
        """Store object."""
        self.objects[key] = data

    def fetch(self, key: str, destination: Path) -> None:
        self.fetch_counts[key] = self.fetch_counts.get(key, 0) + 1
        if key not in self.objects:
            raise ObjectNotFound(f"No such object: {key}", key=key)
        destination.write_bytes(self.objects[key])
        logger.debug(f"Memory source: served {key}")
