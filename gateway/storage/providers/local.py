"""
Local directory media source.
"""

import logging
import shutil
from pathlib import Path

from gateway.errors import BackendUnavailable, InvalidFilename, ObjectNotFound
from gateway.storage.core import ObjectSource
from gateway.storage.disk import sanitize_filename

logger = logging.getLogger(__name__)


class LocalDirectoryObjectSource(ObjectSource):
    """
    Serves objects from a local directory, one file per key.

    Useful in development when no remote bucket is available.
    """

    name = "local"

    def __init__(self, source_dir: str = "./media"):
        self.source_dir = Path(source_dir)

    def fetch(self, key: str, destination: Path) -> None:
        """Copy {source_dir}/{key} to destination."""
        if not self.source_dir.is_dir():
            raise BackendUnavailable(
                f"Local source directory not found: {self.source_dir}", key=key
            )

        try:
            sanitize_filename(key)
        except InvalidFilename as e:
            raise ObjectNotFound(f"No such object: {key}", key=key) from e

        source_path = self.source_dir / key
        if not source_path.is_file():
            raise ObjectNotFound(f"No such object: {key}", key=key)

        shutil.copyfile(source_path, destination)
        logger.info(f"Copied {source_path} from local source")
