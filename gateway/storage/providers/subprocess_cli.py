"""
External CLI media source.

Shells out to a command-line tool (rclone by default) that writes the
object to a path inside a per-fetch scratch directory. The exit status
decides success; the scratch directory is always removed afterwards.
"""

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from gateway.errors import (
    BackendUnavailable,
    LocalIOFailure,
    ObjectNotFound,
    TransientFetchError,
)
from gateway.storage.core import ObjectSource
from gateway.storage.disk import partial_name

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "rclone copyto {remote}/{key} {destination}"

# rclone: 3 = directory not found, 4 = file not found
DEFAULT_NOT_FOUND_EXIT_CODES = (3, 4)


class SubprocessObjectSource(ObjectSource):
    """Runs a command per fetch; {key} and {destination} are substituted per argument."""

    name = "subprocess"

    def __init__(
        self,
        command: Union[str, Sequence[str]] = DEFAULT_COMMAND,
        remote: str = "",
        timeout: int = 300,
        not_found_exit_codes: Iterable[int] = DEFAULT_NOT_FOUND_EXIT_CODES,
    ):
        """
        Initialize subprocess source.

        Args:
            command: Command template, as a shell-style string or argv list
            remote: Value for the {remote} placeholder (e.g. 'r2:media')
            timeout: Seconds before the process is killed
            not_found_exit_codes: Exit codes meaning the object does not exist
        """
        self.command: List[str] = shlex.split(command) if isinstance(command, str) else list(command)
        self.remote = remote.rstrip("/")
        self.timeout = timeout
        self.not_found_exit_codes = set(not_found_exit_codes)

    def build_argv(self, key: str, destination: Path) -> List[str]:
        values = {"key": key, "destination": str(destination), "remote": self.remote}
        return [part.format(**values) for part in self.command]

    def fetch(self, key: str, destination: Path) -> None:
        # The tool writes into its own scratch directory next to destination,
        # so whatever temporary files it creates are removed with it.
        scratch = destination.parent / partial_name()
        try:
            scratch.mkdir()
        except OSError as e:
            raise LocalIOFailure(f"Cannot create scratch directory {scratch}: {e}", key=key) from e

        try:
            output = scratch / destination.name
            self._run(key, output)
            os.replace(output, destination)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _run(self, key: str, output: Path) -> None:
        argv = self.build_argv(key, output)
        logger.debug(f"Running: {' '.join(argv)}")

        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BackendUnavailable(f"Cannot run fetch command {argv[0]}: {e}", key=key) from e
        except subprocess.TimeoutExpired as e:
            raise TransientFetchError(
                f"Fetch command timed out after {self.timeout}s", key=key
            ) from e

        if completed.returncode != 0:
            stderr = _tail(completed.stderr)
            if completed.returncode in self.not_found_exit_codes:
                raise ObjectNotFound(f"{argv[0]} reports {key} missing: {stderr}", key=key)
            raise TransientFetchError(
                f"{argv[0]} exited with {completed.returncode}: {stderr}", key=key
            )

        if not output.is_file():
            raise TransientFetchError(f"{argv[0]} exited cleanly but wrote no file", key=key)


def _tail(output: Optional[bytes], limit: int = 500) -> str:
    if not output:
        return ""
    return output.decode("utf-8", errors="replace").strip()[-limit:]
