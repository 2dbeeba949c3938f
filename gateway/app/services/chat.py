"""
Chat history service.

Serves a static JSON array of chat messages in pages counted from the end,
so page 1 holds the most recent messages. The file is downloaded once at
startup when it is missing locally.
"""

import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)


class ChatLogError(Exception):
    """Chat log missing or unreadable."""


class ChatLog:
    """Paginated access to the chat JSON file."""

    def __init__(
        self,
        local_path: str,
        remote_url: Optional[str] = None,
        default_page_size: int = 50,
        download_timeout: int = 30,
    ):
        self.local_path = Path(local_path)
        self.remote_url = remote_url
        self.default_page_size = default_page_size
        self.download_timeout = download_timeout

    def ensure_available(self) -> bool:
        """
        Download the chat log if it is not on disk yet.

        Failures are logged, not raised; the chat endpoint reports them as
        server errors until the file exists.

        Returns:
            bool: True if the file is present afterwards
        """
        if self.local_path.exists():
            logger.info(f"Chat log present at {self.local_path}")
            return True

        if not self.remote_url:
            logger.warning(f"Chat log {self.local_path} not found and no remote URL configured")
            return False

        logger.info("Chat log not found, downloading from remote URL")
        try:
            self._download()
        except (requests.RequestException, OSError) as e:
            logger.error(f"Failed to download chat log: {e}")
            return False

        logger.info(f"Chat log downloaded and saved to {self.local_path}")
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(2),
        retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _download(self) -> None:
        temp_path = self.local_path.with_name(self.local_path.name + ".part")
        self.local_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with requests.get(self.remote_url, stream=True, timeout=self.download_timeout) as response:
                response.raise_for_status()
                with open(temp_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        if chunk:
                            f.write(chunk)
            os.replace(temp_path, self.local_path)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def load(self) -> List[Any]:
        """Read all messages from disk."""
        try:
            with open(self.local_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ChatLogError(f"Failed to read {self.local_path}: {e}") from e

        if not isinstance(data, list):
            raise ChatLogError(f"{self.local_path} does not contain a JSON array")
        return data

    def page(self, page: Optional[int] = None, page_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Return one page of messages counted from the newest.

        Args:
            page: 1-based page number, 1 = most recent (invalid -> 1)
            page_size: Messages per page (invalid -> default page size)

        Returns:
            Dict with messages (chronological), page and total_pages
        """
        page = page if page and page > 0 else 1
        page_size = page_size if page_size and page_size > 0 else self.default_page_size

        messages = self.load()
        total = len(messages)
        total_pages = math.ceil(total / page_size)

        start = max(total - page * page_size, 0)
        end = max(total - (page - 1) * page_size, 0)

        return {
            "messages": messages[start:end],
            "page": page,
            "total_pages": total_pages,
        }
