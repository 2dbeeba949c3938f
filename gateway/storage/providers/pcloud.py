"""
pCloud cloud-drive source.

Each fetch logs in, looks up the media folder by path, finds the file by
name, downloads it through a short-lived file link and logs out again. The
session is released on every exit path.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

import requests

from gateway.errors import BackendUnavailable, ObjectNotFound, TransientFetchError
from gateway.storage.core import ObjectSource

logger = logging.getLogger(__name__)

# pCloud API result codes
RESULT_OK = 0
NOT_FOUND_RESULTS = {2005, 2009}  # directory / file does not exist
AUTH_RESULTS = {1000, 2000, 2094, 4000}  # login required / failed / bad token / throttled login


class PCloudSession:
    """An authenticated pCloud API session."""

    def __init__(self, http: requests.Session, api_host: str, auth: str, timeout: int):
        self.http = http
        self.api_host = api_host.rstrip("/")
        self.auth = auth
        self.timeout = timeout

    def call(self, method: str, key: str, **params) -> Dict:
        """Call an API method and return its JSON body, raising on non-zero results."""
        return _api_call(self.http, self.api_host, method, key, self.timeout, auth=self.auth, **params)


def _api_call(http, api_host: str, method: str, key: str, timeout: int, **params) -> Dict:
    try:
        response = http.get(f"{api_host}/{method}", params=params, timeout=timeout)
    except requests.RequestException as e:
        raise TransientFetchError(f"pCloud {method} failed: {e}", key=key) from e

    if response.status_code >= 500:
        raise TransientFetchError(f"pCloud {method} returned HTTP {response.status_code}", key=key)
    if response.status_code != 200:
        raise BackendUnavailable(f"pCloud {method} returned HTTP {response.status_code}", key=key)

    try:
        payload = response.json()
    except ValueError as e:
        raise TransientFetchError(f"pCloud {method} returned invalid JSON", key=key) from e

    result = payload.get("result", RESULT_OK)
    if result == RESULT_OK:
        return payload

    message = payload.get("error", "unknown error")
    if result in NOT_FOUND_RESULTS:
        raise ObjectNotFound(f"pCloud {method}: {message}", key=key)
    if result in AUTH_RESULTS:
        raise BackendUnavailable(f"pCloud {method}: {message} ({result})", key=key)
    if result >= 5000:
        raise TransientFetchError(f"pCloud {method}: {message} ({result})", key=key)
    raise BackendUnavailable(f"pCloud {method}: {message} ({result})", key=key)


class PCloudObjectSource(ObjectSource):
    """Fetches media files stored in a single pCloud folder."""

    name = "pcloud"

    CHUNK_SIZE = 1024 * 1024

    def __init__(
        self,
        username: Optional[str],
        password: Optional[str],
        folder: str = "/",
        api_host: str = "https://api.pcloud.com",
        timeout: int = 60,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        """
        Initialize pCloud source.

        Args:
            username: pCloud account email
            password: pCloud account password
            folder: Folder path holding the media files
            api_host: https://api.pcloud.com (US) or https://eapi.pcloud.com (EU)
            timeout: Per-request timeout in seconds
            session_factory: Builds the HTTP session for each fetch
        """
        self.username = username
        self.password = password
        self.folder = "/" + folder.strip("/")
        self.api_host = api_host.rstrip("/")
        self.timeout = timeout
        self.session_factory = session_factory

    @contextmanager
    def session(self, key: str) -> Iterator[PCloudSession]:
        """Log in, yield the session, and always log out and close the connection."""
        if not self.username or not self.password:
            raise BackendUnavailable("pCloud credentials not configured", key=key)

        http = self.session_factory()
        try:
            login = _api_call(
                http,
                self.api_host,
                "userinfo",
                key,
                self.timeout,
                getauth=1,
                logout=1,
                username=self.username,
                password=self.password,
            )
            auth = login.get("auth")
            if not auth:
                raise BackendUnavailable("pCloud login returned no auth token", key=key)
            session = PCloudSession(http, self.api_host, auth, self.timeout)
            logger.debug("pCloud: logged in")
            try:
                yield session
            finally:
                try:
                    session.call("logout", key)
                    logger.debug("pCloud: logged out")
                except (TransientFetchError, BackendUnavailable, ObjectNotFound) as e:
                    logger.warning(f"pCloud logout failed: {e}")
        finally:
            http.close()

    def fetch(self, key: str, destination: Path) -> None:
        with self.session(key) as session:
            listing = session.call("listfolder", key, path=self.folder)
            contents = listing.get("metadata", {}).get("contents", [])

            match = next(
                (item for item in contents if not item.get("isfolder") and item.get("name") == key),
                None,
            )
            if match is None:
                raise ObjectNotFound(f"{key} not found in pCloud folder {self.folder}", key=key)

            link = session.call("getfilelink", key, fileid=match["fileid"])
            hosts = link.get("hosts") or []
            if not hosts:
                raise TransientFetchError(f"pCloud returned no download hosts for {key}", key=key)

            url = f"https://{hosts[0]}{link['path']}"
            self._download(session.http, url, key, destination)

        logger.debug(f"pCloud: fetched {key}")

    def _download(self, http, url: str, key: str, destination: Path) -> None:
        try:
            with http.get(url, stream=True, timeout=self.timeout) as response:
                if response.status_code == 404:
                    raise ObjectNotFound(f"pCloud download link for {key} returned 404", key=key)
                if response.status_code != 200:
                    raise TransientFetchError(
                        f"pCloud download returned HTTP {response.status_code}", key=key
                    )
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise TransientFetchError(f"pCloud download failed: {e}", key=key) from e
