"""
Error taxonomy for the gateway.

Every failure the media layer can surface derives from GatewayError and
carries the HTTP status the API maps it to. TransientFetchError is the only
retryable kind; it never reaches callers directly because the retry policy
converts exhaustion into RemoteFetchFailed.
"""

from typing import List, Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code: int = 500

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key


class Unauthorized(GatewayError):
    """Missing, malformed, expired or badly signed credential."""

    status_code = 401


class InvalidFilename(GatewayError, ValueError):
    """Filename is not a single safe path segment."""

    status_code = 400


class ObjectNotFound(GatewayError):
    """The remote backend has no object for the requested key."""

    status_code = 404


class BackendUnavailable(GatewayError):
    """Remote backend misconfigured or rejected our credentials."""

    status_code = 503


class TransientFetchError(GatewayError):
    """Network or backend hiccup worth retrying."""

    status_code = 502


class RemoteFetchFailed(GatewayError):
    """All retry attempts ended in transient failures."""

    status_code = 502

    def __init__(self, message: str, key: Optional[str] = None, attempts: Optional[List] = None):
        super().__init__(message, key=key)
        self.attempts = attempts or []


class LocalIOFailure(GatewayError):
    """Writing to or deleting from the cache directory failed."""

    status_code = 500
