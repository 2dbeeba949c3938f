"""
Media retrieval and cache layer for the Chat Archive Gateway.

Provides:
- MediaCache: Resolves filenames to cached local files
- ObjectSource: Abstract interface for remote media backends
- Sources: S3ObjectSource, PCloudObjectSource, SubprocessObjectSource,
  LocalDirectoryObjectSource, InMemoryObjectSource
- CacheIndex: Per-file eviction timers
- RetryPolicy / with_retry: Bounded fixed-backoff retries
"""

from gateway.storage.cache import MediaCache
from gateway.storage.core import CacheEntry, FetchAttempt, FetchOutcome, ObjectSource
from gateway.storage.disk import DiskCache, sanitize_filename
from gateway.storage.eviction import CacheIndex
from gateway.storage.factory import create_object_source
from gateway.storage.providers import (
    InMemoryObjectSource,
    LocalDirectoryObjectSource,
    PCloudObjectSource,
    S3ObjectSource,
    SubprocessObjectSource,
)
from gateway.storage.retry import RetryPolicy, with_retry

__all__ = [
    "MediaCache",
    "ObjectSource",
    "CacheEntry",
    "FetchAttempt",
    "FetchOutcome",
    "DiskCache",
    "sanitize_filename",
    "CacheIndex",
    "create_object_source",
    "RetryPolicy",
    "with_retry",
    "InMemoryObjectSource",
    "LocalDirectoryObjectSource",
    "PCloudObjectSource",
    "S3ObjectSource",
    "SubprocessObjectSource",
]
