"""
Remote media source implementations.
"""

from .local import LocalDirectoryObjectSource
from .memory import InMemoryObjectSource
from .pcloud import PCloudObjectSource
from .s3 import S3ObjectSource
from .subprocess_cli import SubprocessObjectSource

__all__ = [
    "LocalDirectoryObjectSource",
    "InMemoryObjectSource",
    "PCloudObjectSource",
    "S3ObjectSource",
    "SubprocessObjectSource",
]
