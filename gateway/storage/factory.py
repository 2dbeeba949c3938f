"""
Factory for creating media sources based on configuration.
"""

import logging

from gateway.settings import SourceSettings
from gateway.storage.core import ObjectSource
from gateway.storage.providers import (
    InMemoryObjectSource,
    LocalDirectoryObjectSource,
    PCloudObjectSource,
    S3ObjectSource,
    SubprocessObjectSource,
)

logger = logging.getLogger(__name__)


def create_object_source(source_settings: SourceSettings) -> ObjectSource:
    """
    Factory function to create the configured media source.

    Args:
        source_settings: SourceSettings with backend type and credentials

    Returns:
        ObjectSource instance

    Raises:
        ValueError: If the backend type is unknown
    """
    backend_type = source_settings.backend.lower()

    if backend_type in ("s3", "r2", "minio"):
        logger.info(f"Using S3ObjectSource: bucket={source_settings.s3_bucket}")
        return S3ObjectSource(
            bucket=source_settings.s3_bucket,
            endpoint_url=source_settings.s3_endpoint,
            access_key=source_settings.s3_access_key,
            secret_key=source_settings.s3_secret_key,
            region=source_settings.s3_region,
            timeout=source_settings.request_timeout,
        )

    elif backend_type == "pcloud":
        logger.info(f"Using PCloudObjectSource: folder={source_settings.pcloud_folder}")
        return PCloudObjectSource(
            username=source_settings.pcloud_username,
            password=source_settings.pcloud_password,
            folder=source_settings.pcloud_folder,
            api_host=source_settings.pcloud_api_host,
            timeout=source_settings.request_timeout,
        )

    elif backend_type in ("subprocess", "rclone"):
        logger.info(f"Using SubprocessObjectSource: {source_settings.fetch_command}")
        return SubprocessObjectSource(
            command=source_settings.fetch_command,
            remote=source_settings.rclone_remote,
            timeout=source_settings.fetch_timeout,
        )

    elif backend_type == "local":
        logger.info(f"Using LocalDirectoryObjectSource: {source_settings.local_source_dir}")
        return LocalDirectoryObjectSource(source_dir=source_settings.local_source_dir)

    elif backend_type == "memory":
        logger.info("Using InMemoryObjectSource")
        return InMemoryObjectSource()

    raise ValueError(f"Unknown media backend: {source_settings.backend}")
