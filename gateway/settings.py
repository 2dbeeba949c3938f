"""
Configuration settings for the Chat Archive Gateway.

Manages login credentials, chat log location, remote media backend
credentials, cache directory and eviction/retry timings via environment
variables with sensible defaults.
"""

import os
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class AuthSettings:
    """Settings for the single admin login and issued tokens."""

    admin_username: str = os.getenv("ADMIN_USERNAME", "")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")

    # HS256 signing secret for bearer tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = "HS256"

    # Token lifetime (7 days)
    token_expires_days: int = int(os.getenv("JWT_EXPIRES_DAYS", "7"))


@dataclass
class ChatSettings:
    """Settings for the chat history JSON file."""

    # Downloaded once at startup when the local file is missing
    remote_url: Optional[str] = os.getenv("CHAT_JSON_REMOTE_URL", None)

    local_path: str = os.getenv("CHAT_JSON_PATH", "./chat.json")

    default_page_size: int = int(os.getenv("CHAT_PAGE_SIZE", "50"))

    # Timeout for the startup download (seconds)
    download_timeout: int = int(os.getenv("CHAT_DOWNLOAD_TIMEOUT", "30"))


@dataclass
class SourceSettings:
    """
    Settings for the remote media source.

    Supported backends:
    - 's3': S3-compatible object storage (Cloudflare R2, MinIO, AWS S3)
    - 'pcloud': pCloud consumer cloud drive
    - 'subprocess': external CLI (rclone by default)
    - 'local': Local directory, for development
    - 'memory': In-memory objects, for tests and demos
    """

    backend: str = os.getenv("MEDIA_BACKEND", "s3")

    # S3 / R2
    s3_endpoint: Optional[str] = os.getenv("R2_ENDPOINT", None)
    s3_access_key: Optional[str] = os.getenv("R2_ACCESS_KEY_ID", None)
    s3_secret_key: Optional[str] = os.getenv("R2_SECRET_ACCESS_KEY", None)
    s3_bucket: str = os.getenv("R2_BUCKET", "")
    s3_region: str = os.getenv("R2_REGION", "auto")

    # pCloud
    pcloud_username: Optional[str] = os.getenv("PCLOUD_USERNAME", None)
    pcloud_password: Optional[str] = os.getenv("PCLOUD_PASSWORD", None)
    pcloud_api_host: str = os.getenv("PCLOUD_API_HOST", "https://api.pcloud.com")
    pcloud_folder: str = os.getenv("PCLOUD_FOLDER", "/")

    # Subprocess: {key} and {destination} are substituted per fetch
    fetch_command: str = os.getenv(
        "MEDIA_FETCH_COMMAND", "rclone copyto {remote}/{key} {destination}"
    )
    rclone_remote: str = os.getenv("RCLONE_REMOTE", "remote:media")
    fetch_timeout: int = int(os.getenv("MEDIA_FETCH_TIMEOUT", "300"))

    # Local directory (for local backend)
    local_source_dir: str = os.getenv("LOCAL_SOURCE_DIR", "./media")

    # Per-request timeout for HTTP based backends (seconds)
    request_timeout: int = int(os.getenv("MEDIA_REQUEST_TIMEOUT", "60"))


@dataclass
class CacheSettings:
    """Settings for the local media cache."""

    cache_dir: str = os.getenv(
        "MEDIA_CACHE_DIR", os.path.join(tempfile.gettempdir(), "media-cache")
    )

    # Idle window before a cached file is deleted
    eviction_seconds: float = float(os.getenv("MEDIA_EVICTION_SECONDS", "10"))

    retry_attempts: int = int(os.getenv("MEDIA_RETRY_ATTEMPTS", "3"))

    # Fixed delay between attempts
    retry_backoff_seconds: float = float(
        os.getenv("MEDIA_RETRY_BACKOFF_SECONDS", "3.0")
    )


@dataclass
class APISettings:
    """Settings for FastAPI server."""

    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3333"))

    cors_origins: list = field(default_factory=lambda: _split_csv(
        os.getenv("CORS_ORIGINS", "http://localhost:3000")
    ))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    title: str = "Chat Archive Gateway"
    description: str = "Authenticated chat history and media cache gateway"
    version: str = "0.1.0"


class Settings:
    """
    Global settings container combining all configuration sections.

    Usage:
        from gateway.settings import settings
        print(settings.source.backend)
        print(settings.cache.eviction_seconds)
    """

    def __init__(self):
        self.auth = AuthSettings()
        self.chat = ChatSettings()
        self.source = SourceSettings()
        self.cache = CacheSettings()
        self.api = APISettings()

    def validate(self) -> list[str]:
        """
        Validates configuration and returns list of warnings/errors.

        Returns:
            list[str]: List of configuration issues (empty if all valid)
        """
        issues = []

        if not self.auth.jwt_secret:
            issues.append("ERROR: JWT_SECRET not set, logins will be rejected")

        if not self.auth.admin_username or not self.auth.admin_password:
            issues.append(
                "WARNING: ADMIN_USERNAME or ADMIN_PASSWORD not set, logins will be rejected"
            )

        backend = self.source.backend.lower()
        if backend == "s3" and (
            not self.source.s3_access_key
            or not self.source.s3_secret_key
            or not self.source.s3_bucket
        ):
            issues.append(
                "ERROR: S3 backend selected but R2 credentials or bucket not configured"
            )

        if backend == "pcloud" and (
            not self.source.pcloud_username or not self.source.pcloud_password
        ):
            issues.append(
                "ERROR: pCloud backend selected but credentials not configured"
            )

        if backend == "local" and not os.path.isdir(self.source.local_source_dir):
            issues.append(
                f"WARNING: Local source directory not found: {self.source.local_source_dir}"
            )

        if self.cache.eviction_seconds <= 0:
            issues.append("ERROR: MEDIA_EVICTION_SECONDS must be positive")

        if self.cache.retry_attempts < 1:
            issues.append("ERROR: MEDIA_RETRY_ATTEMPTS must be at least 1")

        if not self.chat.remote_url and not os.path.exists(self.chat.local_path):
            issues.append(
                f"WARNING: Chat log {self.chat.local_path} missing and no CHAT_JSON_REMOTE_URL set"
            )

        return issues


# Global settings instance
settings = Settings()
