"""
S3-compatible object storage source (Cloudflare R2, MinIO, AWS S3).
"""

import logging
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ParamValidationError,
    PartialCredentialsError,
)

from gateway.errors import BackendUnavailable, ObjectNotFound, TransientFetchError
from gateway.storage.core import ObjectSource

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}

# Credential, permission and bucket problems will not fix themselves
UNAVAILABLE_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "InvalidToken",
    "ExpiredToken",
    "NoSuchBucket",
    "InvalidBucketName",
    "AuthorizationHeaderMalformed",
    "401",
    "403",
}

THROTTLE_CODES = {"SlowDown", "Throttling", "ThrottlingException", "RequestTimeout", "InternalError", "ServiceUnavailable"}


class S3ObjectSource(ObjectSource):
    """
    Fetches objects with a single GetObject request per attempt.

    botocore's built-in retries are turned off; the gateway's retry policy
    is the only retry layer.
    """

    name = "s3"

    CHUNK_SIZE = 1024 * 1024

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "auto",
        timeout: int = 60,
        client=None,
    ):
        """
        Initialize S3 source.

        Args:
            bucket: Bucket holding the media objects
            endpoint_url: e.g. https://<accountid>.r2.cloudflarestorage.com
            access_key: Access key id
            secret_key: Secret access key
            region: Region name ('auto' for R2)
            timeout: Connect/read timeout in seconds
            client: Pre-built boto3 S3 client (tests)
        """
        self.bucket = bucket

        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(
                    retries={"max_attempts": 1, "mode": "standard"},
                    connect_timeout=timeout,
                    read_timeout=timeout,
                ),
            )
        self.client = client

    def fetch(self, key: str, destination: Path) -> None:
        if not self.bucket:
            raise BackendUnavailable("S3 bucket not configured", key=key)

        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"]
            try:
                with open(destination, "wb") as f:
                    for chunk in body.iter_chunks(self.CHUNK_SIZE):
                        f.write(chunk)
            finally:
                body.close()
        except ClientError as e:
            raise self._classify(e, key) from e
        except (NoCredentialsError, PartialCredentialsError, ParamValidationError) as e:
            raise BackendUnavailable(f"S3 configuration error: {e}", key=key) from e
        except BotoCoreError as e:
            raise TransientFetchError(f"S3 request failed: {e}", key=key) from e

        logger.debug(f"S3: fetched {key} from {self.bucket}")

    def _classify(self, error: ClientError, key: str):
        code = str(error.response.get("Error", {}).get("Code", ""))
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0

        if code in UNAVAILABLE_CODES or status in (401, 403):
            return BackendUnavailable(f"S3 rejected request ({code or status})", key=key)

        if code in NOT_FOUND_CODES or status == 404:
            return ObjectNotFound(f"No such object in {self.bucket}: {key}", key=key)

        if code in THROTTLE_CODES or status == 429 or status >= 500:
            return TransientFetchError(f"S3 error {code or status}", key=key)

        return BackendUnavailable(f"Unexpected S3 error {code or status}", key=key)
