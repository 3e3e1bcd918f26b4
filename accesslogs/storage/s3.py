"""Upload of staged access-log files to N0C object storage (S3 API)."""

import re
from pathlib import Path
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from accesslogs.writer.log_writer import LOG_FILE_SUFFIX, sanitize_domain


logger = structlog.get_logger()

DEFAULT_BASE_PATH = "private/access_logs/"
DEFAULT_STORAGE_ENDPOINT = "https://ht2-storage.n0c.com:5443"
DEFAULT_STORAGE_REGION = "ht2-storage"

_STAGED_NAME_PATTERN = re.compile(
    r"^(?P<domain>.+?)_(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})"
    + re.escape(LOG_FILE_SUFFIX)
    + r"$"
)


class StorageError(Exception):
    """Raised when the object store rejects or cannot serve a request."""

    def __init__(self, message: str, key: str | None = None) -> None:
        """Initialize the storage error.

        Args:
            message: Human-readable error message.
            key: Object key involved, if any.
        """
        super().__init__(message)
        self.message = message
        self.key = key


def build_object_key(filename: str, base_path: str = DEFAULT_BASE_PATH) -> str:
    """Map a staged file name to its object key.

    `{domain}_{YYYYMMDD}_access_logs.log` becomes
    `{base}{domain}/{YYYY}/{MM}/{YYYYMMDD}.log`; any other name is placed
    directly under the base path.
    """
    match = _STAGED_NAME_PATTERN.match(filename)
    if not match:
        return f"{base_path}{filename}"

    year, month, day = match.group("year"), match.group("month"), match.group("day")
    domain = sanitize_domain(match.group("domain"))
    return f"{base_path}{domain}/{year}/{month}/{year}{month}{day}.log"


class S3Uploader:
    """Uploads staged log files to a bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        base_path: str = DEFAULT_BASE_PATH,
    ) -> None:
        """Initialize the uploader.

        Args:
            client: boto3 S3 client.
            bucket: Destination bucket name.
            base_path: Key prefix for uploaded files.
        """
        self._client = client
        self._bucket = bucket
        self._base_path = base_path
        self._log = logger.bind(component="storage", bucket=bucket)

    @classmethod
    def from_credentials(  # noqa: PLR0913
        cls,
        access_key: str,
        secret_key: str,
        bucket: str,
        endpoint: str = DEFAULT_STORAGE_ENDPOINT,
        region: str = DEFAULT_STORAGE_REGION,
        verify_ssl: bool = False,
        base_path: str = DEFAULT_BASE_PATH,
    ) -> "S3Uploader":
        """Build an uploader with a path-style boto3 client.

        Args:
            access_key: Storage access key.
            secret_key: Storage secret key.
            bucket: Destination bucket name.
            endpoint: S3-compatible endpoint URL.
            region: Region name expected by the endpoint.
            verify_ssl: Whether to verify the endpoint certificate.
            base_path: Key prefix for uploaded files.
        """
        boto_config = Config(
            region_name=region,
            s3={"addressing_style": "path"},
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=10,
            read_timeout=60,
        )
        client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            verify=verify_ssl,
            config=boto_config,
        )
        return cls(client=client, bucket=bucket, base_path=base_path)

    def test_connection(self) -> list[str]:
        """List buckets visible to the credentials.

        Raises:
            StorageError: If the listing fails.
        """
        try:
            response = self._client.list_buckets()
        except (BotoCoreError, ClientError) as e:
            msg = f"Error connecting to object storage: {e}"
            raise StorageError(msg) from e

        names = [bucket["Name"] for bucket in response.get("Buckets", [])]
        self._log.info("storage_connected", buckets=names)
        return names

    def upload_file(self, path: Path) -> str:
        """Upload one staged file.

        Args:
            path: Local file path.

        Returns:
            The object key written.

        Raises:
            StorageError: If the upload fails.
        """
        key = build_object_key(path.name, self._base_path)
        body = path.read_bytes()

        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType="text/plain; charset=utf-8",
            )
        except (BotoCoreError, ClientError) as e:
            msg = f"Failed to upload {path.name} to {key}: {e}"
            raise StorageError(msg, key=key) from e

        self._log.info("file_uploaded", path=str(path), key=key, bytes=len(body))
        return key
