"""Unit tests for object storage upload."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from accesslogs.storage.s3 import S3Uploader, StorageError, build_object_key


def _client_error(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation
    )


class TestBuildObjectKey:
    """Tests for object key layout."""

    def test_staged_file(self) -> None:
        """Staged names map to domain/year/month/day keys."""
        key = build_object_key("example.com_20251023_access_logs.log")

        assert key == "private/access_logs/example.com/2025/10/20251023.log"

    def test_domain_with_underscores(self) -> None:
        """The date is taken from the end of the name."""
        key = build_object_key("my_site.org_20240101_access_logs.log", "logs/")

        assert key == "logs/my_site.org/2024/01/20240101.log"

    def test_other_names_under_base(self) -> None:
        """Unrecognized names are placed directly under the base path."""
        assert build_object_key("notes.txt") == "private/access_logs/notes.txt"


class TestS3Uploader:
    """Tests for S3Uploader."""

    def test_upload_file(self, tmp_path: Path) -> None:
        """The file body is put under its computed key."""
        path = tmp_path / "a.com_20251023_access_logs.log"
        path.write_text("line", encoding="utf-8")
        client = MagicMock()
        uploader = S3Uploader(client=client, bucket="bucket-1")

        key = uploader.upload_file(path)

        assert key == "private/access_logs/a.com/2025/10/20251023.log"
        client.put_object.assert_called_once()
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "bucket-1"
        assert kwargs["Key"] == key
        assert kwargs["Body"] == b"line"

    def test_upload_failure(self, tmp_path: Path) -> None:
        """Client errors become StorageError carrying the key."""
        path = tmp_path / "a.com_20251023_access_logs.log"
        path.write_text("line", encoding="utf-8")
        client = MagicMock()
        client.put_object.side_effect = _client_error("PutObject")
        uploader = S3Uploader(client=client, bucket="bucket-1")

        with pytest.raises(StorageError) as exc_info:
            uploader.upload_file(path)

        assert exc_info.value.key == "private/access_logs/a.com/2025/10/20251023.log"

    def test_connection(self) -> None:
        """Bucket names are listed."""
        client = MagicMock()
        client.list_buckets.return_value = {"Buckets": [{"Name": "bucket-1"}]}

        assert S3Uploader(client=client, bucket="bucket-1").test_connection() == [
            "bucket-1"
        ]

    def test_connection_failure(self) -> None:
        """A listing failure is a StorageError."""
        client = MagicMock()
        client.list_buckets.side_effect = _client_error("ListBuckets")

        with pytest.raises(StorageError):
            S3Uploader(client=client, bucket="bucket-1").test_connection()

    def test_from_credentials_uses_path_style(self) -> None:
        """The boto3 client targets the endpoint with path-style addressing."""
        with patch("accesslogs.storage.s3.boto3.client") as make_client:
            S3Uploader.from_credentials(
                access_key="AK",
                secret_key="SK",
                bucket="bucket-1",
                endpoint="https://storage.example.test:5443",
                region="ht2-storage",
            )

        args, kwargs = make_client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "https://storage.example.test:5443"
        assert kwargs["aws_access_key_id"] == "AK"
        assert kwargs["aws_secret_access_key"] == "SK"
        assert kwargs["verify"] is False
        assert kwargs["config"].region_name == "ht2-storage"
        assert kwargs["config"].s3 == {"addressing_style": "path"}
