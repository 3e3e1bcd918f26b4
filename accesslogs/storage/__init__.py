"""Object-storage upload of staged access logs."""

from accesslogs.storage.s3 import S3Uploader, StorageError, build_object_key


__all__ = [
    "S3Uploader",
    "StorageError",
    "build_object_key",
]
