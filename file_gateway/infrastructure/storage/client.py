"""
Object storage client for the file gateway.

Supports AWS S3 and any S3-compatible service (MinIO, R2, LocalStack)
through boto3, with a mock mode for local development.

boto3 is synchronous, so every call into it runs in a worker thread.
That keeps the event loop free while a download streams, and lets the
puts of a multi-file upload really run side by side.

Mock mode stores files in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.files.gateway import ObjectStore
from ...core.files.models import DEFAULT_CONTENT_TYPE, FileDescriptor, StoredObject

logger = logging.getLogger(__name__)

# Error codes S3 uses for "no such object"
_MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    The bucket is not part of the client configuration: the client is
    shared by the whole process and takes the bucket on every call.
    Credentials left as None fall through to boto3's credential chain
    (environment, shared config, instance role).
    """
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    chunk_size: int = 64 * 1024


class S3StorageClient:
    """
    S3 object storage client.

    One instance is created at start-up and reused by every request.
    boto3 clients are thread-safe, so handing calls to worker threads
    is fine.
    """

    def __init__(self, config: StorageConfig, s3_client: Any = None) -> None:
        self._config = config

        if s3_client is None:
            # One attempt per call; the gateway never retries
            boto_config = Config(
                signature_version="s3v4",
                retries={"total_max_attempts": 1},
            )

            s3_client = boto3.client(
                "s3",
                region_name=config.region,
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 storage client",
            extra={
                "region": config.region,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    async def list_objects(self, bucket: str) -> list[FileDescriptor]:
        """
        List every object in the bucket.

        Follows continuation tokens until the listing is exhausted, so
        buckets with more than one page (1000 keys) are listed in full.
        Pages without a Contents field contribute nothing.
        """
        try:
            files = await asyncio.to_thread(self._list_all, bucket)
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to list objects",
                extra={"bucket": bucket, "error": str(e)}
            )
            raise StorageError(f"List failed: {e}") from e

        logger.debug(
            "Listed objects",
            extra={"bucket": bucket, "count": len(files)}
        )

        return files

    def _list_all(self, bucket: str) -> list[FileDescriptor]:
        paginator = self._s3_client.get_paginator("list_objects_v2")

        files: list[FileDescriptor] = []
        for page in paginator.paginate(Bucket=bucket):
            for obj in page.get("Contents", []):
                files.append(FileDescriptor(
                    file_name=obj["Key"],
                    last_modified=obj["LastModified"],
                    size=obj.get("Size", 0),
                ))

        return files

    async def get_object(self, bucket: str, key: str) -> Optional[StoredObject]:
        """
        Open an object for streaming.

        Returns None when the key does not exist or the store sends back
        no body. The returned StoredObject reads the body lazily.
        """
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=bucket,
                Key=key,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _MISSING_OBJECT_CODES:
                logger.debug(
                    "Object not found",
                    extra={"bucket": bucket, "key": key}
                )
                return None
            logger.error(
                "Failed to get object",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}") from e
        except BotoCoreError as e:
            logger.error(
                "Failed to get object",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}") from e

        body = response.get("Body")
        if body is None:
            return None

        return StoredObject(
            key=key,
            body=self._iter_body(body, key),
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
        )

    async def _iter_body(self, body: Any, key: str) -> AsyncIterator[bytes]:
        """Read a botocore StreamingBody chunk by chunk."""
        try:
            while True:
                chunk = await asyncio.to_thread(body.read, self._config.chunk_size)
                if not chunk:
                    break
                yield chunk
        except (BotoCoreError, ClientError, OSError) as e:
            logger.error(
                "Error reading object body",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Read failed: {e}") from e
        finally:
            body.close()

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Upload an object. An existing object with the same key is replaced."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to put object",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}") from e

        logger.debug(
            "Put object",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)}
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockObject:
    data: bytes
    content_type: str
    last_modified: datetime


class MockStorageClient:
    """
    In-memory storage for local development.

    Keeps one dictionary per bucket. Listing returns keys in
    lexicographic order, the way S3 does.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, chunk_size: int = 64 * 1024) -> None:
        # {bucket: {key: object}}
        self._buckets: dict[str, dict[str, _MockObject]] = {}
        self._chunk_size = chunk_size
        logger.info("Initialized mock storage client (in-memory)")

    async def list_objects(self, bucket: str) -> list[FileDescriptor]:
        objects = self._buckets.get(bucket, {})
        return [
            FileDescriptor(
                file_name=key,
                last_modified=obj.last_modified,
                size=len(obj.data),
            )
            for key, obj in sorted(objects.items())
        ]

    async def get_object(self, bucket: str, key: str) -> Optional[StoredObject]:
        obj = self._buckets.get(bucket, {}).get(key)
        if obj is None:
            return None

        return StoredObject(
            key=key,
            body=self._iter_chunks(obj.data),
            content_type=obj.content_type,
            content_length=len(obj.data),
        )

    async def _iter_chunks(self, data: bytes) -> AsyncIterator[bytes]:
        for start in range(0, len(data), self._chunk_size):
            yield data[start:start + self._chunk_size]

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        self._buckets.setdefault(bucket, {})[key] = _MockObject(
            data=bytes(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            last_modified=datetime.now(timezone.utc),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory client

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        chunk_size = config.chunk_size if config else 64 * 1024
        return MockStorageClient(chunk_size=chunk_size)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
