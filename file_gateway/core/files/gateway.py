"""
The file gateway service.

Translates the four file operations (list, download, upload, upload
many) into object store calls. Like the rest of `core`, it doesn't know
about HTTP: it raises GatewayError subclasses and the API layer decides
how they look on the wire.

Every operation checks the bucket first. When the bucket is not
configured, the operation stops right there, before validating the
payload and before touching the store.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Sequence

from .errors import BackendError, ClientError, ConfigurationError, NotFoundError
from .models import (
    BatchUploadResult,
    FileDescriptor,
    StoredObject,
    UploadedFile,
    UploadOutcome,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Interface for the object store behind the gateway.

    The gateway doesn't care whether this is S3, an S3-compatible
    service or an in-memory mock. Implementations raise on failure;
    the gateway turns any such failure into a BackendError.
    """

    async def list_objects(self, bucket: str) -> list[FileDescriptor]:
        """List every object in the bucket, in store order."""
        ...

    async def get_object(self, bucket: str, key: str) -> Optional[StoredObject]:
        """Open an object for reading. Returns None if it doesn't exist."""
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Store an object, overwriting any object with the same key."""
        ...


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

@dataclass
class FileDownload:
    """
    A download that is ready to be streamed.

    The first chunk has already been read from the store, so a stream
    that fails straight away is reported before any response is sent.
    """
    file_name: str
    content_type: str
    content_length: Optional[int]
    first_chunk: bytes
    remaining: AsyncIterator[bytes]

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the object's bytes, unmodified."""
        if self.first_chunk:
            yield self.first_chunk
        try:
            async for chunk in self.remaining:
                yield chunk
        except Exception as e:
            # Headers are gone by now; all we can do is log and abort
            logger.error(
                "Error streaming file from storage",
                extra={"file_name": self.file_name, "error": str(e)},
                exc_info=e,
            )
            raise BackendError("Error reading file", detail=str(e)) from e


# ---------------------------------------------------------------------------
# Gateway Service
# ---------------------------------------------------------------------------

class FileGateway:
    """
    File operations over a single bucket.

    Built once at start-up with the shared store client and an
    immutable view of the configuration. Holds no per-request state,
    so one instance serves every request concurrently.
    """

    def __init__(
        self,
        store: ObjectStore,
        bucket_name: Optional[str],
        max_upload_files: int = 10,
    ) -> None:
        self._store = store
        self._bucket_name = bucket_name
        self._max_upload_files = max_upload_files

    @property
    def is_configured(self) -> bool:
        return bool(self._bucket_name)

    def _require_bucket(self) -> str:
        if not self._bucket_name:
            logger.error("Bucket name is not defined in environment variables")
            raise ConfigurationError(detail="AWS_S3_BUCKET_NAME is not set")
        return self._bucket_name

    def check_batch_size(self, count: int) -> None:
        """
        Reject a batch that is over the file limit.

        Lets the API layer refuse an oversized batch before reading any
        part into memory. The bucket is still checked first.
        """
        self._require_bucket()

        if count > self._max_upload_files:
            raise ClientError(
                "Too many files uploaded",
                detail=f"{count} files sent, limit is {self._max_upload_files}",
            )

    async def list_files(self) -> list[FileDescriptor]:
        """
        List every file in the bucket.

        Raises NotFoundError when the bucket holds nothing; callers
        never see an empty list.
        """
        bucket = self._require_bucket()

        try:
            files = await self._store.list_objects(bucket)
        except Exception as e:
            raise BackendError("Error listing files", detail=str(e)) from e

        if not files:
            raise NotFoundError("No files found", detail=f"bucket {bucket} is empty")

        logger.info(
            "Listed files",
            extra={"bucket": bucket, "count": len(files)}
        )

        return files

    async def download(self, file_name: str) -> FileDownload:
        """
        Open a file for streaming to the client.

        The object is fetched and its first chunk read here; the rest
        is pulled from the store as the response is written.
        """
        bucket = self._require_bucket()

        if not file_name:
            raise ClientError("No file name given")

        try:
            stored = await self._store.get_object(bucket, file_name)
        except Exception as e:
            raise BackendError("Error processing request", detail=str(e)) from e

        if stored is None:
            logger.warning(
                "No readable stream returned from storage",
                extra={"bucket": bucket, "file_name": file_name}
            )
            raise NotFoundError("File not found", detail=f"{file_name} not found in {bucket}")

        body = aiter(stored.body)
        try:
            first_chunk = await anext(body, b"")
        except Exception as e:
            raise BackendError("Error reading file", detail=str(e)) from e

        logger.info(
            "Streaming file",
            extra={
                "bucket": bucket,
                "file_name": file_name,
                "content_type": stored.media_type,
                "size_bytes": stored.content_length,
            }
        )

        return FileDownload(
            file_name=file_name,
            content_type=stored.media_type,
            content_length=stored.content_length,
            first_chunk=first_chunk,
            remaining=body,
        )

    async def upload(self, file: Optional[UploadedFile]) -> None:
        """Store one file under its original name, overwriting silently."""
        bucket = self._require_bucket()

        if file is None:
            raise ClientError("No file uploaded")

        try:
            await self._put(bucket, file)
        except Exception as e:
            raise BackendError("Error uploading file", detail=str(e)) from e

        logger.info(
            "Uploaded file",
            extra={
                "bucket": bucket,
                "file_name": file.original_name,
                "size_bytes": file.size,
            }
        )

    async def upload_many(self, files: Optional[Sequence[UploadedFile]]) -> BatchUploadResult:
        """
        Store several files concurrently.

        Every put is started before any is awaited. If one or more fail
        the whole batch is reported as one BackendError; files that did
        make it into the bucket stay there.
        """
        bucket = self._require_bucket()

        if not files:
            raise ClientError("No files uploaded")

        self.check_batch_size(len(files))

        results = await asyncio.gather(
            *(self._put(bucket, file) for file in files),
            return_exceptions=True,
        )

        result = BatchUploadResult(outcomes=[
            UploadOutcome(
                file_name=file.original_name,
                error=outcome if isinstance(outcome, BaseException) else None,
            )
            for file, outcome in zip(files, results)
        ])

        if not result.ok:
            for outcome in result.failed:
                logger.error(
                    "Failed to upload file in batch",
                    extra={
                        "bucket": bucket,
                        "file_name": outcome.file_name,
                        "error": str(outcome.error),
                    }
                )
            first_error = result.failed[0].error
            raise BackendError(
                "Error uploading files",
                detail=(
                    f"{len(result.failed)} of {len(result.outcomes)} uploads failed; "
                    f"{len(result.succeeded)} stored"
                ),
            ) from first_error

        logger.info(
            "Uploaded files",
            extra={"bucket": bucket, "count": len(result.outcomes)}
        )

        return result

    async def _put(self, bucket: str, file: UploadedFile) -> None:
        await self._store.put_object(
            bucket,
            file.original_name,
            file.content,
            file.mime_type,
        )
