"""
Test doubles shared by the test suite.

RecordingStore is an in-memory ObjectStore that remembers every call
made to it and can be told to fail, so tests can check both what the
gateway asked the store to do and how it reacts when the store breaks.
"""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from file_gateway.config.settings import Settings
from file_gateway.core.files.models import FileDescriptor, StoredObject
from file_gateway.infrastructure.storage.client import StorageError

TEST_BUCKET = "test-bucket"


class RecordingStore:
    """In-memory store that records calls and fails on request."""

    def __init__(
        self,
        fail_on_puts: Optional[set[int]] = None,
        fail_gets: bool = False,
        fail_lists: bool = False,
        fail_stream: bool = False,
        chunk_size: int = 4,
    ) -> None:
        self.calls: list[tuple[str, str, Optional[str]]] = []
        self.objects: dict[str, tuple[bytes, Optional[str]]] = {}
        self.fail_on_puts = fail_on_puts or set()
        self.fail_gets = fail_gets
        self.fail_lists = fail_lists
        self.fail_stream = fail_stream
        self.chunk_size = chunk_size
        self.put_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def put_calls(self) -> list[tuple[str, str, Optional[str]]]:
        return [call for call in self.calls if call[0] == "put"]

    async def list_objects(self, bucket: str) -> list[FileDescriptor]:
        self.calls.append(("list", bucket, None))
        if self.fail_lists:
            raise StorageError("List failed: access denied")
        return [
            FileDescriptor(
                file_name=key,
                last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
                size=len(data),
            )
            for key, (data, _) in self.objects.items()
        ]

    async def get_object(self, bucket: str, key: str) -> Optional[StoredObject]:
        self.calls.append(("get", bucket, key))
        if self.fail_gets:
            raise StorageError("Download failed: connection reset")
        if key not in self.objects:
            return None
        data, content_type = self.objects[key]
        return StoredObject(
            key=key,
            body=self._chunks(data),
            content_type=content_type,
            content_length=len(data),
        )

    async def _chunks(self, data: bytes) -> AsyncIterator[bytes]:
        for start in range(0, len(data), self.chunk_size):
            if self.fail_stream and start > 0:
                raise StorageError("Read failed: stream interrupted")
            yield data[start:start + self.chunk_size]

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        self.put_count += 1
        call_number = self.put_count
        self.calls.append(("put", bucket, key))

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield to the loop so concurrent puts overlap
            await asyncio.sleep(0)
            if call_number in self.fail_on_puts:
                raise StorageError(f"Upload failed: put #{call_number} rejected")
            self.objects[key] = (data, content_type)
        finally:
            self.in_flight -= 1


def make_settings(**overrides) -> Settings:
    """Settings isolated from the real environment and any .env file."""
    values = {"aws_s3_bucket_name": TEST_BUCKET, "storage_mock_mode": True}
    values.update(overrides)
    return Settings(_env_file=None, **values)
