"""
Domain models for the file gateway.

These models describe files as the gateway sees them. They have no
dependencies on FastAPI, boto3 or any wire format: the API layer turns
them into JSON and HTTP headers, the storage layer fills them from
whatever the object store returns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FileDescriptor:
    """
    One entry of a bucket listing.

    Produced per list request and never persisted.
    """
    file_name: str
    last_modified: datetime
    size: int

    def __post_init__(self) -> None:
        if not self.file_name:
            raise ValueError("File name cannot be empty")
        if self.size < 0:
            raise ValueError("File size cannot be negative")


@dataclass(frozen=True)
class UploadedFile:
    """
    A file decoded from a multipart request body.

    Lives for the duration of one request; discarded once the
    storage call completes.
    """
    original_name: str
    mime_type: str
    content: bytes

    def __post_init__(self) -> None:
        if not self.original_name:
            raise ValueError("Uploaded file must have a name")

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StoredObject:
    """
    A readable object returned by the store.

    `body` is consumed at most once; it yields the object's bytes in
    chunks as they arrive from the store.
    """
    key: str
    body: AsyncIterator[bytes]
    content_type: Optional[str] = None
    content_length: Optional[int] = None

    @property
    def media_type(self) -> str:
        """Content type to send to the client."""
        return self.content_type or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class UploadOutcome:
    """Result of storing a single file as part of a batch."""
    file_name: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchUploadResult:
    """
    Per-file outcomes of a multi-file upload.

    Outcomes keep the order the files arrived in, even though the
    puts themselves run concurrently.
    """
    outcomes: list[UploadOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[UploadOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[UploadOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        """True when every file was stored."""
        return not self.failed
