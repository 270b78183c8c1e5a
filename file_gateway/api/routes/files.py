"""
File API endpoints.

Four endpoints, each a thin wrapper around FileGateway:
- GET  /download/{filename}  stream one file back to the client
- GET  /list-files           list the whole bucket as JSON
- POST /upload               store one file (multipart field "file")
- POST /upload-multiple      store several files (multipart field "files")

Handlers don't catch gateway errors. GatewayError subclasses bubble up
to the exception handler registered in main.py, which logs them and
turns them into plain-text responses.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ...core.files.models import DEFAULT_CONTENT_TYPE, FileDescriptor, UploadedFile
from ..dependencies import FileGatewayDep

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    500: {"description": "Storage or configuration error", "content": {"text/plain": {}}},
}


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class FileEntry(BaseModel):
    """One file in a bucket listing."""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName", description="Object key")
    last_modified: datetime = Field(alias="lastModified", description="Last modification time")
    size: int = Field(description="Object size in bytes")

    @classmethod
    def from_descriptor(cls, descriptor: FileDescriptor) -> "FileEntry":
        return cls(
            file_name=descriptor.file_name,
            last_modified=descriptor.last_modified,
            size=descriptor.size,
        )


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header for a filename.

    The filename is passed through verbatim. Names that can't travel in
    a latin-1 header use the RFC 6266 extended form instead.
    """
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(filename, safe='')}"
    return f"attachment; filename={filename}"


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Decode a multipart file part. Parts without a filename count as absent."""
    if upload is None or not upload.filename:
        return None

    content = await upload.read()
    return UploadedFile(
        original_name=upload.filename,
        mime_type=upload.content_type or DEFAULT_CONTENT_TYPE,
        content=content,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/download/{filename}",
    response_class=StreamingResponse,
    summary="Download a file",
    description="Stream a file from the bucket as an attachment",
    responses={
        200: {"content": {"application/octet-stream": {}}},
        404: {"description": "File not found", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
)
async def download_file(filename: str, gateway: FileGatewayDep) -> StreamingResponse:
    """
    Stream a file to the client.

    Content-Type comes from the store unchanged. Bytes are forwarded as
    they arrive; nothing is buffered or kept locally.
    """
    download = await gateway.download(filename)

    headers = {
        "Content-Type": download.content_type,
        "Content-Disposition": content_disposition(filename),
    }
    if download.content_length is not None:
        headers["Content-Length"] = str(download.content_length)

    return StreamingResponse(
        download.iter_bytes(),
        status_code=status.HTTP_200_OK,
        headers=headers,
    )


@router.get(
    "/list-files",
    response_model=list[FileEntry],
    summary="List files",
    description="List every file in the bucket",
    responses={
        404: {"description": "Bucket holds no files", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
)
async def list_files(gateway: FileGatewayDep) -> list[FileEntry]:
    """
    List the bucket.

    An empty bucket is reported as 404, never as an empty array.
    """
    files = await gateway.list_files()
    return [FileEntry.from_descriptor(descriptor) for descriptor in files]


@router.post(
    "/upload",
    response_class=PlainTextResponse,
    summary="Upload a file",
    description="Store one file under its original name, replacing any existing file",
    responses={
        400: {"description": "No file uploaded", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
)
async def upload_file(
    gateway: FileGatewayDep,
    file: Annotated[Optional[UploadFile], File(description="File to store")] = None,
) -> PlainTextResponse:
    uploaded = await read_upload(file)

    await gateway.upload(uploaded)

    return PlainTextResponse("File uploaded successfully")


@router.post(
    "/upload-multiple",
    response_class=PlainTextResponse,
    summary="Upload several files",
    description="Store up to ten files concurrently, each under its original name",
    responses={
        400: {"description": "No files, or too many files", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
)
async def upload_multiple_files(
    gateway: FileGatewayDep,
    files: Annotated[Optional[list[UploadFile]], File(description="Files to store")] = None,
) -> PlainTextResponse:
    """
    Store several files at once.

    All-or-nothing from the client's point of view: if any file fails
    the response is a single 500, even though the other files may
    already be stored.
    """
    files = files or []
    gateway.check_batch_size(len(files))

    uploaded: list[UploadedFile] = []
    for upload in files:
        decoded = await read_upload(upload)
        if decoded is not None:
            uploaded.append(decoded)

    result = await gateway.upload_many(uploaded)

    logger.debug(
        "Batch upload complete",
        extra={"files": [outcome.file_name for outcome in result.outcomes]}
    )

    return PlainTextResponse("All files uploaded successfully")
