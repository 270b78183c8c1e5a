"""
File gateway logic.

Contains the gateway service, its domain models and the error taxonomy.
"""

from .errors import (
    BackendError,
    ClientError,
    ConfigurationError,
    GatewayError,
    NotFoundError,
)
from .gateway import FileDownload, FileGateway, ObjectStore
from .models import (
    DEFAULT_CONTENT_TYPE,
    BatchUploadResult,
    FileDescriptor,
    StoredObject,
    UploadedFile,
    UploadOutcome,
)

__all__ = [
    "BackendError",
    "ClientError",
    "ConfigurationError",
    "GatewayError",
    "NotFoundError",
    "FileDownload",
    "FileGateway",
    "ObjectStore",
    "DEFAULT_CONTENT_TYPE",
    "BatchUploadResult",
    "FileDescriptor",
    "StoredObject",
    "UploadedFile",
    "UploadOutcome",
]
