"""
Error taxonomy for file requests.

Each error knows the HTTP status and the plain-text message the client
should see. The message is intentionally generic; the detail that
explains what went wrong goes to the logs (via the exception chain),
not to the client.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every error a file request can end with."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None) -> None:
        self.message = message or self.default_message
        # detail is for logs only
        self.detail = detail
        super().__init__(detail or self.message)


class ConfigurationError(GatewayError):
    """Required configuration (the bucket name) is missing."""
    status_code = 500
    default_message = "Internal server error"


class ClientError(GatewayError):
    """The request payload is missing or malformed."""
    status_code = 400
    default_message = "Bad request"


class NotFoundError(GatewayError):
    """The requested object, or any object at all, does not exist."""
    status_code = 404
    default_message = "Not found"


class BackendError(GatewayError):
    """The object store, or a stream coming from it, failed."""
    status_code = 500
    default_message = "Error processing request"
