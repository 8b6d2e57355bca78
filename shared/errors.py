"""
Shared error handling for the Market Dashboard Gateway.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(extra="allow")

    error: str
    detail: Optional[Any] = None


class GatewayError(Exception):
    """Base exception for gateway failures that map onto an HTTP status."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message, **self.details)

    def to_body(self) -> Dict[str, Any]:
        """JSON body sent to the caller."""
        return self.to_response().model_dump(exclude_none=True)


class ConfigurationError(GatewayError):
    """A required credential or setting is missing on the server."""

    status_code = 500

    def __init__(self, message: str = "Server misconfigured", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ValidationError(GatewayError):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class PayloadTooLargeError(GatewayError):
    """Request payload or message exceeds the accepted size."""

    status_code = 413

    def __init__(self, message: str = "Payload too large", details: Optional[Dict[str, Any]] = None):
        super().__init__("PAYLOAD_TOO_LARGE", message, details)


class RouteNotFoundError(GatewayError):
    """No API route matches the request path."""

    status_code = 404

    def __init__(self, message: str = "Not Found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class MethodNotAllowedError(GatewayError):
    """The route exists but does not accept the request method."""

    status_code = 405

    def __init__(self, message: str = "Method Not Allowed", details: Optional[Dict[str, Any]] = None):
        super().__init__("METHOD_NOT_ALLOWED", message, details)


class StorageNotConfiguredError(GatewayError):
    """Portfolio storage has no connection string."""

    status_code = 501

    def __init__(
        self,
        message: str = "Portfolio storage not configured (MONGODB_URI missing)",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("STORAGE_NOT_CONFIGURED", message, details)


class StorageError(GatewayError):
    """Document store could not be reached or rejected an operation."""

    status_code = 500

    def __init__(self, message: str = "Storage error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_ERROR", message, details)


class RateLimitError(GatewayError):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, retry_after_seconds: int, message: str = "Rate limit exceeded"):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            "RATE_LIMIT_ERROR",
            message,
            {"retryAfterSeconds": retry_after_seconds},
        )
