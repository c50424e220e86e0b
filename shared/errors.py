"""
Shared error handling for the NASA access layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class NasaAccessError(Exception):
    """Base exception for the access layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class SemanticError(NasaAccessError):
    """Classified, caller-meaningful failure of an upstream request."""


class AuthError(SemanticError):
    """Upstream rejected the API key (401)."""

    def __init__(self, message: str = "Invalid API key", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTH_ERROR", message, details)


class ForbiddenError(SemanticError):
    """Upstream refused access (403)."""

    def __init__(self, message: str = "API access forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__("FORBIDDEN_ERROR", message, details)


class RateLimitError(SemanticError):
    """Rate limiting errors."""

    def __init__(
        self,
        message: str = "API rate limit exceeded, please try again later",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class ServerError(SemanticError):
    """Upstream server failure (500, 503)."""

    def __init__(
        self,
        message: str = "API server error, please try again later",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__("SERVER_ERROR", message, details)


class UnknownStatusError(SemanticError):
    """Any other non-2xx status."""

    def __init__(self, status: int, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.status = status
        super().__init__(
            "UNKNOWN_STATUS_ERROR",
            message or f"API error: {status}",
            {"status_code": status, **(details or {})}
        )


class NetworkError(SemanticError):
    """Request was sent but no response came back."""

    def __init__(
        self,
        message: str = "Network error - unable to reach API",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__("NETWORK_ERROR", message, details)


class ConfigError(SemanticError):
    """Request could not be constructed or sent."""

    def __init__(self, message: str = "Request configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)


class BatchDispatchError(NasaAccessError):
    """Batch fan-out could not be set up."""

    def __init__(self, message: str = "Batch request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("BATCH_DISPATCH_ERROR", message, details)
