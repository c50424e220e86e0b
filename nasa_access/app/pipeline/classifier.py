"""
Map raw transport outcomes onto the semantic error taxonomy.
"""

from typing import Any, Optional

import httpx

from shared.errors import (
    AuthError,
    ConfigError,
    ForbiddenError,
    NetworkError,
    RateLimitError,
    SemanticError,
    ServerError,
    UnknownStatusError,
)


# Raised by httpx before anything reaches the wire.
_SETUP_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError, TypeError, ValueError)


def _upstream_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def classify_status(status: int, body: Any = None) -> SemanticError:
    """Classify a non-2xx response."""
    details = {"status_code": status}
    if status == 401:
        return AuthError(details=details)
    if status == 403:
        return ForbiddenError(details=details)
    if status == 429:
        return RateLimitError(details=details)
    if status == 500:
        return ServerError(details=details)
    if status == 503:
        return ServerError("API temporarily unavailable, please try again later", details=details)
    return UnknownStatusError(status, _upstream_message(body))


def classify_response(response: httpx.Response) -> SemanticError:
    try:
        body = response.json()
    except ValueError:
        body = None
    return classify_status(response.status_code, body)


def classify_exception(exc: BaseException) -> SemanticError:
    """Classify a failure where no response was received."""
    if isinstance(exc, SemanticError):
        return exc
    if isinstance(exc, _SETUP_ERRORS):
        return ConfigError(details={"error": str(exc), "error_type": type(exc).__name__})
    if isinstance(exc, (httpx.RequestError, OSError)):
        return NetworkError(details={"error": str(exc), "error_type": type(exc).__name__})
    return ConfigError(details={"error": str(exc), "error_type": type(exc).__name__})
