"""
Shared error handling for the GitGate release gateway.
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


class GatewayException(Exception):
    """Base exception for the gateway."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(GatewayException):
    """Operator misconfiguration. Fatal at startup, loud at first use."""

    status_code = 500

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class AuthenticationError(GatewayException):
    """Device trust could not be established."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class RateLimitError(GatewayException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limited", details: Optional[Dict[str, Any]] = None,
                 retry_after: Optional[int] = None):
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        super().__init__("RATE_LIMIT_ERROR", message, details, headers=headers)


class UpstreamNotFoundError(GatewayException):
    """Repository, release or asset does not exist upstream."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class UpstreamTransferError(GatewayException):
    """Upstream transfer failed; the caller may retry."""

    status_code = 500

    def __init__(self, message: str = "Upstream transfer failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_TRANSFER_ERROR", message, details)


class SigningUnavailableError(GatewayException):
    """Signing key could not be loaded. Only ever degrades the response."""

    status_code = 500

    def __init__(self, message: str = "Signing unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("SIGNING_UNAVAILABLE", message, details)
