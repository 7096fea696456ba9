"""
Error taxonomy for the storefront API.

Services raise these; the FastAPI layer renders them with a single envelope:

    {"error": "...", "code": "NOT_FOUND", "retryable": false, "details": {...}}

retryable is True for 5xx and 429 so clients can retry with backoff and
surface 4xx messages as-is.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to clients."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    SERVER_ERROR = "SERVER_ERROR"


class StorefrontError(Exception):
    """Base class for every error the API reports deliberately."""

    code = ErrorCode.SERVER_ERROR
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500 or self.status_code == 429

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
            "details": self.details,
        }


class ValidationFailed(StorefrontError):
    """Malformed or missing input. Detected before any write."""
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class NotFound(StorefrontError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class Conflict(StorefrontError):
    code = ErrorCode.CONFLICT
    status_code = 409


class PaymentDeclined(StorefrontError):
    """The processor refused the card; the message is safe to show."""
    code = ErrorCode.PAYMENT_DECLINED
    status_code = 402


class UpstreamFailure(StorefrontError):
    """Storage or payment processor failure. Message is user-safe; details are logged."""
    code = ErrorCode.UPSTREAM_FAILURE
    status_code = 503
