"""
Error taxonomy for Upscale Juicer.

Every failure that can reach presentation is one of the exceptions below. The
gateway client is the only place that builds them from raw transport failures,
so ``str(error)`` is always the human-readable message to show the user.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Transport errors (1xxx)
    UNREACHABLE = "NET_1001"

    # Backend errors (2xxx)
    SERVER_ERROR = "API_2001"
    MALFORMED_RESPONSE = "API_2002"

    # Client-side validation (3xxx)
    VALIDATION_REJECTED = "VAL_3001"
    FILE_INVALID_TYPE = "VAL_3002"
    FILE_TOO_LARGE = "VAL_3003"

    # Local file errors (4xxx)
    DOWNLOAD_FAILED = "FILE_4001"

    # Internal errors (9xxx)
    INTERNAL_UNEXPECTED = "INT_9999"


class UpscalerError(Exception):
    """Base exception with error code support.

    Example:
        raise UpscalerError(
            code=ErrorCode.SERVER_ERROR,
            message="Model not loaded",
            details={"status": 503},
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        super().__init__(message)


class Unreachable(UpscalerError):
    """No response reached the client (connection refused, DNS, timeout)."""

    def __init__(self, origin: str, message: str, cause: Exception | None = None):
        super().__init__(code=ErrorCode.UNREACHABLE, message=message, details={"origin": origin}, cause=cause)
        self.origin = origin


class ServerError(UpscalerError):
    """Backend answered with a non-2xx status."""

    def __init__(self, status: int, message: str, detail: Any | None = None):
        super().__init__(
            code=ErrorCode.SERVER_ERROR,
            message=message,
            details={"status": status, "detail": detail},
        )
        self.status = status
        self.detail = detail


class Malformed(UpscalerError):
    """Backend answered 2xx but the body is missing expected fields."""

    def __init__(self, message: str, body: Any | None = None, cause: Exception | None = None):
        super().__init__(code=ErrorCode.MALFORMED_RESPONSE, message=message, details={"body": body}, cause=cause)


class ValidationRejected(UpscalerError):
    """A selected file failed client-side type or size validation."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.VALIDATION_REJECTED, **details: Any):
        super().__init__(code=code, message=message, details=details or None)


class DownloadFailed(UpscalerError):
    """Fetching or saving a result file did not succeed."""

    def __init__(self, target: str, cause: Exception | None = None):
        super().__init__(
            code=ErrorCode.DOWNLOAD_FAILED,
            message=f"Failed to download image {target}",
            details={"target": target},
            cause=cause,
        )
        self.target = target


__all__ = [
    "DownloadFailed",
    "ErrorCode",
    "Malformed",
    "ServerError",
    "Unreachable",
    "UpscalerError",
    "ValidationRejected",
]
