# agri_dashboard/errors.py
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base error rendered as ``{"error": message, "details": ...}``."""

    status_code = 500

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class MissingParameter(ApiError):
    status_code = 400


class InvalidParameter(MissingParameter):
    """Present but unusable input, e.g. an out-of-range coordinate."""


class MisconfiguredService(ApiError):
    pass


class UpstreamError(ApiError):
    """A third-party provider call failed (transport, status or parse)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message, details if details is not None else message)
        self.provider = provider
        self.upstream_status = status_code


def wrap_failure(message: str, exc: Exception) -> ApiError:
    """Re-label a failure with the endpoint's own message, keeping upstream details."""
    if isinstance(exc, ApiError):
        logger.error("%s: %s", message, exc.details if exc.details is not None else exc.message)
    else:
        logger.exception(message)
    if isinstance(exc, (MissingParameter, MisconfiguredService)):
        return exc
    if isinstance(exc, ApiError):
        details = exc.details if exc.details is not None else exc.message
        return ApiError(message, details)
    return ApiError(message, str(exc))
