"""
HazardCast Exceptions Module.

Error taxonomy for the aggregation engine:
- ValidationError: bad input, fatal, never retryable
- ExternalSourceError: a single provider failed, recorded, optionally retryable
- RateLimitError: a provider throttled us, transient, carries retry-after
- AggregationError: composition itself failed, the only kind that aborts assess()

Per-source failures are caught at the fan-out boundary and never escape
as exceptions.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})


def is_retryable_status(status: Optional[int]) -> bool:
    """Whether an HTTP status indicates a transient provider failure."""
    if status is None:
        return False
    return status in RETRYABLE_STATUS_CODES


# ============================================================================
# ERROR CODES
# ============================================================================


class ErrorCode(str, Enum):
    """Engine error codes."""

    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"

    RATE_LIMIT_EXCEEDED = "E3000"

    EXTERNAL_SOURCE_ERROR = "E5000"

    AGGREGATION_ERROR = "E6100"


class ErrorDetail(BaseModel):
    """Serializable error information."""

    code: str
    message: str
    retryable: bool = False
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


# ============================================================================
# BASE EXCEPTION
# ============================================================================


class HazardCastError(Exception):
    """Base exception for the aggregation engine."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.retryable = retryable
        self.details = details or {}
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to a plain error payload."""
        return ErrorDetail(
            code=self.code.value,
            message=self.message,
            retryable=self.retryable,
            field=self.field,
            details=self.details,
        ).model_dump()


# ============================================================================
# SPECIFIC EXCEPTIONS
# ============================================================================


class ValidationError(HazardCastError):
    """Invalid caller input (coordinates, hazard types)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            retryable=False,
            field=field,
            details=details,
        )


class ExternalSourceError(HazardCastError):
    """A single hazard-data provider failed."""

    def __init__(
        self,
        source: str,
        message: str,
        retryable: Optional[bool] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.EXTERNAL_SOURCE_ERROR,
    ):
        if retryable is None:
            retryable = is_retryable_status(status)
        self.source = source
        self.status = status
        super().__init__(
            message=f"External source error ({source}): {message}",
            code=code,
            retryable=retryable,
            details={"source": source, "status": status, **(details or {})},
        )


class RateLimitError(ExternalSourceError):
    """Provider rejected the request because of its rate limit."""

    def __init__(
        self,
        source: str,
        message: str = "rate limit exceeded",
        retry_after_seconds: Optional[float] = None,
    ):
        self.retry_after_seconds = retry_after_seconds
        details = {}
        if retry_after_seconds is not None:
            details["retry_after_seconds"] = retry_after_seconds
        super().__init__(
            source=source,
            message=message,
            retryable=True,
            status=429,
            details=details,
            code=ErrorCode.RATE_LIMIT_EXCEEDED,
        )


class AggregationError(HazardCastError):
    """Composing the assessment failed unexpectedly."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        details = {}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(
            message=message,
            code=ErrorCode.AGGREGATION_ERROR,
            retryable=True,
            details=details,
        )
