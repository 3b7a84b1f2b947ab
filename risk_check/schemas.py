"""
Pydantic Schemas for the check response envelope.

Every response is wrapped as {meta, data} on success or {meta, error} on
failure. Field names serialize in camelCase.
"""

import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from risk_check.exceptions import InvalidInputError, RateLimitError


# =============================================================
# ENUMS
# =============================================================

class ErrorCodeEnum(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    UNCLASSIFIABLE_ENTITY = "UNCLASSIFIABLE_ENTITY"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================
# ENVELOPE SCHEMAS
# =============================================================

class ResponseMeta(BaseModel):
    """Request metadata attached to every response."""
    request_id: str = Field(alias="requestId")
    timestamp: datetime
    processing_time_ms: float = Field(alias="processingTimeMs")

    class Config:
        populate_by_name = True


class ErrorBody(BaseModel):
    code: ErrorCodeEnum
    message: str
    retry_after: Optional[int] = Field(default=None, alias="retryAfter")

    class Config:
        populate_by_name = True


class SuccessEnvelope(BaseModel):
    meta: ResponseMeta
    data: Any

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ErrorEnvelope(BaseModel):
    meta: ResponseMeta
    error: ErrorBody

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


MAX_BATCH_SIZE = 50


class BatchCheckRequest(BaseModel):
    """Body of a batch check request."""
    entities: List[str] = Field(min_length=1, max_length=MAX_BATCH_SIZE)


# =============================================================
# HELPERS
# =============================================================

def build_meta(started_at: float, request_id: Optional[str] = None) -> ResponseMeta:
    """
    Build response metadata.

    Args:
        started_at: time.perf_counter() value taken when the request began
        request_id: Caller-supplied request ID; generated when missing
    """
    return ResponseMeta(
        request_id=request_id or str(uuid.uuid4()),
        timestamp=datetime.utcnow(),
        processing_time_ms=round((time.perf_counter() - started_at) * 1000, 2),
    )


def success_envelope(
    data: Any,
    started_at: float,
    request_id: Optional[str] = None,
) -> SuccessEnvelope:
    """Wrap a payload (anything with to_dict(), or plain JSON data)."""
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    return SuccessEnvelope(meta=build_meta(started_at, request_id), data=payload)


def error_status(exc: Exception) -> int:
    """HTTP-equivalent status for an error."""
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, RateLimitError):
        return 429
    return 500


def error_envelope(
    exc: Exception,
    started_at: float,
    request_id: Optional[str] = None,
) -> ErrorEnvelope:
    """
    Wrap an error.

    Input errors keep their own code and message. Anything else is reported
    as INTERNAL_ERROR without leaking internals.
    """
    if isinstance(exc, InvalidInputError):
        body = ErrorBody(code=ErrorCodeEnum(exc.code), message=exc.message)
    elif isinstance(exc, RateLimitError):
        body = ErrorBody(
            code=ErrorCodeEnum.RATE_LIMITED,
            message=exc.message,
            retry_after=exc.retry_after_seconds,
        )
    else:
        body = ErrorBody(
            code=ErrorCodeEnum.INTERNAL_ERROR,
            message="Failed to check entity",
        )
    return ErrorEnvelope(meta=build_meta(started_at, request_id), error=body)
