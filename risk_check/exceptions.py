"""
Risk Check Exceptions.

Only input errors (InvalidInputError and its subclass) ever reach the caller
of a check. Provider errors are caught by the invoker, recorded as incidents,
and the provider's signal is left out of the result.
"""

from datetime import datetime
from typing import Any, Optional


class RiskCheckError(Exception):
    """Root of the risk check error tree."""

    code = "RISK_CHECK_ERROR"

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider_name = provider_name
        self.original_error = original_error
        self.context = context or {}
        self.raised_at = datetime.utcnow()

    def details(self) -> dict[str, Any]:
        """Subclass-specific fields merged into to_dict()."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        data = {
            "code": self.code,
            "error": self.__class__.__name__,
            "message": self.message,
            "provider": self.provider_name,
            "cause": repr(self.original_error) if self.original_error else None,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }
        data.update(self.details())
        return data

    def __str__(self) -> str:
        text = self.message
        if self.provider_name:
            text = f"[{self.provider_name}] {text}"
        if self.original_error:
            text = f"{text} (caused by: {self.original_error})"
        return text


# ─────────────────────────────────────────────────────────────
# Input errors
# ─────────────────────────────────────────────────────────────

class InvalidInputError(RiskCheckError):
    """The raw entity string is empty or unusable."""

    code = "INVALID_INPUT"

    def __init__(
        self,
        message: str,
        raw_value: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.raw_value = raw_value

    def details(self) -> dict[str, Any]:
        return {"raw_value": self.raw_value}


class UnclassifiableEntityError(InvalidInputError):
    """Not an address, email, Twitter handle or domain."""

    code = "UNCLASSIFIABLE_ENTITY"


# ─────────────────────────────────────────────────────────────
# Provider errors
# ─────────────────────────────────────────────────────────────

class ProviderError(RiskCheckError):
    code = "PROVIDER_ERROR"


class FetchError(ProviderError):
    """Upstream API call failed (transport error or non-success status)."""

    code = "PROVIDER_TRANSPORT_FAILURE"

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider_name, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def details(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "request_url": self.request_url,
            "response_body": self.response_body,
        }


class RateLimitError(FetchError):
    """HTTP 429 from an upstream API."""

    code = "PROVIDER_RATE_LIMITED"

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            provider_name,
            status_code=429,
            request_url=request_url,
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def details(self) -> dict[str, Any]:
        return {**super().details(), "retry_after_seconds": self.retry_after_seconds}


class ProviderTimeoutError(ProviderError):
    code = "PROVIDER_TIMEOUT"

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(message, provider_name)
        self.timeout_seconds = timeout_seconds

    def details(self) -> dict[str, Any]:
        return {"timeout_seconds": self.timeout_seconds}


class ProviderUnconfiguredError(ProviderError):
    """Raised by a provider whose credentials are missing. Treated as a skip."""

    code = "PROVIDER_UNCONFIGURED"

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        config_key: Optional[str] = None,
    ) -> None:
        super().__init__(message, provider_name)
        self.config_key = config_key

    def details(self) -> dict[str, Any]:
        return {"config_key": self.config_key}


class ResolutionError(RiskCheckError):
    """No precedence rule matched. Indicates a bug, not bad input."""

    code = "INTERNAL_ERROR"
