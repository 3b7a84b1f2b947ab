"""
Response Envelope Schema Tests.
"""

import time

import pytest
from pydantic import ValidationError

from risk_check.exceptions import (
    FetchError,
    InvalidInputError,
    RateLimitError,
    UnclassifiableEntityError,
)
from risk_check.models import EntityType, RiskAssessment, RiskLevel, CheckResponse
from risk_check.schemas import (
    BatchCheckRequest,
    ErrorCodeEnum,
    error_envelope,
    error_status,
    success_envelope,
)


class TestSuccessEnvelope:
    """Tests for success_envelope()."""

    def test_wraps_response(self):
        response = CheckResponse(
            entity="example.com",
            entity_type=EntityType.DOMAIN,
            assessment=RiskAssessment(risk_level=RiskLevel.UNKNOWN),
        )

        envelope = success_envelope(response, time.perf_counter(), request_id="req-1")
        data = envelope.to_dict()

        assert data["meta"]["requestId"] == "req-1"
        assert data["meta"]["processingTimeMs"] >= 0
        assert "timestamp" in data["meta"]
        assert data["data"]["entityType"] == "DOMAIN"
        assert data["data"]["assessment"]["riskScore"] is None

    def test_generates_request_id(self):
        envelope = success_envelope({"ok": True}, time.perf_counter())

        assert envelope.meta.request_id
        assert envelope.data == {"ok": True}


class TestErrorEnvelope:
    """Tests for error_envelope() and error_status()."""

    def test_invalid_input(self):
        exc = InvalidInputError("Entity value must not be empty", raw_value="")

        data = error_envelope(exc, time.perf_counter()).to_dict()

        assert data["error"] == {
            "code": "INVALID_INPUT",
            "message": "Entity value must not be empty",
        }
        assert error_status(exc) == 400

    def test_unclassifiable(self):
        exc = UnclassifiableEntityError("Cannot classify entity '???'", raw_value="???")

        envelope = error_envelope(exc, time.perf_counter())

        assert envelope.error.code == ErrorCodeEnum.UNCLASSIFIABLE_ENTITY
        assert error_status(exc) == 400

    def test_rate_limited(self):
        exc = RateLimitError("Rate limit exceeded", retry_after_seconds=30)

        data = error_envelope(exc, time.perf_counter()).to_dict()

        assert data["error"]["code"] == "RATE_LIMITED"
        assert data["error"]["retryAfter"] == 30
        assert error_status(exc) == 429

    @pytest.mark.parametrize("exc", [
        RuntimeError("secret connection string"),
        FetchError("HTTP 500", provider_name="virustotal", status_code=500),
    ])
    def test_internal_error_hides_details(self, exc):
        data = error_envelope(exc, time.perf_counter()).to_dict()

        assert data["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "Failed to check entity",
        }
        assert error_status(exc) == 500


class TestBatchCheckRequest:
    """Tests for BatchCheckRequest."""

    def test_valid(self):
        request = BatchCheckRequest(entities=["@polkadot", "example.com"])

        assert len(request.entities) == 2

    @pytest.mark.parametrize("entities", [[], ["example.com"] * 51])
    def test_size_limits(self, entities):
        with pytest.raises(ValidationError):
            BatchCheckRequest(entities=entities)
