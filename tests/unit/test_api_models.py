"""
Unit tests for API request/response models.

Tests Pydantic model validation for the user and challenge endpoints.
"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.api.models import (
    ChallengeResponse,
    ErrorResponse,
    GenerateCodesRequest,
    SignUpRequest,
    UserResponse,
)
from src.domain.values import utc_now


class TestSignUpRequest:
    def test_valid_request(self) -> None:
        request = SignUpRequest(username="alice", email="alice@example.com", password="secret1")
        assert request.email == "alice@example.com"

    def test_invalid_email_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SignUpRequest(username="alice", email="not-an-email", password="secret1")

    def test_missing_password_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SignUpRequest(username="alice", email="alice@example.com")


class TestGenerateCodesRequest:
    def test_security_level_defaults_to_medium(self) -> None:
        request = GenerateCodesRequest(purpose="2fa", code_length=6)
        assert request.security_level == "medium"

    def test_code_length_must_be_integer(self) -> None:
        with pytest.raises(ValidationError):
            GenerateCodesRequest(purpose="2fa", code_length="six")


class TestResponses:
    def test_user_response_has_no_password_field(self) -> None:
        assert "password" not in UserResponse.model_fields

    def test_challenge_response_has_no_code_values(self) -> None:
        now = utc_now()
        response = ChallengeResponse(
            id=uuid4(),
            purpose="2fa",
            created_at=now,
            expires_at=now,
            codes_total=5,
            codes_unused=3,
        )
        assert set(response.model_dump()) == {
            "id",
            "purpose",
            "created_at",
            "expires_at",
            "codes_total",
            "codes_unused",
        }

    def test_error_response_code_optional(self) -> None:
        assert ErrorResponse(detail="Not found").model_dump() == {"detail": "Not found", "code": None}
