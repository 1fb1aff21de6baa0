"""
Unit tests for the domain error to HTTP response mapping.
"""

import asyncio
import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from src.api.errors import email_change_error_handler, status_code_for
from src.domain.exceptions import (
    EmailAlreadyInUse,
    EmailChangeError,
    ExpiredEmailChangeRequest,
    InvalidEmailChangeRequest,
    SameEmail,
    TooManyEmailChangeRequests,
    TooManyVerificationAttempts,
)
from src.domain.request import utcnow


class TestStatusCodes:
    """Tests for status_code_for()."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (InvalidEmailChangeRequest("Invalid verification link."), 400),
            (ExpiredEmailChangeRequest(), 410),
            (TooManyEmailChangeRequests(utcnow()), 429),
            (TooManyVerificationAttempts(5), 403),
            (SameEmail("a@example.com"), 409),
            (EmailAlreadyInUse("a@example.com"), 409),
            (EmailChangeError(), 400),
        ],
    )
    def test_mapping(self, exc: EmailChangeError, expected: int) -> None:
        assert status_code_for(exc) == expected


class TestHandler:
    """Tests for email_change_error_handler()."""

    def _render(self, exc: EmailChangeError):
        request = MagicMock()
        request.url.path = "/v1/email-change"
        return asyncio.run(email_change_error_handler(request, exc))

    def test_body_uses_reason_and_type(self) -> None:
        response = self._render(ExpiredEmailChangeRequest())

        assert response.status_code == 410
        assert json.loads(response.body) == {
            "status": "error",
            "message": "The email change link has expired. Please request a new one.",
            "error": {"type": "ExpiredEmailChangeRequest"},
        }

    def test_retry_after_header(self) -> None:
        """Throttled responses tell the client when to retry."""
        response = self._render(TooManyEmailChangeRequests(utcnow() + timedelta(minutes=10)))

        assert response.status_code == 429
        assert 590 <= int(response.headers["Retry-After"]) <= 600

    def test_retry_after_never_negative(self) -> None:
        response = self._render(TooManyEmailChangeRequests(utcnow() - timedelta(minutes=10)))
        assert response.headers["Retry-After"] == "0"

    def test_default_invalid_reason(self) -> None:
        """An InvalidEmailChangeRequest without message uses the generic reason."""
        response = self._render(InvalidEmailChangeRequest())
        assert json.loads(response.body)["message"] == "The email change link is invalid."
