"""
Domain exceptions - Semantic error types for email change verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception exposes a ``reason`` that is safe to show to the caller.
"""

from datetime import datetime


class EmailChangeError(Exception):
    """Base class for email change domain errors."""

    @property
    def reason(self) -> str:
        return str(self) or "The email change request could not be processed."


class InvalidEmailChangeRequest(EmailChangeError):
    """Missing parameters, unknown selector, wrong token/code or unknown account."""

    @property
    def reason(self) -> str:
        return str(self) or "The email change link is invalid."


class ExpiredEmailChangeRequest(EmailChangeError):
    """The link or code was valid but its lifetime has passed."""

    @property
    def reason(self) -> str:
        return "The email change link has expired. Please request a new one."


class TooManyEmailChangeRequests(EmailChangeError):
    """A live request already exists for this account."""

    def __init__(self, available_at: datetime, message: str = "") -> None:
        super().__init__(message)
        self.available_at = available_at

    @property
    def reason(self) -> str:
        return (
            "You have already requested an email change. Please wait until "
            f"{self.available_at:%Y-%m-%d %H:%M:%S} before trying again."
        )


class TooManyVerificationAttempts(EmailChangeError):
    """The failed-attempt ceiling was reached; the request has been destroyed."""

    def __init__(self, max_attempts: int, message: str = "") -> None:
        super().__init__(message)
        self.max_attempts = max_attempts

    @property
    def reason(self) -> str:
        return (
            "Too many verification attempts. The request has been invalidated "
            f"after {self.max_attempts} failed attempts."
        )


class EmailAlreadyInUse(EmailChangeError):
    """The requested address already belongs to another account."""

    def __init__(self, email: str) -> None:
        super().__init__(f"This email address is already in use: {email}")
        self.email = email

    @property
    def reason(self) -> str:
        return "This email address is already in use."


class SameEmail(EmailChangeError):
    """The requested address is identical to the current one."""

    def __init__(self, email: str) -> None:
        super().__init__(f"The new email address is identical to the current one: {email}")
        self.email = email

    @property
    def reason(self) -> str:
        return "The new email address is identical to the current one."
