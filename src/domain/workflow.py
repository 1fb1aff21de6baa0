"""
Shared email change policy - throttling, expiry and failed-attempt lockout.

Both orchestrators (signed links and OTP codes) enforce the same rules:

- Flood control: one live request per account; a new one is refused
  with TooManyEmailChangeRequests until the live one is gone.
- Housekeeping: every initiation opportunistically purges expired
  requests and replaces the account's own expired request.
- Lockout: every failed verification increments ``attempts``; reaching
  ``max_attempts`` deletes the request.

Concurrency note: the check-then-insert in ``_release_slot`` and the
attempt increment in ``_register_failed_attempt`` are read-modify-write
sequences against the repository. Two simultaneous initiations for the
same account may both succeed (last write wins), and concurrent wrong
guesses may under-count. Operations on different accounts never interact.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .exceptions import (
    ExpiredEmailChangeRequest,
    InvalidEmailChangeRequest,
    TooManyEmailChangeRequests,
    TooManyVerificationAttempts,
)
from .ports import EmailChangeable, EmailChangeRequestRepository
from .request import EmailChangeRequest, utcnow
from .tokens import EmailChangeTokenGenerator

DEFAULT_REQUEST_LIFETIME = 3600
DEFAULT_RETRY_TTL = 3600
DEFAULT_MAX_ATTEMPTS = 5

NO_PENDING_CHANGE = "No pending email change found."


@dataclass(kw_only=True)
class EmailChangeWorkflow:
    """Base class holding the policy configuration shared by both flows."""

    repository: EmailChangeRequestRepository
    token_generator: EmailChangeTokenGenerator = field(default_factory=EmailChangeTokenGenerator)
    request_lifetime: int = DEFAULT_REQUEST_LIFETIME
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_ttl: int = DEFAULT_RETRY_TTL
    clock: Callable[[], datetime] = utcnow

    def cancel_email_change(self, account: EmailChangeable) -> None:
        """Delete the account's request if there is one. Idempotent."""
        request = self.repository.find_by_account(account)
        if request is not None:
            self.repository.remove(request)

    def get_pending_request(self, account: EmailChangeable) -> EmailChangeRequest | None:
        request = self.repository.find_by_account(account)
        if request is None or request.is_expired(self.clock()):
            return None
        return request

    def has_pending_email_change(self, account: EmailChangeable) -> bool:
        return self.get_pending_request(account) is not None

    def has_pending_request(self, account: EmailChangeable) -> bool:
        return self.has_pending_email_change(account)

    def get_pending_email(self, account: EmailChangeable) -> str | None:
        request = self.get_pending_request(account)
        return request.new_email if request is not None else None

    def _release_slot(self, account: EmailChangeable) -> tuple[datetime, datetime]:
        """
        Make room for a new request.

        Returns:
            Tuple of (requested_at, expires_at) for the new request

        Raises:
            TooManyEmailChangeRequests: If the account has a live request
        """
        now = self.clock()
        existing = self.repository.find_by_account(account)
        if existing is not None and not existing.is_expired(now):
            raise TooManyEmailChangeRequests(
                existing.requested_at + timedelta(seconds=self.retry_ttl)
            )

        self.repository.remove_expired()

        if existing is not None:
            self.repository.remove(existing)

        return now, now + timedelta(seconds=self.request_lifetime)

    def _ensure_live(self, request: EmailChangeRequest) -> None:
        if request.is_expired(self.clock()):
            raise ExpiredEmailChangeRequest()

    def _register_failed_attempt(self, request: EmailChangeRequest, message: str) -> None:
        """
        Record a wrong secret and raise the matching failure.

        Raises:
            TooManyVerificationAttempts: If the ceiling is reached (request deleted)
            InvalidEmailChangeRequest: Otherwise (counter persisted)
        """
        if request.increment_attempts() >= self.max_attempts:
            self.repository.remove(request)
            raise TooManyVerificationAttempts(self.max_attempts)

        self.repository.persist(request)
        raise InvalidEmailChangeRequest(message)

    def _apply_change(self, account: EmailChangeable, request: EmailChangeRequest) -> str:
        """Swap in the new address, consume the request and return the old address."""
        old_email = account.get_email()
        account.set_email(request.new_email)
        self.repository.remove(request)
        return old_email
