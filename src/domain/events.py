"""
Audit events for the email change lifecycle.

Integrating layers record these through the EmailChangeAuditLog port for
monitoring and compliance. The orchestrators never emit them themselves.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import (
    EmailChangeError,
    ExpiredEmailChangeRequest,
    InvalidEmailChangeRequest,
    TooManyVerificationAttempts,
)
from .request import utcnow


class AuditAction(str, Enum):
    """Security-relevant operations on an email change request."""

    INITIATED = "initiated"
    VERIFIED = "verified"
    OLD_EMAIL_CONFIRMED = "old_email_confirmed"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED_VERIFICATION = "failed_verification"
    MAX_ATTEMPTS_EXCEEDED = "max_attempts_exceeded"
    EXPIRED_ACCESS = "expired_access"


@dataclass(frozen=True)
class EmailChangeAuditEvent:
    """
    One audited operation.

    ``account_id`` is None when the account is unknown, e.g. a verification
    link with an unknown selector. ``metadata`` carries request context such
    as ``ip_address`` and ``user_agent``.
    """

    action: AuditAction
    account_id: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)

    @property
    def ip_address(self) -> str | None:
        return self.metadata.get("ip_address")

    @property
    def user_agent(self) -> str | None:
        return self.metadata.get("user_agent")


def failure_action(error: EmailChangeError) -> AuditAction | None:
    """Audit action for a failed verification, or None if the error is not one."""
    if isinstance(error, TooManyVerificationAttempts):
        return AuditAction.MAX_ATTEMPTS_EXCEEDED
    if isinstance(error, ExpiredEmailChangeRequest):
        return AuditAction.EXPIRED_ACCESS
    if isinstance(error, InvalidEmailChangeRequest):
        return AuditAction.FAILED_VERIFICATION
    return None
