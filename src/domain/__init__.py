"""
Domain layer - Pure business logic with zero framework imports.

This package contains the verification-request lifecycle engine for
email address changes: token and OTP codecs, the request entity, audit
events, and the link-based and OTP-based orchestrators. It defines its
own port interfaces for infrastructure abstraction, ensuring true
hexagonal architecture decoupling.
"""

from .email_change import EmailChangeService
from .events import AuditAction, EmailChangeAuditEvent, failure_action
from .exceptions import (
    EmailAlreadyInUse,
    EmailChangeError,
    ExpiredEmailChangeRequest,
    InvalidEmailChangeRequest,
    SameEmail,
    TooManyEmailChangeRequests,
    TooManyVerificationAttempts,
)
from .otp import OtpGenerator, OtpResult
from .otp_email_change import OtpEmailChangeService
from .ports import (
    AccountProvider,
    EmailChangeable,
    EmailChangeAuditLog,
    EmailChangeNotifier,
    EmailChangeRequestRepository,
    UrlGenerator,
)
from .request import EmailChangeRequest, account_identifier, utcnow
from .signature import EmailChangeDualSignature, EmailChangeSignature
from .tokens import EmailChangeTokenGenerator, TokenComponents

__all__ = [
    "AccountProvider",
    "AuditAction",
    "EmailAlreadyInUse",
    "EmailChangeAuditEvent",
    "EmailChangeAuditLog",
    "EmailChangeDualSignature",
    "EmailChangeError",
    "EmailChangeNotifier",
    "EmailChangeRequest",
    "EmailChangeRequestRepository",
    "EmailChangeService",
    "EmailChangeSignature",
    "EmailChangeTokenGenerator",
    "EmailChangeable",
    "ExpiredEmailChangeRequest",
    "InvalidEmailChangeRequest",
    "OtpEmailChangeService",
    "OtpGenerator",
    "OtpResult",
    "SameEmail",
    "TokenComponents",
    "TooManyEmailChangeRequests",
    "TooManyVerificationAttempts",
    "UrlGenerator",
    "account_identifier",
    "failure_action",
    "utcnow",
]
