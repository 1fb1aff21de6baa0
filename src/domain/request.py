"""
Email change request entity.

One EmailChangeRequest represents a single in-flight email change attempt.
It stores only hashes of the secrets handed out to the caller, never the
plaintext, and is located either by its public selector or by the
identifier of the account that owns it.

Lifecycle
=========

    created   -> on initiation by an orchestrator
    mutated   -> attempts counter / confirmation flags on verification
    deleted   -> on success, cancellation, max attempts, or purge sweep

Expiry is a pure function of ``expires_at`` versus the current time; no
"expired" flag is ever persisted.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from .ports import EmailChangeable

IDENTIFIER_SEPARATOR = "::"


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def account_identifier(account: EmailChangeable) -> str:
    """
    Build the opaque "one active request per account" key.

    Format: ``<AccountTypeName>::<account id>``
    """
    return f"{type(account).__qualname__}{IDENTIFIER_SEPARATOR}{account.get_id()}"


@dataclass
class EmailChangeRequest:
    """
    Persisted state of one email change attempt.

    In dual-confirmation mode the request additionally carries a second
    selector/hash pair for the old address and two independent
    confirmation flags.
    """

    account_identifier: str
    selector: str
    hashed_token: str
    new_email: str
    expires_at: datetime
    requested_at: datetime = field(default_factory=utcnow)
    attempts: int = 0
    old_email_selector: str | None = None
    old_email_hashed_token: str | None = None
    confirmed_by_new_email: bool = False
    confirmed_by_old_email: bool = False

    @classmethod
    def for_account(
        cls,
        account: EmailChangeable,
        *,
        selector: str,
        hashed_token: str,
        new_email: str,
        expires_at: datetime,
        requested_at: datetime | None = None,
    ) -> "EmailChangeRequest":
        """Create a request owned by ``account``."""
        return cls(
            account_identifier=account_identifier(account),
            selector=selector,
            hashed_token=hashed_token,
            new_email=new_email,
            expires_at=expires_at,
            requested_at=requested_at or utcnow(),
        )

    @property
    def account_type(self) -> str:
        return self.account_identifier.split(IDENTIFIER_SEPARATOR, 1)[0]

    @property
    def account_id(self) -> str:
        return self.account_identifier.split(IDENTIFIER_SEPARATOR, 1)[1]

    @property
    def requires_old_email_confirmation(self) -> bool:
        """True when the request was created in dual-confirmation mode."""
        return self.old_email_selector is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def belongs_to(self, account: EmailChangeable) -> bool:
        return self.account_identifier == account_identifier(account)

    def increment_attempts(self) -> int:
        self.attempts += 1
        return self.attempts

    def enable_old_email_confirmation(self, selector: str, hashed_token: str) -> None:
        """Attach the old-address verification channel (dual mode)."""
        self.old_email_selector = selector
        self.old_email_hashed_token = hashed_token

    def is_fully_confirmed(self) -> bool:
        """
        Whether the change may be applied.

        Single mode: always True (validating the new-address link is enough).
        Dual mode: both parties must have confirmed, in any order.
        """
        if not self.requires_old_email_confirmation:
            return True
        return self.confirmed_by_new_email and self.confirmed_by_old_email
