"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping; none of them inherits from a Protocol.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .events import EmailChangeAuditEvent
    from .otp import OtpResult
    from .request import EmailChangeRequest
    from .signature import EmailChangeSignature


class EmailChangeable(Protocol):
    """Minimal capability an account must offer to have its email changed."""

    def get_id(self) -> Any: ...

    def get_email(self) -> str: ...

    def set_email(self, email: str) -> None: ...


AccountProvider = Callable[["EmailChangeRequest"], EmailChangeable | None]


class EmailChangeRequestRepository(Protocol):
    """
    Port interface for email change request persistence.

    Every operation is atomic with respect to a single request record.
    Cross-record atomicity (one live request per account) is the
    orchestrator's responsibility.
    """

    def persist(self, request: "EmailChangeRequest") -> None:
        """Insert a new request or save the mutable state of an existing one."""
        ...

    def find_by_selector(self, selector: str) -> "EmailChangeRequest | None": ...

    def find_by_account(self, account: EmailChangeable) -> "EmailChangeRequest | None": ...

    def find_by_old_email_selector(self, selector: str) -> "EmailChangeRequest | None": ...

    def remove(self, request: "EmailChangeRequest") -> None:
        """Delete a request. Removing an unknown request is a no-op."""
        ...

    def remove_expired(self) -> int:
        """
        Delete every request whose ``expires_at`` is before now.

        Returns:
            Number of removed requests
        """
        ...

    def count_expired(self) -> int: ...

    def remove_expired_older_than(self, cutoff: datetime) -> int:
        """Delete requests that expired before ``cutoff``."""
        ...

    def count_expired_older_than(self, cutoff: datetime) -> int: ...

    def get_account_from_request(self, request: "EmailChangeRequest") -> EmailChangeable | None:
        """Resolve the account owning ``request``, or None if it no longer exists."""
        ...


class UrlGenerator(Protocol):
    """Port interface for building absolute verification URLs."""

    def generate(self, route_name: str, params: Mapping[str, str]) -> str:
        """
        Build an absolute URL for ``route_name`` carrying ``params``.

        Args:
            route_name: Name of the verification endpoint
            params: Query parameters (at least ``selector`` and ``token``)
        """
        ...


class EmailChangeNotifier(Protocol):
    """Port interface for notification delivery."""

    def send_verification_email(
        self, account: EmailChangeable, new_email: str, signature: "EmailChangeSignature"
    ) -> None:
        """Send the verification link(s); in dual mode the old address is mailed too."""
        ...

    def send_otp(self, account: EmailChangeable, new_email: str, result: "OtpResult") -> None: ...

    def send_email_change_confirmation(
        self, account: EmailChangeable, old_email: str, new_email: str
    ) -> None: ...

    def send_cancellation_notice(self, account: EmailChangeable, cancelled_email: str) -> None: ...


class EmailChangeAuditLog(Protocol):
    """Port interface for recording audit events."""

    def record(self, event: "EmailChangeAuditEvent") -> None: ...
