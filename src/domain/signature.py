"""
Signed artifacts returned by link-based email change initiation.

The URLs embed the selector and the plaintext token (never the hash) and
should be handed to a notifier, then discarded.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from .request import utcnow


@dataclass(frozen=True)
class EmailChangeSignature:
    """Signed URL for the new address plus its expiration time."""

    signed_url: str
    expires_at: datetime

    def expires_in_hours(self, now: datetime | None = None) -> int:
        """Whole hours left before expiry, rounded up, never less than 1."""
        seconds_left = (self.expires_at - (now or utcnow())).total_seconds()
        return max(1, math.ceil(seconds_left / 3600))


@dataclass(frozen=True)
class EmailChangeDualSignature(EmailChangeSignature):
    """Dual-confirmation mode: an additional URL to send to the OLD address."""

    old_email_signed_url: str
