"""
OTP codec - numeric one-time codes for manual entry.

A numeric code alternative to signed links, suitable for mobile apps and
API-first flows. Codes are drawn uniformly from the full ``length``-digit
integer range, so they never start with a zero.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime

from .tokens import constant_time_equals, sha256_hex

MIN_OTP_LENGTH = 4
MAX_OTP_LENGTH = 10


@dataclass(frozen=True)
class OtpResult:
    """
    The plaintext code to deliver, returned exactly once.

    Only the hash of ``otp`` is persisted.
    """

    otp: str
    expires_at: datetime


class OtpGenerator:
    """Generates and verifies numeric one-time codes."""

    def __init__(self, length: int = 6) -> None:
        if not MIN_OTP_LENGTH <= length <= MAX_OTP_LENGTH:
            raise ValueError(
                f"OTP length must be between {MIN_OTP_LENGTH} and {MAX_OTP_LENGTH}, got {length}"
            )
        self.length = length

    def generate(self) -> str:
        lowest = 10 ** (self.length - 1)
        highest = 10**self.length - 1
        return str(lowest + secrets.randbelow(highest - lowest + 1))

    def hash(self, otp: str) -> str:
        return sha256_hex(otp)

    def verify(self, otp: str, hashed_otp: str) -> bool:
        """Timing-safe comparison of ``otp`` against a stored hash."""
        if not isinstance(otp, str) or not isinstance(hashed_otp, str):
            return False
        return constant_time_equals(hashed_otp, self.hash(otp))
