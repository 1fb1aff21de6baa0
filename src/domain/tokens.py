"""
Token codec - selector + hashed token pattern.

- Selector: public, used to look up a request without revealing the secret
- Token: secret handed to the caller exactly once; only its SHA-256 hash
  is ever stored

Selector and token are drawn independently from the ``secrets`` CSPRNG,
so neither can be derived from the other.
"""

import hashlib
import secrets
from dataclasses import dataclass

SELECTOR_BYTES = 20
TOKEN_BYTES = 32


@dataclass(frozen=True)
class TokenComponents:
    """Freshly minted selector, plaintext token and token hash."""

    selector: str
    token: str
    hashed_token: str


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


def constant_time_equals(expected: str, actual: str) -> bool:
    """
    Compare two strings without short-circuiting on the first mismatch.

    Non-ASCII input is compared as UTF-8 bytes so that malformed values
    fail the comparison instead of raising.
    """
    return secrets.compare_digest(expected.encode(), actual.encode())


class EmailChangeTokenGenerator:
    """Generates and verifies cryptographically secure email change tokens."""

    def create_token(self) -> TokenComponents:
        """Create a new selector/token pair plus the hash to persist."""
        selector = secrets.token_hex(SELECTOR_BYTES)
        token = secrets.token_hex(TOKEN_BYTES)
        return TokenComponents(selector=selector, token=token, hashed_token=self.hash_token(token))

    def hash_token(self, token: str) -> str:
        return sha256_hex(token)

    def verify_token(self, hashed_token: str, token: str) -> bool:
        """
        Check ``token`` against a stored hash using a timing-safe comparison.

        Malformed input simply fails verification.
        """
        if not isinstance(token, str) or not isinstance(hashed_token, str):
            return False
        return constant_time_equals(hashed_token, self.hash_token(token))
