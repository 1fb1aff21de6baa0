"""
Redis repository adapter - Implements EmailChangeRequestRepository protocol.

Stores email change requests in Redis for deployments that prefer an
ephemeral store over PostgreSQL.

Key layout:
-----------
- ``email_change:selector:<selector>``       JSON-encoded request
- ``email_change:account:<identifier>``      selector of the account's request
- ``email_change:old_selector:<selector>``   selector of the owning request (dual mode)
- ``email_change:index``                     set of all known selectors (purge sweeps)

Keys are written with a TTL one hour beyond the request's expiry so that
expired requests remain visible to purge sweeps; expiry itself is decided
by the domain from ``expires_at``.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel
from redis import Redis

from src.domain.ports import AccountProvider, EmailChangeable
from src.domain.request import EmailChangeRequest, account_identifier, utcnow

logger = logging.getLogger(__name__)

SELECTOR_PREFIX = "email_change:selector:"
ACCOUNT_PREFIX = "email_change:account:"
OLD_SELECTOR_PREFIX = "email_change:old_selector:"
INDEX_KEY = "email_change:index"

TTL_BUFFER_SECONDS = 3600


class StoredEmailChangeRequest(BaseModel):
    """Wire format of a request stored in Redis."""

    account_identifier: str
    selector: str
    hashed_token: str
    new_email: str
    expires_at: datetime
    requested_at: datetime
    attempts: int = 0
    old_email_selector: str | None = None
    old_email_hashed_token: str | None = None
    confirmed_by_new_email: bool = False
    confirmed_by_old_email: bool = False

    @classmethod
    def from_domain(cls, request: EmailChangeRequest) -> "StoredEmailChangeRequest":
        return cls(**vars(request))

    def to_domain(self) -> EmailChangeRequest:
        return EmailChangeRequest(**self.model_dump())


class RedisEmailChangeRequestRepository:
    """
    Implements EmailChangeRequestRepository protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The client must be created with ``decode_responses=True``.
    """

    def __init__(
        self,
        client: Redis,
        account_provider: AccountProvider | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._account_provider = account_provider
        self._clock = clock

    def persist(self, request: EmailChangeRequest) -> None:
        remaining = int((request.expires_at - self._clock()).total_seconds())
        ttl = max(TTL_BUFFER_SECONDS, remaining + TTL_BUFFER_SECONDS)

        payload = StoredEmailChangeRequest.from_domain(request).model_dump_json()
        self._client.set(SELECTOR_PREFIX + request.selector, payload, ex=ttl)
        self._client.set(ACCOUNT_PREFIX + request.account_identifier, request.selector, ex=ttl)
        if request.old_email_selector:
            self._client.set(
                OLD_SELECTOR_PREFIX + request.old_email_selector, request.selector, ex=ttl
            )
        self._client.sadd(INDEX_KEY, request.selector)

    def find_by_selector(self, selector: str) -> EmailChangeRequest | None:
        payload = self._client.get(SELECTOR_PREFIX + selector)
        if payload is None:
            return None
        return StoredEmailChangeRequest.model_validate_json(payload).to_domain()

    def find_by_account(self, account: EmailChangeable) -> EmailChangeRequest | None:
        selector = self._client.get(ACCOUNT_PREFIX + account_identifier(account))
        return self.find_by_selector(selector) if selector is not None else None

    def find_by_old_email_selector(self, selector: str) -> EmailChangeRequest | None:
        owner = self._client.get(OLD_SELECTOR_PREFIX + selector)
        return self.find_by_selector(owner) if owner is not None else None

    def remove(self, request: EmailChangeRequest) -> None:
        keys = [SELECTOR_PREFIX + request.selector]

        account_key = ACCOUNT_PREFIX + request.account_identifier
        if self._client.get(account_key) == request.selector:
            keys.append(account_key)
        if request.old_email_selector:
            keys.append(OLD_SELECTOR_PREFIX + request.old_email_selector)

        self._client.delete(*keys)
        self._client.srem(INDEX_KEY, request.selector)

    def remove_expired(self) -> int:
        return self.remove_expired_older_than(self._clock())

    def count_expired(self) -> int:
        return self.count_expired_older_than(self._clock())

    def remove_expired_older_than(self, cutoff: datetime) -> int:
        removed = 0
        for selector in self._client.smembers(INDEX_KEY):
            request = self.find_by_selector(selector)
            if request is None:
                # Evicted by Redis already
                self._client.srem(INDEX_KEY, selector)
                removed += 1
            elif request.expires_at < cutoff:
                self.remove(request)
                removed += 1

        if removed:
            logger.info("Removed %d expired email change request(s) from Redis", removed)
        return removed

    def count_expired_older_than(self, cutoff: datetime) -> int:
        count = 0
        for selector in self._client.smembers(INDEX_KEY):
            request = self.find_by_selector(selector)
            if request is None or request.expires_at < cutoff:
                count += 1
        return count

    def get_account_from_request(self, request: EmailChangeRequest) -> EmailChangeable | None:
        if self._account_provider is None:
            return None
        return self._account_provider(request)
