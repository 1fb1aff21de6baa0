"""
In-memory repository adapter - Implements EmailChangeRequestRepository protocol.

Useful for tests and single-process deployments. Data only lives as long
as the process. Indexes are guarded by a lock so each operation is
atomic across threads.
"""

import threading
from collections.abc import Callable
from datetime import datetime

from src.domain.ports import AccountProvider, EmailChangeable
from src.domain.request import EmailChangeRequest, account_identifier, utcnow


class InMemoryEmailChangeRequestRepository:
    """
    Implements EmailChangeRequestRepository protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        account_provider: AccountProvider | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._by_selector: dict[str, EmailChangeRequest] = {}
        self._by_account: dict[str, EmailChangeRequest] = {}
        self._account_provider = account_provider
        self._clock = clock
        self._lock = threading.Lock()

    def persist(self, request: EmailChangeRequest) -> None:
        with self._lock:
            self._by_selector[request.selector] = request
            self._by_account[request.account_identifier] = request

    def find_by_selector(self, selector: str) -> EmailChangeRequest | None:
        with self._lock:
            return self._by_selector.get(selector)

    def find_by_account(self, account: EmailChangeable) -> EmailChangeRequest | None:
        with self._lock:
            return self._by_account.get(account_identifier(account))

    def find_by_old_email_selector(self, selector: str) -> EmailChangeRequest | None:
        with self._lock:
            for request in self._by_selector.values():
                if request.old_email_selector == selector:
                    return request
        return None

    def remove(self, request: EmailChangeRequest) -> None:
        with self._lock:
            self._discard(request)

    def remove_expired(self) -> int:
        return self.remove_expired_older_than(self._clock())

    def count_expired(self) -> int:
        return self.count_expired_older_than(self._clock())

    def remove_expired_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [r for r in self._by_selector.values() if r.expires_at < cutoff]
            for request in expired:
                self._discard(request)
        return len(expired)

    def count_expired_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            return sum(1 for r in self._by_selector.values() if r.expires_at < cutoff)

    def get_account_from_request(self, request: EmailChangeRequest) -> EmailChangeable | None:
        if self._account_provider is None:
            return None
        return self._account_provider(request)

    def all(self) -> list[EmailChangeRequest]:
        """All stored requests (for inspection in tests)."""
        with self._lock:
            return list(self._by_selector.values())

    def clear(self) -> None:
        with self._lock:
            self._by_selector.clear()
            self._by_account.clear()

    def _discard(self, request: EmailChangeRequest) -> None:
        self._by_selector.pop(request.selector, None)
        # Only drop the account slot if it still points at this request
        current = self._by_account.get(request.account_identifier)
        if current is not None and current.selector == request.selector:
            del self._by_account[request.account_identifier]
