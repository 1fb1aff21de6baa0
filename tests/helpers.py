"""
Test doubles shared by the unit, adversarial and integration suites.
"""

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlencode, urlsplit

from src.adapters.repository.accounts import Account
from src.domain.events import AuditAction, EmailChangeAuditEvent
from src.domain.request import EmailChangeRequest

BASE_URL = "https://example.com/verify-email"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class StaticUrlGenerator:
    """UrlGenerator returning ``BASE_URL?<params>`` and remembering every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, str]]] = []

    def generate(self, route_name: str, params: Mapping[str, str]) -> str:
        self.calls.append((route_name, dict(params)))
        return f"{BASE_URL}?{urlencode(params)}"


class InMemoryAccountStore:
    """Account store with the same surface as PostgresAccountRepository."""

    def __init__(self, *accounts: Account) -> None:
        self.accounts = {account.id: account for account in accounts}
        self.saved: list[Account] = []

    def add(self, account: Account) -> Account:
        self.accounts[account.id] = account
        return account

    def get(self, account_id: int) -> Account | None:
        return self.accounts.get(account_id)

    def find_for_request(self, request: EmailChangeRequest) -> Account | None:
        if request.account_type != Account.__qualname__:
            return None
        return self.accounts.get(int(request.account_id))

    def save(self, account: Account) -> None:
        self.saved.append(account)

    def email_in_use(self, email: str, exclude_id: int | None = None) -> bool:
        return any(
            a.email.lower() == email.lower() and a.id != exclude_id
            for a in self.accounts.values()
        )


class RecordingAuditLog:
    """EmailChangeAuditLog that keeps every event."""

    def __init__(self) -> None:
        self.events: list[EmailChangeAuditEvent] = []

    def record(self, event: EmailChangeAuditEvent) -> None:
        self.events.append(event)

    @property
    def actions(self) -> list[AuditAction]:
        return [event.action for event in self.events]


def query_params(url: str) -> dict[str, str]:
    """Single-valued query parameters of ``url``."""
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}
