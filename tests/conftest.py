"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable UTC clock
- A URL builder producing deterministic absolute URLs
- An in-memory account store usable as account provider
- Pre-wired in-memory request repository and domain services
"""

import pytest

from src.adapters.repository.accounts import Account
from src.adapters.repository.memory import InMemoryEmailChangeRequestRepository
from src.domain.email_change import EmailChangeService
from src.domain.otp_email_change import OtpEmailChangeService
from tests.helpers import FrozenClock, InMemoryAccountStore, StaticUrlGenerator


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def url_generator() -> StaticUrlGenerator:
    return StaticUrlGenerator()


@pytest.fixture
def account() -> Account:
    return Account(id=1, email="old@example.com")


@pytest.fixture
def account_store(account: Account) -> InMemoryAccountStore:
    return InMemoryAccountStore(account)


@pytest.fixture
def memory_repository(
    account_store: InMemoryAccountStore, clock: FrozenClock
) -> InMemoryEmailChangeRequestRepository:
    return InMemoryEmailChangeRequestRepository(account_store.find_for_request, clock=clock)


@pytest.fixture
def service(
    memory_repository: InMemoryEmailChangeRequestRepository,
    url_generator: StaticUrlGenerator,
    clock: FrozenClock,
) -> EmailChangeService:
    """Link-based service in single-confirmation mode."""
    return EmailChangeService(
        repository=memory_repository,
        url_generator=url_generator,
        clock=clock,
    )


@pytest.fixture
def dual_service(
    memory_repository: InMemoryEmailChangeRequestRepository,
    url_generator: StaticUrlGenerator,
    clock: FrozenClock,
) -> EmailChangeService:
    """Link-based service in dual-confirmation mode."""
    return EmailChangeService(
        repository=memory_repository,
        url_generator=url_generator,
        require_old_email_confirmation=True,
        clock=clock,
    )


@pytest.fixture
def otp_service(
    memory_repository: InMemoryEmailChangeRequestRepository, clock: FrozenClock
) -> OtpEmailChangeService:
    return OtpEmailChangeService(repository=memory_repository, clock=clock)
