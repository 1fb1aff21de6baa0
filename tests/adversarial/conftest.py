"""
Shared fixtures for adversarial tests.

Provides service factories over the in-memory backend for brute force,
timing and race condition tests.
"""

from collections.abc import Callable

import pytest

from src.adapters.repository.memory import InMemoryEmailChangeRequestRepository
from src.domain.email_change import EmailChangeService
from tests.helpers import FrozenClock, StaticUrlGenerator


@pytest.fixture
def make_service(
    memory_repository: InMemoryEmailChangeRequestRepository,
    url_generator: StaticUrlGenerator,
    clock: FrozenClock,
) -> Callable[..., EmailChangeService]:
    """Build a link-based service sharing the test repository."""

    def factory(max_attempts: int = 5, dual: bool = False) -> EmailChangeService:
        return EmailChangeService(
            repository=memory_repository,
            url_generator=url_generator,
            max_attempts=max_attempts,
            require_old_email_confirmation=dual,
            clock=clock,
        )

    return factory
