"""Repository adapters - Storage implementations."""

from .accounts import Account, PostgresAccountRepository
from .cache import RedisEmailChangeRequestRepository
from .factory import build_request_repository
from .memory import InMemoryEmailChangeRequestRepository
from .postgres import PostgresEmailChangeRequestRepository, run_migrations

__all__ = [
    "Account",
    "InMemoryEmailChangeRequestRepository",
    "PostgresAccountRepository",
    "PostgresEmailChangeRequestRepository",
    "RedisEmailChangeRequestRepository",
    "build_request_repository",
    "run_migrations",
]
