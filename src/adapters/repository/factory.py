"""
Repository selection - picks the request backend from configuration.

None of the domain code knows which backend is active.
"""

import logging

from psycopg_pool import ConnectionPool
from redis import Redis

from src.config.settings import Settings
from src.domain.ports import AccountProvider, EmailChangeRequestRepository

from .cache import RedisEmailChangeRequestRepository
from .memory import InMemoryEmailChangeRequestRepository
from .postgres import PostgresEmailChangeRequestRepository

logger = logging.getLogger(__name__)


def build_request_repository(
    settings: Settings,
    *,
    pool: ConnectionPool | None = None,
    redis_client: Redis | None = None,
    account_provider: AccountProvider | None = None,
) -> EmailChangeRequestRepository:
    """
    Create the request repository configured by ``settings.repository_backend``.

    Args:
        settings: Application settings
        pool: Connection pool, required for the postgres backend
        redis_client: Redis client, created from ``settings.redis_url`` when omitted
        account_provider: Resolves the account owning a request

    Raises:
        ValueError: If the postgres backend is selected without a pool
    """
    backend = settings.repository_backend
    logger.debug("Using %s email change request repository", backend)

    if backend == "postgres":
        if pool is None:
            raise ValueError("The postgres repository backend requires a connection pool")
        return PostgresEmailChangeRequestRepository(pool, account_provider)

    if backend == "redis":
        client = redis_client or Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisEmailChangeRequestRepository(client, account_provider)

    return InMemoryEmailChangeRequestRepository(account_provider)
