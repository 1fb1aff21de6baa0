"""
Shared fixtures for integration tests.

Tests run against real PostgreSQL and Redis servers (e.g. via
docker-compose) configured through the usual settings. When a server is
unreachable the dependent tests are skipped.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from src.adapters.repository.cache import INDEX_KEY
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests, with migrations applied."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty both tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM email_change_requests")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield


@pytest.fixture
def create_account(pool: ConnectionPool, clean_database: None):
    """Insert an account and return its id."""

    def factory(email: str) -> int:
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("INSERT INTO accounts (email) VALUES (%s) RETURNING id", (email,))
            account_id = cursor.fetchone()[0]
            conn.commit()
        return account_id

    return factory


@pytest.fixture(scope="session")
def redis_client() -> Generator[Redis, None, None]:
    """Create Redis client for integration tests."""
    client = Redis.from_url(get_settings().redis_url, decode_responses=True)
    try:
        client.ping()
    except RedisConnectionError:
        client.close()
        pytest.skip("Redis is not reachable")

    yield client
    client.close()


@pytest.fixture
def clean_redis(redis_client: Redis) -> Generator[None, None, None]:
    """Drop every email change key before each test."""
    keys = list(redis_client.scan_iter("email_change:*"))
    if keys:
        redis_client.delete(*keys)
    redis_client.delete(INDEX_KEY)
    yield
