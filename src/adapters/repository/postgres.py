"""
PostgreSQL repository adapter - Implements EmailChangeRequestRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Storage Design:
---------------
1. **Hashes only**: ``hashed_token`` and ``old_email_hashed_token`` hold
   SHA-256 hex digests. Plaintext tokens and codes never reach the database.

2. **Upsert on selector**: persist() inserts a new request or, for an
   existing selector, saves the mutable state (attempt counter and
   confirmation flags). Immutable columns are never rewritten.

3. **Application time**: timestamps are written and compared using the
   application's UTC clock rather than NOW(), so expiry decisions made by
   the domain and by purge sweeps agree.

4. **Lookups**: ``selector`` and ``old_email_selector`` are UNIQUE;
   ``account_identifier`` and ``expires_at`` are indexed for the
   per-account lookup and for purge sweeps.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.domain.ports import AccountProvider, EmailChangeable
from src.domain.request import EmailChangeRequest, account_identifier, utcnow

logger = logging.getLogger(__name__)

_COLUMNS = """
    account_identifier, selector, hashed_token, new_email, expires_at, requested_at,
    attempts, old_email_selector, old_email_hashed_token,
    confirmed_by_new_email, confirmed_by_old_email
"""


def _to_request(row: tuple) -> EmailChangeRequest:
    return EmailChangeRequest(
        account_identifier=row[0],
        selector=row[1],
        hashed_token=row[2],
        new_email=row[3],
        expires_at=row[4],
        requested_at=row[5],
        attempts=row[6],
        old_email_selector=row[7],
        old_email_hashed_token=row[8],
        confirmed_by_new_email=row[9],
        confirmed_by_old_email=row[10],
    )


class PostgresEmailChangeRequestRepository:
    """
    Implements EmailChangeRequestRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        account_provider: AccountProvider | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            account_provider: Resolves the account owning a request
            clock: Source of the current UTC time for purge sweeps
        """
        self._pool = pool
        self._account_provider = account_provider
        self._clock = clock

    def persist(self, request: EmailChangeRequest) -> None:
        sql = f"""
            INSERT INTO email_change_requests ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (selector) DO UPDATE
            SET attempts = EXCLUDED.attempts,
                old_email_selector = EXCLUDED.old_email_selector,
                old_email_hashed_token = EXCLUDED.old_email_hashed_token,
                confirmed_by_new_email = EXCLUDED.confirmed_by_new_email,
                confirmed_by_old_email = EXCLUDED.confirmed_by_old_email
        """
        params = (
            request.account_identifier,
            request.selector,
            request.hashed_token,
            request.new_email,
            request.expires_at,
            request.requested_at,
            request.attempts,
            request.old_email_selector,
            request.old_email_hashed_token,
            request.confirmed_by_new_email,
            request.confirmed_by_old_email,
        )

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()

    def find_by_selector(self, selector: str) -> EmailChangeRequest | None:
        return self._find_one("selector", selector)

    def find_by_account(self, account: EmailChangeable) -> EmailChangeRequest | None:
        return self._find_one("account_identifier", account_identifier(account))

    def find_by_old_email_selector(self, selector: str) -> EmailChangeRequest | None:
        return self._find_one("old_email_selector", selector)

    def remove(self, request: EmailChangeRequest) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "DELETE FROM email_change_requests WHERE selector = %s", (request.selector,)
            )
            conn.commit()

    def remove_expired(self) -> int:
        return self.remove_expired_older_than(self._clock())

    def count_expired(self) -> int:
        return self.count_expired_older_than(self._clock())

    def remove_expired_older_than(self, cutoff: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM email_change_requests WHERE expires_at < %s", (cutoff,))
            conn.commit()
            removed = cursor.rowcount

        if removed:
            logger.info("Removed %d expired email change request(s)", removed)
        return removed

    def count_expired_older_than(self, cutoff: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM email_change_requests WHERE expires_at < %s", (cutoff,)
            )
            return cursor.fetchone()[0]

    def get_account_from_request(self, request: EmailChangeRequest) -> EmailChangeable | None:
        if self._account_provider is None:
            return None
        return self._account_provider(request)

    def _find_one(self, column: str, value: str) -> EmailChangeRequest | None:
        # column is always one of the fixed names above, never caller input
        sql = f"SELECT {_COLUMNS} FROM email_change_requests WHERE {column} = %s LIMIT 1"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (value,))
            row = cursor.fetchone()

        return _to_request(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
