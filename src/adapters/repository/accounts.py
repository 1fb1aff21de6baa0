"""
Account store - PostgreSQL-backed accounts implementing EmailChangeable.

The email change engine only needs the capability
{get id, get email, set email}; this module supplies it for the
``accounts`` table and resolves the owner of an EmailChangeRequest.
"""

from dataclasses import dataclass

from psycopg_pool import ConnectionPool

from src.domain.request import EmailChangeRequest


@dataclass
class Account:
    """Account record. Implements EmailChangeable via structural subtyping."""

    id: int
    email: str

    def get_id(self) -> int:
        return self.id

    def get_email(self) -> str:
        return self.email

    def set_email(self, email: str) -> None:
        self.email = email


class PostgresAccountRepository:
    """Loads and saves Account records via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get(self, account_id: int) -> Account | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT id, email FROM accounts WHERE id = %s", (account_id,))
            row = cursor.fetchone()
        return Account(id=row[0], email=row[1]) if row is not None else None

    def find_for_request(self, request: EmailChangeRequest) -> Account | None:
        """
        Resolve the account owning ``request``.

        Used as the account provider of the request repositories. Requests
        owned by another account type, or with a non-numeric id, resolve to None.
        """
        if request.account_type != Account.__qualname__:
            return None
        try:
            account_id = int(request.account_id)
        except ValueError:
            return None
        return self.get(account_id)

    def save(self, account: Account) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "UPDATE accounts SET email = %s WHERE id = %s",
                (account.email, account.id),
            )
            conn.commit()

    def email_in_use(self, email: str, exclude_id: int | None = None) -> bool:
        """Whether another account already owns ``email`` (case-insensitive)."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT 1 FROM accounts WHERE lower(email) = lower(%s) AND id IS DISTINCT FROM %s",
                (email, exclude_id),
            )
            return cursor.fetchone() is not None
