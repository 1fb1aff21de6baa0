"""
Purge expired email change requests.

Meant to be scheduled (cron, Kubernetes CronJob) next to the opportunistic
sweep that runs on every initiation:

    python -m src.cli.purge [--dry-run] [--older-than SECONDS]
"""

import argparse
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from psycopg_pool import ConnectionPool
from redis import Redis

from src.adapters.repository.factory import build_request_repository
from src.config.settings import Settings, get_settings
from src.domain.ports import EmailChangeRequestRepository
from src.domain.request import utcnow

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative number of seconds: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verify-email-change-purge",
        description="Purge expired email change requests",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count the expired requests without removing them",
    )
    parser.add_argument(
        "--older-than",
        type=_non_negative_int,
        default=0,
        metavar="SECONDS",
        help="Only purge requests that expired more than SECONDS ago",
    )
    return parser


def purge(
    repository: EmailChangeRequestRepository,
    *,
    dry_run: bool = False,
    older_than: int = 0,
    now: datetime | None = None,
) -> int:
    """
    Remove (or, with ``dry_run``, count) expired requests.

    Args:
        repository: Request repository to sweep
        dry_run: Count instead of deleting
        older_than: Grace period in seconds; 0 purges everything already expired
        now: Reference time, defaults to the current UTC time

    Returns:
        Number of purged (or purgeable) requests
    """
    if older_than == 0 and now is None:
        return repository.count_expired() if dry_run else repository.remove_expired()

    cutoff = (now or utcnow()) - timedelta(seconds=older_than)
    if dry_run:
        return repository.count_expired_older_than(cutoff)
    return repository.remove_expired_older_than(cutoff)


@contextmanager
def open_repository(settings: Settings) -> Iterator[EmailChangeRequestRepository]:
    """Open the configured request repository and release its connections afterwards."""
    pool = None
    redis_client = None

    if settings.repository_backend == "postgres":
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=1,
            max_size=1,
        )
    elif settings.repository_backend == "redis":
        redis_client = Redis.from_url(settings.redis_url, decode_responses=True)

    try:
        yield build_request_repository(settings, pool=pool, redis_client=redis_client)
    finally:
        if redis_client is not None:
            redis_client.close()
        if pool is not None:
            pool.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with open_repository(settings) as repository:
        count = purge(repository, dry_run=args.dry_run, older_than=args.older_than)

    if args.dry_run:
        print(f"Would purge {count} expired email change request(s).")
    else:
        print(f"Purged {count} expired email change request(s).")

    logger.info("Purge finished (dry run: %s, older than: %ds)", args.dry_run, args.older_than)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
