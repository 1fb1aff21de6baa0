"""
Adversarial tests for concurrent access.

Verifies that concurrent operations on different accounts never
interfere, and documents the accepted same-account behavior.

Security rationale:
- Requests are keyed by account, so an attacker flooding one account
  cannot disturb another account's pending change
- Same-account initiation is a check-then-act sequence; the outcome is
  still one stored request per account, whichever write wins
"""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.adapters.repository.accounts import Account
from src.adapters.repository.memory import InMemoryEmailChangeRequestRepository
from src.domain.email_change import EmailChangeService
from src.domain.exceptions import TooManyEmailChangeRequests
from tests.helpers import InMemoryAccountStore, query_params

pytestmark = pytest.mark.adversarial

ROUTE = "verify_email_change"


class TestConcurrentAccounts:
    """Different accounts are fully independent."""

    def test_concurrent_initiations_for_distinct_accounts(
        self,
        make_service: Callable[..., EmailChangeService],
        memory_repository: InMemoryEmailChangeRequestRepository,
        account_store: InMemoryAccountStore,
    ) -> None:
        """Twenty accounts initiating at once each get exactly one request."""
        service = make_service()
        accounts = [
            account_store.add(Account(id=100 + i, email=f"user{i}@example.com"))
            for i in range(20)
        ]

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [
                executor.submit(service.generate_signature, ROUTE, a, f"new{a.id}@example.com")
                for a in accounts
            ]
            signatures = [f.result() for f in futures]

        assert len(memory_repository.all()) == 20
        selectors = {query_params(s.signed_url)["selector"] for s in signatures}
        assert len(selectors) == 20

    def test_concurrent_verifications_for_distinct_accounts(
        self,
        make_service: Callable[..., EmailChangeService],
        account_store: InMemoryAccountStore,
    ) -> None:
        """Each account ends up with its own new address."""
        service = make_service()
        accounts = [
            account_store.add(Account(id=200 + i, email=f"user{i}@example.com"))
            for i in range(10)
        ]
        links = [
            query_params(
                service.generate_signature(ROUTE, a, f"new{a.id}@example.com").signed_url
            )
            for a in accounts
        ]

        def verify_and_confirm(params: dict[str, str]) -> None:
            validated = service.validate_new_email_token(params["selector"], params["token"])
            service.confirm_email_change(validated)

        with ThreadPoolExecutor(max_workers=5) as executor:
            for f in [executor.submit(verify_and_confirm, p) for p in links]:
                f.result()

        for a in accounts:
            assert a.get_email() == f"new{a.id}@example.com"

    def test_flooding_one_account_does_not_affect_another(
        self,
        make_service: Callable[..., EmailChangeService],
        account: Account,
        account_store: InMemoryAccountStore,
    ) -> None:
        """Throttling rejections on a victim account leave other accounts usable."""
        service = make_service()
        other = account_store.add(Account(id=2, email="other@example.com"))
        service.generate_signature(ROUTE, account, "new@example.com")

        rejected = 0
        rejected_lock = threading.Lock()

        def flood() -> None:
            nonlocal rejected
            try:
                service.generate_signature(ROUTE, account, "attacker@example.com")
            except TooManyEmailChangeRequests:
                with rejected_lock:
                    rejected += 1

        with ThreadPoolExecutor(max_workers=5) as executor:
            for f in [executor.submit(flood) for _ in range(10)]:
                f.result()

        assert rejected == 10
        assert service.get_pending_email(account) == "new@example.com"
        service.generate_signature(ROUTE, other, "other-new@example.com")
        assert service.get_pending_email(other) == "other-new@example.com"


class TestSameAccountRace:
    """Documented behavior for simultaneous initiations on one account."""

    def test_one_request_survives_per_account(
        self,
        make_service: Callable[..., EmailChangeService],
        account: Account,
        memory_repository: InMemoryEmailChangeRequestRepository,
    ) -> None:
        """
        Simultaneous initiations may both pass the throttle check, but the
        account slot only ever points at one request.
        """
        service = make_service()
        barrier = threading.Barrier(5)

        def initiate(i: int) -> None:
            barrier.wait()
            try:
                service.generate_signature(ROUTE, account, f"new{i}@example.com")
            except TooManyEmailChangeRequests:
                pass

        with ThreadPoolExecutor(max_workers=5) as executor:
            for f in [executor.submit(initiate, i) for i in range(5)]:
                f.result()

        pending = memory_repository.find_by_account(account)
        assert pending is not None
        assert service.get_pending_email(account) == pending.new_email
