"""
Unit tests for dual-confirmation mode (old and new address both confirm).
"""

import pytest

from src.adapters.repository.accounts import Account
from src.adapters.repository.memory import InMemoryEmailChangeRequestRepository
from src.domain.email_change import EmailChangeService
from src.domain.exceptions import (
    ExpiredEmailChangeRequest,
    InvalidEmailChangeRequest,
    TooManyVerificationAttempts,
)
from tests.helpers import FrozenClock, StaticUrlGenerator, query_params

ROUTE = "verify_email_change"
BOTH_REQUIRED = "Email change requires confirmation from both old and new email addresses."


@pytest.fixture
def links(dual_service: EmailChangeService, account: Account) -> tuple[dict, dict]:
    """(new address params, old address params) of a fresh dual request."""
    signature = dual_service.generate_signature(ROUTE, account, "new@example.com")
    return query_params(signature.signed_url), query_params(signature.old_email_signed_url)


class TestDualConfirmation:
    """Tests for the two-party confirmation state machine."""

    def test_confirm_fails_before_any_confirmation(
        self, dual_service: EmailChangeService, account: Account, links: tuple[dict, dict]
    ) -> None:
        """Nothing confirmed yet: the change cannot be applied."""
        with pytest.raises(InvalidEmailChangeRequest) as exc_info:
            dual_service.confirm_email_change(account)
        assert exc_info.value.reason == BOTH_REQUIRED

    def test_confirm_fails_with_only_new_address(
        self, dual_service: EmailChangeService, account: Account, links: tuple[dict, dict]
    ) -> None:
        """Validating only the new address is not enough."""
        new, _ = links
        dual_service.validate_new_email_token(new["selector"], new["token"])

        with pytest.raises(InvalidEmailChangeRequest) as exc_info:
            dual_service.confirm_email_change(account)
        assert exc_info.value.reason == BOTH_REQUIRED
        assert account.get_email() == "old@example.com"

    def test_confirm_fails_with_only_old_address(
        self, dual_service: EmailChangeService, account: Account, links: tuple[dict, dict]
    ) -> None:
        """Validating only the old address is not enough."""
        _, old = links
        dual_service.validate_old_email_token(old["selector"], old["token"])

        with pytest.raises(InvalidEmailChangeRequest):
            dual_service.confirm_email_change(account)

    @pytest.mark.parametrize("old_first", [True, False])
    def test_confirm_succeeds_in_either_order(
        self,
        dual_service: EmailChangeService,
        account: Account,
        links: tuple[dict, dict],
        memory_repository: InMemoryEmailChangeRequestRepository,
        old_first: bool,
    ) -> None:
        """Both confirmations, in any order, allow the change."""
        new, old = links
        steps = [
            lambda: dual_service.validate_new_email_token(new["selector"], new["token"]),
            lambda: dual_service.validate_old_email_token(old["selector"], old["token"]),
        ]
        if old_first:
            steps.reverse()
        for step in steps:
            assert step() is account

        assert dual_service.confirm_email_change(account) == "old@example.com"
        assert account.get_email() == "new@example.com"
        assert memory_repository.all() == []

    def test_flags_are_persisted(
        self,
        dual_service: EmailChangeService,
        account: Account,
        links: tuple[dict, dict],
        memory_repository: InMemoryEmailChangeRequestRepository,
    ) -> None:
        """Each channel sets its own flag."""
        new, old = links
        dual_service.validate_new_email_token(new["selector"], new["token"])
        request = memory_repository.find_by_account(account)
        assert request.confirmed_by_new_email is True
        assert request.confirmed_by_old_email is False

        dual_service.validate_old_email_token(old["selector"], old["token"])
        assert memory_repository.find_by_account(account).confirmed_by_old_email is True

    def test_new_selector_is_not_an_old_selector(
        self, dual_service: EmailChangeService, links: tuple[dict, dict]
    ) -> None:
        """The channels use distinct selectors."""
        new, old = links
        with pytest.raises(InvalidEmailChangeRequest):
            dual_service.validate_old_email_token(new["selector"], new["token"])
        with pytest.raises(InvalidEmailChangeRequest):
            dual_service.validate_new_email_token(old["selector"], old["token"])

    def test_old_channel_expiry(
        self,
        dual_service: EmailChangeService,
        links: tuple[dict, dict],
        clock: FrozenClock,
    ) -> None:
        """The old-address link expires with the request."""
        _, old = links
        clock.advance(3600)

        with pytest.raises(ExpiredEmailChangeRequest):
            dual_service.validate_old_email_token(old["selector"], old["token"])

    def test_confirm_rejects_expired_request(
        self,
        dual_service: EmailChangeService,
        account: Account,
        links: tuple[dict, dict],
        clock: FrozenClock,
    ) -> None:
        """Both confirmations recorded, but the request expired before it was applied."""
        new, old = links
        dual_service.validate_new_email_token(new["selector"], new["token"])
        dual_service.validate_old_email_token(old["selector"], old["token"])
        clock.advance(3601)

        with pytest.raises(ExpiredEmailChangeRequest):
            dual_service.confirm_email_change(account)
        assert account.get_email() == "old@example.com"

    def test_channels_share_attempt_counter(
        self,
        memory_repository: InMemoryEmailChangeRequestRepository,
        url_generator: StaticUrlGenerator,
        clock: FrozenClock,
        account: Account,
    ) -> None:
        """Wrong guesses on either channel count towards the same ceiling."""
        service = EmailChangeService(
            repository=memory_repository,
            url_generator=url_generator,
            require_old_email_confirmation=True,
            max_attempts=2,
            clock=clock,
        )
        signature = service.generate_signature(ROUTE, account, "new@example.com")
        new = query_params(signature.signed_url)
        old = query_params(signature.old_email_signed_url)

        with pytest.raises(InvalidEmailChangeRequest):
            service.validate_new_email_token(new["selector"], "0" * 64)
        with pytest.raises(TooManyVerificationAttempts):
            service.validate_old_email_token(old["selector"], "0" * 64)

        assert memory_repository.all() == []
