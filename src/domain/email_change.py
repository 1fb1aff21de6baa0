"""
Email change domain service - signed link verification.

This module contains the core business logic for changing an account's
email address only after the holder proves control of the new address
(and, in dual-confirmation mode, of the old one as well).

Request State Machine
=====================

Single mode:
    (none) --generate_signature--> PENDING
    PENDING --validate_new_email_token--> VALIDATED (account returned)
    VALIDATED --confirm_email_change--> (deleted, email swapped)

Dual mode (flags are independent, order does not matter):
    PENDING --validate_new_email_token--> confirmed_by_new_email = True
    PENDING --validate_old_email_token--> confirmed_by_old_email = True
    both flags set --confirm_email_change--> (deleted, email swapped)

From any live state:
    wrong token          -> attempts += 1
    attempts == maximum  -> (deleted) TooManyVerificationAttempts
    expires_at <= now    -> ExpiredEmailChangeRequest
    cancel_email_change  -> (deleted)
"""

from collections.abc import Mapping
from dataclasses import dataclass

from .exceptions import InvalidEmailChangeRequest
from .ports import EmailChangeable, UrlGenerator
from .request import EmailChangeRequest
from .signature import EmailChangeDualSignature, EmailChangeSignature
from .workflow import NO_PENDING_CHANGE, EmailChangeWorkflow

OLD_EMAIL_FLAG = "confirm_old"


@dataclass(kw_only=True)
class EmailChangeService(EmailChangeWorkflow):
    """
    Domain service for link-based email changes.

    Orchestrates the flow: throttling, token minting, persistence,
    timing-safe verification, lockout and the final email swap.
    """

    url_generator: UrlGenerator
    require_old_email_confirmation: bool = False

    def generate_signature(
        self,
        route_name: str,
        account: EmailChangeable,
        new_email: str,
        extra_params: Mapping[str, str] | None = None,
    ) -> EmailChangeSignature:
        """
        Start an email change and build the signed verification URL(s).

        Args:
            route_name: Name of the verification endpoint
            account: Account requesting the change
            new_email: Candidate address
            extra_params: Additional query parameters for the URLs

        Returns:
            EmailChangeSignature, or EmailChangeDualSignature in dual mode

        Raises:
            TooManyEmailChangeRequests: If the account already has a live request
        """
        requested_at, expires_at = self._release_slot(account)
        components = self.token_generator.create_token()

        request = EmailChangeRequest.for_account(
            account,
            selector=components.selector,
            hashed_token=components.hashed_token,
            new_email=new_email,
            expires_at=expires_at,
            requested_at=requested_at,
        )

        old_components = None
        if self.require_old_email_confirmation:
            old_components = self.token_generator.create_token()
            request.enable_old_email_confirmation(
                old_components.selector, old_components.hashed_token
            )

        self.repository.persist(request)

        params = dict(extra_params or {})
        signed_url = self.url_generator.generate(
            route_name,
            {**params, "selector": components.selector, "token": components.token},
        )

        if old_components is None:
            return EmailChangeSignature(signed_url=signed_url, expires_at=expires_at)

        old_email_signed_url = self.url_generator.generate(
            route_name,
            {
                **params,
                "selector": old_components.selector,
                "token": old_components.token,
                OLD_EMAIL_FLAG: "1",
            },
        )
        return EmailChangeDualSignature(
            signed_url=signed_url,
            expires_at=expires_at,
            old_email_signed_url=old_email_signed_url,
        )

    def validate_new_email_token(
        self, selector: str | None, token: str | None
    ) -> EmailChangeable:
        """
        Validate the link sent to the new address and fetch its account.

        In dual mode this records the new address' confirmation; the change
        itself is applied by confirm_email_change().

        Raises:
            InvalidEmailChangeRequest: Missing parameters, unknown link, wrong token, unknown account
            ExpiredEmailChangeRequest: If the link has expired
            TooManyVerificationAttempts: If the failed-attempt ceiling was reached
        """
        self._require_parameters(selector, token)
        request = self.repository.find_by_selector(selector)
        if request is None:
            raise InvalidEmailChangeRequest("Invalid verification link.")

        self._ensure_live(request)

        if not self.token_generator.verify_token(request.hashed_token, token):
            self._register_failed_attempt(request, "Invalid verification token.")

        if request.requires_old_email_confirmation:
            request.confirmed_by_new_email = True
            self.repository.persist(request)

        return self._fetch_account(request)

    def validate_old_email_token(
        self, selector: str | None, token: str | None
    ) -> EmailChangeable:
        """
        Validate the link sent to the old address (dual mode only).

        Shares the attempt counter and the failure semantics of
        validate_new_email_token().
        """
        self._require_parameters(selector, token)
        request = self.repository.find_by_old_email_selector(selector)
        if request is None or request.old_email_hashed_token is None:
            raise InvalidEmailChangeRequest("Invalid verification link.")

        self._ensure_live(request)

        if not self.token_generator.verify_token(request.old_email_hashed_token, token):
            self._register_failed_attempt(request, "Invalid verification token.")

        request.confirmed_by_old_email = True
        self.repository.persist(request)

        return self._fetch_account(request)

    def confirm_email_change(self, account: EmailChangeable) -> str:
        """
        Apply the pending change to ``account``.

        The caller is responsible for persisting the account afterwards.

        Returns:
            The account's previous email address

        Raises:
            InvalidEmailChangeRequest: No pending change, or dual mode not fully confirmed
            ExpiredEmailChangeRequest: The request expired before it was applied
        """
        request = self.repository.find_by_account(account)
        if request is None:
            raise InvalidEmailChangeRequest(NO_PENDING_CHANGE)

        self._ensure_live(request)

        if not request.is_fully_confirmed():
            raise InvalidEmailChangeRequest(
                "Email change requires confirmation from both old and new email addresses."
            )

        return self._apply_change(account, request)

    def _require_parameters(self, selector: str | None, token: str | None) -> None:
        if not selector or not token or not isinstance(selector, str) or not isinstance(token, str):
            raise InvalidEmailChangeRequest("Missing or invalid verification parameters.")

    def _fetch_account(self, request: EmailChangeRequest) -> EmailChangeable:
        account = self.repository.get_account_from_request(request)
        if account is None:
            raise InvalidEmailChangeRequest("User not found.")
        return account
