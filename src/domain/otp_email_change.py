"""
OTP-based email change domain service.

Instead of signed URL links, this flow hands out a numeric code that the
account holder types back in. Verification and confirmation are fused:
a correct code applies the change immediately. Only the new address is
verified; there is no dual-confirmation variant of this flow.
"""

from dataclasses import dataclass, field

from .exceptions import InvalidEmailChangeRequest
from .otp import OtpGenerator, OtpResult
from .ports import EmailChangeable
from .request import EmailChangeRequest
from .workflow import NO_PENDING_CHANGE, EmailChangeWorkflow


@dataclass(kw_only=True)
class OtpEmailChangeService(EmailChangeWorkflow):
    """Domain service for code-based email changes."""

    otp_generator: OtpGenerator = field(default_factory=OtpGenerator)

    def generate_otp(self, account: EmailChangeable, new_email: str) -> OtpResult:
        """
        Start an email change and mint the one-time code.

        The code is returned exactly once; only its hash is stored. A
        selector is still minted so the request stays uniquely addressable.

        Raises:
            TooManyEmailChangeRequests: If the account already has a live request
        """
        requested_at, expires_at = self._release_slot(account)

        otp = self.otp_generator.generate()
        components = self.token_generator.create_token()

        self.repository.persist(
            EmailChangeRequest.for_account(
                account,
                selector=components.selector,
                hashed_token=self.otp_generator.hash(otp),
                new_email=new_email,
                expires_at=expires_at,
                requested_at=requested_at,
            )
        )

        return OtpResult(otp=otp, expires_at=expires_at)

    def verify_otp(self, account: EmailChangeable, otp: str) -> str:
        """
        Verify the code and complete the email change.

        Returns:
            The account's previous email address

        Raises:
            InvalidEmailChangeRequest: No pending change or wrong code
            ExpiredEmailChangeRequest: If the request has expired
            TooManyVerificationAttempts: If the failed-attempt ceiling was reached
        """
        request = self.repository.find_by_account(account)
        if request is None:
            raise InvalidEmailChangeRequest(NO_PENDING_CHANGE)

        self._ensure_live(request)

        if not self.otp_generator.verify(otp, request.hashed_token):
            self._register_failed_attempt(request, "Invalid verification code.")

        return self._apply_change(account, request)
