"""
Console notifier adapter - Implements EmailChangeNotifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging email change messages instead of delivering them.
Useful for demos and development; swap for an SMTP adapter in production.
"""

import logging

from src.domain.otp import OtpResult
from src.domain.ports import EmailChangeable
from src.domain.signature import EmailChangeDualSignature, EmailChangeSignature

logger = logging.getLogger(__name__)


class ConsoleEmailChangeNotifier:
    """
    Implements EmailChangeNotifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Messages are logged at INFO level to be visible in docker-compose logs.
    """

    def __init__(self, sender_email: str, sender_name: str | None = None) -> None:
        self.sender_email = sender_email
        self.sender_name = sender_name

    @property
    def sender(self) -> str:
        if self.sender_name:
            return f"{self.sender_name} <{self.sender_email}>"
        return self.sender_email

    def send_verification_email(
        self, account: EmailChangeable, new_email: str, signature: EmailChangeSignature
    ) -> None:
        """
        Log the verification link for the new address.

        In dual-confirmation mode the link for the current address is logged
        as a second message addressed to ``account.get_email()``.
        """
        logger.info(
            "[EMAIL CHANGE] From: %s To: %s Link: %s (expires in %d hour(s))",
            self.sender,
            new_email,
            signature.signed_url,
            signature.expires_in_hours(),
        )
        if isinstance(signature, EmailChangeDualSignature):
            logger.info(
                "[EMAIL CHANGE] From: %s To: %s Confirm change to %s: %s",
                self.sender,
                account.get_email(),
                new_email,
                signature.old_email_signed_url,
            )

    def send_otp(self, account: EmailChangeable, new_email: str, result: OtpResult) -> None:
        logger.info(
            "[EMAIL CHANGE] From: %s To: %s Code: %s (expires at %s)",
            self.sender,
            new_email,
            result.otp,
            result.expires_at.isoformat(),
        )

    def send_email_change_confirmation(
        self, account: EmailChangeable, old_email: str, new_email: str
    ) -> None:
        logger.info(
            "[EMAIL CHANGE] From: %s To: %s Your email address was changed to %s",
            self.sender,
            old_email,
            new_email,
        )

    def send_cancellation_notice(self, account: EmailChangeable, cancelled_email: str) -> None:
        logger.info(
            "[EMAIL CHANGE] From: %s To: %s The pending change to %s was cancelled",
            self.sender,
            account.get_email(),
            cancelled_email,
        )
