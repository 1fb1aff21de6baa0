"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, Header, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.audit.log import LoggingAuditLog
from src.adapters.repository.accounts import Account, PostgresAccountRepository
from src.adapters.smtp.console import ConsoleEmailChangeNotifier
from src.api.urls import RequestUrlGenerator
from src.config.settings import Settings, get_settings
from src.domain.email_change import EmailChangeService
from src.domain.otp import OtpGenerator
from src.domain.otp_email_change import OtpEmailChangeService
from src.domain.ports import (
    EmailChangeAuditLog,
    EmailChangeNotifier,
    EmailChangeRequestRepository,
)


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_account_repository(request: Request) -> PostgresAccountRepository:
    """Create account repository with connection pool from app state."""
    return PostgresAccountRepository(get_pool(request))


def get_request_repository(request: Request) -> EmailChangeRequestRepository:
    """
    Get the email change request repository from app state.

    Built once at startup by the backend factory, so the in-memory
    backend keeps its state across requests.
    """
    return request.app.state.request_repository


def get_notifier(settings: Settings = Depends(get_settings)) -> EmailChangeNotifier:
    """Get console notifier configured with the sender identity."""
    return ConsoleEmailChangeNotifier(
        sender_email=settings.notifier_sender_email,
        sender_name=settings.notifier_sender_name,
    )


def get_audit_log() -> EmailChangeAuditLog:
    """Get the audit log that records email change events."""
    return LoggingAuditLog()


def get_email_change_service(
    request: Request,
    repository: EmailChangeRequestRepository = Depends(get_request_repository),
    settings: Settings = Depends(get_settings),
) -> EmailChangeService:
    """
    Create link-based email change service with injected dependencies.

    Wires together the repository, the URL builder and policy settings.
    """
    return EmailChangeService(
        repository=repository,
        url_generator=RequestUrlGenerator(request),
        request_lifetime=settings.request_lifetime,
        max_attempts=settings.max_attempts,
        retry_ttl=settings.throttle_limit,
        require_old_email_confirmation=settings.require_old_email_confirmation,
    )


def get_otp_service(
    repository: EmailChangeRequestRepository = Depends(get_request_repository),
    settings: Settings = Depends(get_settings),
) -> OtpEmailChangeService:
    """Create OTP email change service with injected dependencies."""
    return OtpEmailChangeService(
        repository=repository,
        otp_generator=OtpGenerator(settings.otp_length),
        request_lifetime=settings.request_lifetime,
        max_attempts=settings.max_attempts,
        retry_ttl=settings.throttle_limit,
    )


def get_current_account(
    x_account_id: int = Header(..., description="Authenticated account id set by the gateway"),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
) -> Account:
    """
    Resolve the authenticated account.

    Authentication happens upstream; the gateway forwards the account id
    in the ``X-Account-ID`` header. Unknown ids are rejected with 401.
    """
    account = accounts.get(x_account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown account",
        )
    return account
