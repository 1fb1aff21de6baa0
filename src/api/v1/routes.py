"""
API v1 routes.

Defines REST endpoints for the verified email change API. Domain errors
raised here are rendered by the handlers in src.api.errors; every state
transition and failed verification is also recorded in the audit log.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status

from src.adapters.repository.accounts import Account, PostgresAccountRepository
from src.api.dependencies import (
    get_account_repository,
    get_audit_log,
    get_current_account,
    get_email_change_service,
    get_notifier,
    get_otp_service,
)
from src.api.models import (
    ConfirmedData,
    EmailChangeResponse,
    ErrorResponse,
    InitiatedData,
    InitiateRequest,
    OtpVerifyRequest,
    PendingData,
)
from src.domain.email_change import EmailChangeService
from src.domain.events import AuditAction, EmailChangeAuditEvent, failure_action
from src.domain.exceptions import (
    EmailAlreadyInUse,
    EmailChangeError,
    InvalidEmailChangeRequest,
    SameEmail,
)
from src.domain.otp_email_change import OtpEmailChangeService
from src.domain.ports import EmailChangeAuditLog, EmailChangeNotifier
from src.domain.workflow import NO_PENDING_CHANGE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

VERIFY_ROUTE = "verify_email_change"

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid link, token or code"},
    401: {"description": "Unknown account"},
    403: {"model": ErrorResponse, "description": "Too many verification attempts"},
    409: {"model": ErrorResponse, "description": "Same email or email already in use"},
    410: {"model": ErrorResponse, "description": "Request expired"},
    429: {"model": ErrorResponse, "description": "A request is already pending"},
}


def _client_metadata(http_request: Request, **extra: Any) -> dict[str, Any]:
    return {
        "ip_address": http_request.client.host if http_request.client else None,
        "user_agent": http_request.headers.get("user-agent"),
        **extra,
    }


@contextmanager
def _audit_failures(
    audit: EmailChangeAuditLog, metadata: dict[str, Any], account_id: Any = None
) -> Iterator[None]:
    """Record failed verifications, then let the error propagate."""
    try:
        yield
    except EmailChangeError as exc:
        action = failure_action(exc)
        if action is not None:
            audit.record(
                EmailChangeAuditEvent(action, account_id, {**metadata, "reason": exc.reason})
            )
        raise


def _check_new_email(
    account: Account, new_email: str, accounts: PostgresAccountRepository
) -> str:
    if new_email.lower() == account.get_email().lower():
        raise SameEmail(new_email)
    if accounts.email_in_use(new_email, exclude_id=account.get_id()):
        raise EmailAlreadyInUse(new_email)
    return new_email


def _confirmed(
    account: Account,
    old_email: str,
    accounts: PostgresAccountRepository,
    notifier: EmailChangeNotifier,
    audit: EmailChangeAuditLog,
    metadata: dict[str, Any],
) -> EmailChangeResponse:
    accounts.save(account)
    notifier.send_email_change_confirmation(account, old_email, account.get_email())
    audit.record(EmailChangeAuditEvent(AuditAction.CONFIRMED, account.get_id(), metadata))
    logger.info("Email change completed for account %s", account.get_id())
    return EmailChangeResponse(
        status="confirmed",
        message="Your email address has been changed",
        data=ConfirmedData(old_email=old_email, new_email=account.get_email()).model_dump(),
    )


@router.post(
    "/email-change",
    response_model=EmailChangeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_ERRORS,
    summary="Request an email change",
    description="Sends a verification link to the new address "
    "(and to the current address when dual confirmation is enabled).",
)
async def initiate_email_change(
    request_data: InitiateRequest,
    http_request: Request,
    account: Account = Depends(get_current_account),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
    service: EmailChangeService = Depends(get_email_change_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    new_email = _check_new_email(account, request_data.new_email, accounts)

    signature = service.generate_signature(VERIFY_ROUTE, account, new_email)
    notifier.send_verification_email(account, new_email, signature)
    audit.record(
        EmailChangeAuditEvent(
            AuditAction.INITIATED,
            account.get_id(),
            _client_metadata(http_request, method="link", new_email=new_email),
        )
    )
    logger.info("Email change initiated for account %s", account.get_id())

    return EmailChangeResponse(
        status="initiated",
        message="Verification email sent",
        data=InitiatedData(new_email=new_email, expires_at=signature.expires_at).model_dump(
            mode="json"
        ),
    )


@router.get(
    "/email-change/verify",
    name=VERIFY_ROUTE,
    response_model=EmailChangeResponse,
    responses=_ERRORS,
    summary="Follow a verification link",
    description="Validates the link sent to the new (or, with confirm_old=1, the current) "
    "address. The change is applied as soon as every required party has confirmed.",
)
async def verify_email_change(
    http_request: Request,
    selector: str | None = Query(None),
    token: str | None = Query(None),
    confirm_old: bool = Query(False),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
    service: EmailChangeService = Depends(get_email_change_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    metadata = _client_metadata(http_request, channel="old" if confirm_old else "new")
    with _audit_failures(audit, metadata):
        if confirm_old:
            account = service.validate_old_email_token(selector, token)
        else:
            account = service.validate_new_email_token(selector, token)

    action = AuditAction.OLD_EMAIL_CONFIRMED if confirm_old else AuditAction.VERIFIED
    audit.record(EmailChangeAuditEvent(action, account.get_id(), metadata))

    pending = service.get_pending_request(account)
    if pending is not None and pending.is_fully_confirmed():
        old_email = service.confirm_email_change(account)
        return _confirmed(account, old_email, accounts, notifier, audit, metadata)

    logger.info(
        "Email change link validated for account %s (old address: %s)",
        account.get_id(),
        confirm_old,
    )
    return EmailChangeResponse(
        status="validated",
        message="Confirmation recorded",
        data={
            "requires_old_email_confirmation": (
                pending is not None and pending.requires_old_email_confirmation
            )
        },
    )


@router.post(
    "/email-change/confirm",
    response_model=EmailChangeResponse,
    responses=_ERRORS,
    summary="Apply a dual-confirmed email change",
    description="Applies a pending change once both the old and the new address confirmed it.",
)
async def confirm_email_change(
    http_request: Request,
    account: Account = Depends(get_current_account),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
    service: EmailChangeService = Depends(get_email_change_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    pending = service.get_pending_request(account)
    if pending is None:
        raise InvalidEmailChangeRequest(NO_PENDING_CHANGE)
    # Single-channel requests are only applied by following their link
    if not pending.requires_old_email_confirmation:
        raise InvalidEmailChangeRequest("Open the verification link to confirm this change.")

    old_email = service.confirm_email_change(account)
    return _confirmed(
        account, old_email, accounts, notifier, audit, _client_metadata(http_request)
    )


@router.delete(
    "/email-change",
    response_model=EmailChangeResponse,
    summary="Cancel the pending email change",
)
async def cancel_email_change(
    http_request: Request,
    account: Account = Depends(get_current_account),
    service: EmailChangeService = Depends(get_email_change_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    pending_email = service.get_pending_email(account)
    service.cancel_email_change(account)

    if pending_email is not None:
        notifier.send_cancellation_notice(account, pending_email)
        audit.record(
            EmailChangeAuditEvent(
                AuditAction.CANCELLED,
                account.get_id(),
                _client_metadata(http_request, new_email=pending_email),
            )
        )
        logger.info("Email change cancelled for account %s", account.get_id())

    return EmailChangeResponse(status="cancelled", message="Email change cancelled")


@router.get(
    "/email-change",
    response_model=EmailChangeResponse,
    summary="Show the pending email change",
)
async def get_email_change(
    account: Account = Depends(get_current_account),
    service: EmailChangeService = Depends(get_email_change_service),
) -> EmailChangeResponse:
    pending = service.get_pending_request(account)
    if pending is None:
        return EmailChangeResponse(status="none", data=PendingData(has_pending=False).model_dump())

    return EmailChangeResponse(
        status="pending",
        data=PendingData(
            has_pending=True,
            pending_email=pending.new_email,
            confirmed_by_new_email=pending.confirmed_by_new_email,
            confirmed_by_old_email=pending.confirmed_by_old_email,
        ).model_dump(),
    )


@router.post(
    "/email-change/otp",
    response_model=EmailChangeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_ERRORS,
    summary="Request an email change with a one-time code",
)
async def initiate_otp_email_change(
    request_data: InitiateRequest,
    http_request: Request,
    account: Account = Depends(get_current_account),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
    service: OtpEmailChangeService = Depends(get_otp_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    new_email = _check_new_email(account, request_data.new_email, accounts)

    result = service.generate_otp(account, new_email)
    notifier.send_otp(account, new_email, result)
    audit.record(
        EmailChangeAuditEvent(
            AuditAction.INITIATED,
            account.get_id(),
            _client_metadata(http_request, method="otp", new_email=new_email),
        )
    )
    logger.info("OTP email change initiated for account %s", account.get_id())

    return EmailChangeResponse(
        status="initiated",
        message="Verification code sent",
        data=InitiatedData(new_email=new_email, expires_at=result.expires_at).model_dump(
            mode="json"
        ),
    )


@router.post(
    "/email-change/otp/verify",
    response_model=EmailChangeResponse,
    responses=_ERRORS,
    summary="Submit the one-time code",
)
async def verify_otp_email_change(
    request_data: OtpVerifyRequest,
    http_request: Request,
    account: Account = Depends(get_current_account),
    accounts: PostgresAccountRepository = Depends(get_account_repository),
    service: OtpEmailChangeService = Depends(get_otp_service),
    notifier: EmailChangeNotifier = Depends(get_notifier),
    audit: EmailChangeAuditLog = Depends(get_audit_log),
) -> EmailChangeResponse:
    metadata = _client_metadata(http_request, method="otp")
    with _audit_failures(audit, metadata, account.get_id()):
        old_email = service.verify_otp(account, request_data.code)

    return _confirmed(account, old_email, accounts, notifier, audit, metadata)
