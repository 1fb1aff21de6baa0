"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field


class InitiateRequest(BaseModel):
    """Request model for starting an email change (link or OTP)."""

    new_email: EmailStr


class OtpVerifyRequest(BaseModel):
    """Request model for submitting a one-time code."""

    code: str = Field(
        ...,
        min_length=4,
        max_length=10,
        pattern=r"^\d+$",
        description="Numeric one-time code",
    )


class InitiatedData(BaseModel):
    new_email: str
    expires_at: datetime


class ConfirmedData(BaseModel):
    old_email: str
    new_email: str


class PendingData(BaseModel):
    has_pending: bool
    pending_email: str | None = None
    confirmed_by_new_email: bool = False
    confirmed_by_old_email: bool = False


class EmailChangeResponse(BaseModel):
    """Response envelope shared by every email change endpoint."""

    status: Literal["initiated", "validated", "confirmed", "cancelled", "pending", "none"]
    message: str | None = None
    data: dict[str, Any] | None = None


class ErrorDetail(BaseModel):
    type: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    status: Literal["error"] = "error"
    message: str
    error: ErrorDetail
