"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Format rules (code alphabet, purposes, password length) are left to the
domain so that HTTP and in-process callers see the same errors.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class SignUpRequest(BaseModel):
    """Request model for user registration."""

    username: str = Field(..., description="Display name (max 180 characters)")
    email: EmailStr
    password: str = Field(..., description="User password (min 6 characters)")


class SignInRequest(BaseModel):
    """Request model for sign in."""

    email: str
    password: str


class UserIdResponse(BaseModel):
    """Response model carrying the affected user's id."""

    user_id: UUID


class UserResponse(BaseModel):
    """Public view of a user account. Never includes the password hash."""

    id: UUID
    username: str
    email: str
    status: str
    created_at: datetime
    updated_at: datetime
    logged_at: datetime | None = None


class ChangeEmailRequest(BaseModel):
    email: EmailStr


class ChangePasswordRequest(BaseModel):
    password: str


class ResetPasswordRequest(BaseModel):
    """Request model for a code-backed password reset."""

    code: str = Field(..., description="Unused password_reset code")
    password: str


class ChangeStatusRequest(BaseModel):
    operation: str = Field(..., description="One of: suspend, soft_delete, restore")


class GenerateCodesRequest(BaseModel):
    """Request model for issuing a new security challenge."""

    purpose: str = Field(..., description="2fa, email_verification, password_reset, ...")
    code_length: int = Field(..., description="Code length, 6 to 12 characters")
    security_level: str = Field(default="medium", description="low, medium, high or ultra")


class ChallengeIdResponse(BaseModel):
    challenge_id: UUID


class ChallengeResponse(BaseModel):
    """
    Active challenge summary.

    Code values are only ever delivered out of band, never over this API.
    """

    id: UUID
    purpose: str
    created_at: datetime
    expires_at: datetime
    codes_total: int
    codes_unused: int


class RedeemCodeRequest(BaseModel):
    code: str
    purpose: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    code: int | None = None
