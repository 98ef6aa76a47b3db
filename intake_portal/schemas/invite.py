"""Invite schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field
from intake_portal.models.invite import InviteStatus


class InviteCreate(BaseModel):
    email: EmailStr
    company_name: str | None = Field(default=None, max_length=255)
    expiration_days: int | None = Field(default=None, ge=1, le=30)
    metadata: dict[str, Any] | None = None


class InviteResponse(BaseModel):
    id: str
    email: str
    company_name: str | None = None
    status: InviteStatus
    invited_by: str | None = None
    expires_at: datetime
    used_at: datetime | None = None
    project_id: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class InviteCreateResponse(BaseModel):
    success: bool = True
    invite: InviteResponse
    invite_url: str
    email_sent: bool
    warning: str | None = None


class InviteListResponse(BaseModel):
    invites: list[InviteResponse]
    total: int
    limit: int
    offset: int


class InviteValidationResponse(BaseModel):
    """Public: never exposes the token, inviter or metadata."""
    valid: bool
    email: str | None = None
    company_name: str | None = None
    expires_at: datetime | None = None
    error: str | None = None


class InviteStatsResponse(BaseModel):
    pending: int
    used: int
    expired: int
    revoked: int
    total: int
