"""Admin-only schemas."""
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from intake_portal.models.email_log import EmailType
from intake_portal.models.project import ProjectStatus


class ProjectUpdate(BaseModel):
    status: ProjectStatus | None = None
    stage: str | None = Field(default=None, max_length=64)
    target_go_live_date: date | None = None
    actual_go_live_date: date | None = None
    assigned_csm_id: str | None = None
    notes: str | None = Field(default=None, max_length=10000)

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v):
        if v is None:
            raise ValueError("status cannot be null")
        return v

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class ProjectUpdateResponse(BaseModel):
    success: bool = True
    status: ProjectStatus
    previous_status: ProjectStatus
    notifications_sent: int = 0
    notification_errors: list[str] = []


class AdminStats(BaseModel):
    totalProjects: int
    totalCompanies: int
    byStatus: dict[str, int]


class PortalUserCreate(BaseModel):
    contact_id: str


class PortalUserResponse(BaseModel):
    id: str
    auth_user_id: str
    company_id: str
    contact_id: str | None = None
    email: str
    is_active: bool


class EmailLogResponse(BaseModel):
    id: str
    email_type: EmailType
    recipient_email: str
    subject: str
    status: str
    provider_message_id: str | None = None
    error_message: str | None = None
    project_id: str | None = None
    invite_id: str | None = None
    meta: dict[str, Any] | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
