"""Portal and admin shared schemas: project views, checklist, documents, integrations."""
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator
from intake_portal.models.checklist import ChecklistStatus
from intake_portal.models.company import CompanySize, ContactRole
from intake_portal.models.document import DocumentStatus
from intake_portal.models.project import ModuleType, ProjectStatus


class CompanyResponse(BaseModel):
    id: str
    legal_name: str
    dba_name: str | None = None
    website: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    company_size: CompanySize | None = None
    lines_of_business: list[str] = []
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ContactResponse(BaseModel):
    id: str
    company_id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    title: str | None = None
    role: ContactRole
    is_active: bool

    class Config:
        from_attributes = True


class ChecklistTemplateResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    category: str
    order_index: int
    required_for_modules: list[str] = []

    class Config:
        from_attributes = True


class ChecklistItemResponse(BaseModel):
    id: str
    project_id: str
    template_id: str
    status: ChecklistStatus
    assigned_to_id: str | None = None
    completed_at: datetime | None = None
    notes: str | None = None
    template: ChecklistTemplateResponse | None = None

    class Config:
        from_attributes = True


class ChecklistItemUpdate(BaseModel):
    status: ChecklistStatus
    notes: str | None = Field(default=None, max_length=2000)


class DocumentResponse(BaseModel):
    id: str
    project_id: str
    name: str
    file_type: str
    file_size: int
    status: DocumentStatus
    uploaded_by_id: str | None = None
    notes: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class DocumentReview(BaseModel):
    status: DocumentStatus
    notes: str | None = Field(default=None, max_length=2000)


class ActivityLogResponse(BaseModel):
    id: str
    project_id: str
    user_id: str | None = None
    action: str
    details: dict[str, Any] | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ModuleSelectionResponse(BaseModel):
    id: str
    module_type: ModuleType
    is_selected: bool
    config: dict[str, Any] | None = None


class ChecklistProgress(BaseModel):
    total: int
    completed: int


class ProjectSummary(BaseModel):
    id: str
    status: ProjectStatus
    stage: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    target_go_live_date: date | None = None
    company: CompanyResponse | None = None
    primary_contact: ContactResponse | None = None
    module_selections: list[ModuleSelectionResponse] = []
    checklist_progress: ChecklistProgress


class IntegrationConfigResponse(BaseModel):
    id: str
    project_id: str
    system_name: str
    system_type: str
    connection_method: str | None = None
    api_documentation_url: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class IntegrationConfigCreate(BaseModel):
    system_name: str = Field(min_length=1, max_length=255)
    system_type: str = Field(min_length=1, max_length=100)
    connection_method: str | None = Field(default=None, max_length=100)
    api_documentation_url: HttpUrl | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ProjectDetail(ProjectSummary):
    actual_go_live_date: date | None = None
    sow_signed_at: datetime | None = None
    assigned_csm_id: str | None = None
    notes: str | None = None
    contacts: list[ContactResponse] = []
    checklist_items: list[ChecklistItemResponse] = []
    documents: list[DocumentResponse] = []
    integration_configs: list[IntegrationConfigResponse] = []
    activity_logs: list[ActivityLogResponse] | None = None


class WebhookCreate(BaseModel):
    url: HttpUrl
    events: list[str] = Field(default_factory=lambda: ["*"])
    description: str | None = Field(default=None, max_length=500)

    @field_validator("events")
    @classmethod
    def events_not_empty(cls, v: list[str]) -> list[str]:
        cleaned = [e.strip() for e in v if e and e.strip()]
        return cleaned or ["*"]


class WebhookResponse(BaseModel):
    id: str
    project_id: str
    url: str
    events: list[str]
    description: str | None = None
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class WebhookCreatedResponse(BaseModel):
    webhook: WebhookResponse
    secret: str  # returned once


class ApiCredentialResponse(BaseModel):
    api_key: str
    api_secret: str  # returned once
    created_at: datetime | None = None


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    title: str | None = Field(default=None, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def name_not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class TeamInviteRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    title: str | None = Field(default=None, max_length=100)
    role: ContactRole = ContactRole.other

    @field_validator("role")
    @classmethod
    def not_primary(cls, v: ContactRole) -> ContactRole:
        if v == ContactRole.primary:
            raise ValueError("A company can only have one primary contact")
        return v
