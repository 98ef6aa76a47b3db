"""Onboarding wizard payload."""
from pydantic import BaseModel, EmailStr, Field, HttpUrl, TypeAdapter, field_validator, model_validator
from intake_portal.models.company import CompanySize
from intake_portal.models.project import WhiteLabelLevel

_url_adapter = TypeAdapter(HttpUrl)


class CompanyInput(BaseModel):
    legal_name: str = Field(min_length=1, max_length=255)
    dba_name: str | None = Field(default=None, max_length=255)
    website: str | None = None
    address_line_1: str = Field(min_length=1, max_length=255)
    address_line_2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    company_size: CompanySize | None = None
    lines_of_business: list[str] = Field(default_factory=list)

    @field_validator("legal_name", "address_line_1", "city", "state", "postal_code")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator("website")
    @classmethod
    def website_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        _url_adapter.validate_python(v.strip())
        return v.strip()


class ContactInput(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=30)
    title: str | None = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ModulesInput(BaseModel):
    core: bool = False
    comms: bool = False
    fnol: bool = False

    @model_validator(mode="after")
    def at_least_one(self):
        if not (self.core or self.comms or self.fnol):
            raise ValueError("At least one module must be selected")
        return self

    def selected(self) -> list[str]:
        return [name for name in ("core", "comms", "fnol") if getattr(self, name)]


class CoreRequirements(BaseModel):
    claim_types: list[str] = Field(default_factory=list)
    perils: list[str] = Field(default_factory=list)
    document_types: list[str] = Field(default_factory=list)
    monthly_claim_volume: int | None = Field(default=None, gt=0)
    monthly_document_volume: int | None = Field(default=None, gt=0)
    pain_points: str | None = Field(default=None, max_length=2000)


class CommsRequirements(BaseModel):
    desired_channels: list[str] = Field(default_factory=list)
    monthly_message_volume: int | None = Field(default=None, gt=0)
    white_label_level: WhiteLabelLevel = WhiteLabelLevel.none
    languages_required: list[str] = Field(default_factory=lambda: ["English"])


class FnolRequirements(BaseModel):
    desired_intake_methods: list[str] = Field(default_factory=list)
    monthly_fnol_volume: int | None = Field(default=None, gt=0)
    lines_of_business: list[str] = Field(default_factory=list)
    photo_required: bool = False
    video_required: bool = False


class RequirementsInput(BaseModel):
    core: CoreRequirements | None = None
    comms: CommsRequirements | None = None
    fnol: FnolRequirements | None = None


class OnboardingSubmission(BaseModel):
    company: CompanyInput
    contact: ContactInput
    modules: ModulesInput
    requirements: RequirementsInput = Field(default_factory=RequirementsInput)
    invite_token: str | None = None


class OnboardingSubmitResponse(BaseModel):
    success: bool = True
    project_id: str
    message: str = "Onboarding submitted successfully"


class OnboardingStatusResponse(BaseModel):
    id: str
    status: str
    createdAt: str | None = None
    companyName: str | None = None
