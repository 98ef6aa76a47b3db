"""Auth request/response schemas."""
from pydantic import BaseModel, EmailStr, model_validator


class MagicLinkRequest(BaseModel):
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str


class PasswordLoginRequest(BaseModel):
    email: EmailStr
    password: str


class SetPasswordRequest(BaseModel):
    password: str
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    password: str
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class PasswordStrengthRequest(BaseModel):
    password: str


class PasswordStrengthResponse(BaseModel):
    valid: bool
    score: int
    errors: list[str]


class SessionUser(BaseModel):
    id: str
    email: str
    type: str  # staff | portal_user
    role: str | None = None
    company_id: str | None = None
    contact_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    has_password: bool = False


class SessionResponse(BaseModel):
    success: bool = True
    expires_in: int
    expires_at: str
    user: SessionUser | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
