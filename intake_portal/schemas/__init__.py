from intake_portal.schemas.auth import MagicLinkRequest, VerifyCodeRequest, PasswordLoginRequest, SessionResponse
from intake_portal.schemas.onboarding import OnboardingSubmission, OnboardingSubmitResponse, OnboardingStatusResponse
from intake_portal.schemas.invite import InviteCreate, InviteResponse, InviteValidationResponse
from intake_portal.schemas.portal import ProjectSummary, ProjectDetail, ChecklistItemUpdate, WebhookCreate
from intake_portal.schemas.admin import ProjectUpdate, AdminStats
