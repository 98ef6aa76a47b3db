"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from intake_portal.models.auth import AuthUser, AuthSession, AuthMethod, LoginCode, PasswordResetToken
from intake_portal.models.user import StaffUser, StaffRole, PortalUser
from intake_portal.models.company import Company, CompanySize, Contact, ContactRole
from intake_portal.models.project import (
    OnboardingProject,
    ProjectStatus,
    ModuleSelection,
    ModuleType,
    WhiteLabelLevel,
    CoreModuleConfig,
    CommsModuleConfig,
    FnolModuleConfig,
    CONFIG_MODELS,
)
from intake_portal.models.checklist import ChecklistTemplate, ChecklistItem, ChecklistStatus
from intake_portal.models.document import Document, DocumentStatus
from intake_portal.models.activity_log import ActivityLog
from intake_portal.models.invite import Invite, InviteStatus
from intake_portal.models.email_log import EmailLog, EmailType
from intake_portal.models.integration import Webhook, IntegrationConfig, ApiCredential

__all__ = [
    "AuthUser",
    "AuthSession",
    "AuthMethod",
    "LoginCode",
    "PasswordResetToken",
    "StaffUser",
    "StaffRole",
    "PortalUser",
    "Company",
    "CompanySize",
    "Contact",
    "ContactRole",
    "OnboardingProject",
    "ProjectStatus",
    "ModuleSelection",
    "ModuleType",
    "WhiteLabelLevel",
    "CoreModuleConfig",
    "CommsModuleConfig",
    "FnolModuleConfig",
    "CONFIG_MODELS",
    "ChecklistTemplate",
    "ChecklistItem",
    "ChecklistStatus",
    "Document",
    "DocumentStatus",
    "ActivityLog",
    "Invite",
    "InviteStatus",
    "EmailLog",
    "EmailType",
    "Webhook",
    "IntegrationConfig",
    "ApiCredential",
]
