"""Tenant access: who is calling (staff or portal user) and what they may touch."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from intake_portal.errors import NotFoundError, TenantAccessError
from intake_portal.models.company import Contact
from intake_portal.models.project import OnboardingProject
from intake_portal.models.user import PortalUser, StaffUser, StaffRole


@dataclass(frozen=True)
class StaffPrincipal:
    auth_user_id: str
    user_id: str
    email: str
    role: StaffRole
    first_name: str | None = None
    last_name: str | None = None
    kind = "staff"
    company_id = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email


@dataclass(frozen=True)
class PortalPrincipal:
    auth_user_id: str
    user_id: str
    email: str
    company_id: str
    contact_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    kind = "portal_user"

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email


TenantContext = Union[StaffPrincipal, PortalPrincipal]


def resolve_context(db: Session, auth_user_id: str) -> TenantContext | None:
    """Staff record wins; otherwise the portal user. None = authenticated but not provisioned."""
    staff = db.query(StaffUser).filter(
        StaffUser.auth_user_id == auth_user_id,
        StaffUser.is_active.is_(True),
    ).first()
    if staff:
        return StaffPrincipal(
            auth_user_id=auth_user_id,
            user_id=staff.id,
            email=staff.email,
            role=staff.role,
            first_name=staff.first_name,
            last_name=staff.last_name,
        )

    portal_user = db.query(PortalUser).filter(
        PortalUser.auth_user_id == auth_user_id,
        PortalUser.is_active.is_(True),
    ).first()
    if not portal_user:
        return None
    contact = None
    if portal_user.contact_id:
        contact = db.query(Contact).filter(Contact.id == portal_user.contact_id).first()
    return PortalPrincipal(
        auth_user_id=auth_user_id,
        user_id=portal_user.id,
        email=contact.email if contact else "",
        company_id=portal_user.company_id,
        contact_id=portal_user.contact_id,
        first_name=contact.first_name if contact else None,
        last_name=contact.last_name if contact else None,
    )


def is_staff(context: TenantContext) -> bool:
    return isinstance(context, StaffPrincipal)


def has_company_access(context: TenantContext, company_id: str | None) -> bool:
    if is_staff(context):
        return True
    return company_id is not None and context.company_id == company_id


def require_company_access(context: TenantContext, company_id: str | None) -> None:
    if not has_company_access(context, company_id):
        raise TenantAccessError("Access denied to this company")


def has_project_access(db: Session, context: TenantContext, project_id: str) -> bool:
    project = db.query(OnboardingProject).filter(OnboardingProject.id == project_id).first()
    if not project:
        return False
    return has_company_access(context, project.company_id)


def require_project_access(db: Session, context: TenantContext, project_id: str) -> OnboardingProject:
    project = db.query(OnboardingProject).filter(OnboardingProject.id == project_id).first()
    if not project or not has_company_access(context, project.company_id):
        raise TenantAccessError("Access denied to this project")
    return project


def require_staff_role(context: TenantContext | None, *roles: StaffRole) -> StaffPrincipal:
    if not isinstance(context, StaffPrincipal):
        raise TenantAccessError("Staff access required")
    if roles and context.role not in roles:
        raise TenantAccessError("Insufficient role")
    return context


def get_scoped(db: Session, context: TenantContext, model, item_id: str, label: str):
    """Load a project-owned row; missing and out-of-tenant both read as not found."""
    item = db.query(model).filter(model.id == item_id).first()
    if not item or not has_project_access(db, context, item.project_id):
        raise NotFoundError(f"{label} not found")
    return item
