"""Project queries and mutations shared by the portal and admin routers.

Status machine: discovery_in_progress -> sow_pending -> contract_signed ->
onboarding -> live, with churned reachable from any non-terminal state.
live and churned are terminal. Every status change notifies all contacts.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from intake_portal.database import utcnow
from intake_portal.errors import ConflictError, NotFoundError, ValidationError
from intake_portal.models.checklist import ChecklistItem, ChecklistStatus, ChecklistTemplate
from intake_portal.models.company import Company, Contact, ContactRole
from intake_portal.models.document import Document
from intake_portal.models.integration import IntegrationConfig
from intake_portal.models.project import CONFIG_MODELS, ModuleSelection, OnboardingProject, ProjectStatus
from intake_portal.schemas.admin import ProjectUpdate
from intake_portal.schemas.portal import (
    ActivityLogResponse,
    ChecklistItemResponse,
    ChecklistProgress,
    ChecklistTemplateResponse,
    CompanyResponse,
    ContactResponse,
    DocumentResponse,
    IntegrationConfigResponse,
    ModuleSelectionResponse,
    ProjectDetail,
    ProjectSummary,
)
from intake_portal.services import activity_log
from intake_portal.services.status_notifications import FanoutResult, notify_all_project_contacts
from intake_portal.services.tenant import TenantContext, get_scoped, is_staff, require_project_access

logger = logging.getLogger(__name__)

_NEXT_STATUS = {
    ProjectStatus.discovery_in_progress: ProjectStatus.sow_pending,
    ProjectStatus.sow_pending: ProjectStatus.contract_signed,
    ProjectStatus.contract_signed: ProjectStatus.onboarding,
    ProjectStatus.onboarding: ProjectStatus.live,
}
TERMINAL_STATUSES = frozenset({ProjectStatus.live, ProjectStatus.churned})

SOW_APPROVED_STAGE = "sow_approved"


@dataclass(frozen=True)
class ProjectChange:
    project: OnboardingProject
    previous_status: ProjectStatus
    status_changed: bool
    notification: FanoutResult | None = None
    errors: list[str] = field(default_factory=list)


def can_transition(current: ProjectStatus, new: ProjectStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == ProjectStatus.churned:
        return True
    return _NEXT_STATUS.get(current) == new


def _columns(row, exclude=("id", "module_selection_id", "created_at", "updated_at")) -> dict:
    return {c.name: getattr(row, c.key) for c in row.__table__.columns if c.name not in exclude}


def get_project_or_404(db: Session, project_id: str) -> OnboardingProject:
    project = db.query(OnboardingProject).filter(OnboardingProject.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def list_projects(db: Session, context: TenantContext, status: ProjectStatus | None = None) -> list[OnboardingProject]:
    query = db.query(OnboardingProject)
    if not is_staff(context):
        query = query.filter(OnboardingProject.company_id == context.company_id)
    if status:
        query = query.filter(OnboardingProject.status == status)
    return query.order_by(OnboardingProject.created_at.desc()).all()


def _primary_contact(contacts: list[Contact]) -> Contact | None:
    return next((c for c in contacts if c.role == ContactRole.primary), None)


def _module_selections(db: Session, project_id: str, with_config: bool) -> list[ModuleSelectionResponse]:
    rows = db.query(ModuleSelection).filter(ModuleSelection.project_id == project_id).all()
    out = []
    for row in sorted(rows, key=lambda r: r.module_type.value):
        config = None
        if with_config and row.is_selected:
            model = CONFIG_MODELS[row.module_type]
            config_row = db.query(model).filter(model.module_selection_id == row.id).first()
            config = _columns(config_row) if config_row else None
        out.append(ModuleSelectionResponse(id=row.id, module_type=row.module_type, is_selected=row.is_selected, config=config))
    return out


def list_checklist(db: Session, project_id: str) -> list[ChecklistItemResponse]:
    rows = (
        db.query(ChecklistItem, ChecklistTemplate)
        .join(ChecklistTemplate, ChecklistItem.template_id == ChecklistTemplate.id)
        .filter(ChecklistItem.project_id == project_id)
        .order_by(ChecklistTemplate.order_index)
        .all()
    )
    items = []
    for item, template in rows:
        resp = ChecklistItemResponse.model_validate(item)
        resp.template = ChecklistTemplateResponse.model_validate(template)
        items.append(resp)
    return items


def _checklist_progress(db: Session, project_id: str) -> ChecklistProgress:
    statuses = [s for (s,) in db.query(ChecklistItem.status).filter(ChecklistItem.project_id == project_id).all()]
    return ChecklistProgress(total=len(statuses), completed=sum(1 for s in statuses if s == ChecklistStatus.complete))


def build_summary(db: Session, project: OnboardingProject) -> ProjectSummary:
    company = db.query(Company).filter(Company.id == project.company_id).first()
    contacts = db.query(Contact).filter(Contact.company_id == project.company_id).all()
    primary = _primary_contact(contacts)
    return ProjectSummary(
        id=project.id,
        status=project.status,
        stage=project.stage,
        created_at=project.created_at,
        updated_at=project.updated_at,
        target_go_live_date=project.target_go_live_date,
        company=CompanyResponse.model_validate(company) if company else None,
        primary_contact=ContactResponse.model_validate(primary) if primary else None,
        module_selections=_module_selections(db, project.id, with_config=False),
        checklist_progress=_checklist_progress(db, project.id),
    )


def build_detail(db: Session, project: OnboardingProject, include_activity: bool = False) -> ProjectDetail:
    summary = build_summary(db, project)
    contacts = (
        db.query(Contact)
        .filter(Contact.company_id == project.company_id, Contact.is_active.is_(True))
        .order_by(Contact.created_at)
        .all()
    )
    documents = db.query(Document).filter(Document.project_id == project.id).order_by(Document.created_at.desc()).all()
    integrations = db.query(IntegrationConfig).filter(IntegrationConfig.project_id == project.id).all()
    activity = None
    if include_activity:
        activity = [ActivityLogResponse.model_validate(a) for a in activity_log.list_activity(db, project.id, limit=100)]
    return ProjectDetail(
        **summary.model_dump(exclude={"module_selections"}),
        module_selections=_module_selections(db, project.id, with_config=True),
        actual_go_live_date=project.actual_go_live_date,
        sow_signed_at=project.sow_signed_at,
        assigned_csm_id=project.assigned_csm_id,
        notes=project.notes,
        contacts=[ContactResponse.model_validate(c) for c in contacts],
        checklist_items=list_checklist(db, project.id),
        documents=[DocumentResponse.model_validate(d) for d in documents],
        integration_configs=[IntegrationConfigResponse.model_validate(i) for i in integrations],
        activity_logs=activity,
    )


def update_checklist_item(
    db: Session,
    context: TenantContext,
    item_id: str,
    status: ChecklistStatus,
    notes: str | None = None,
) -> ChecklistItem:
    """completed_at is set iff the item is complete. Flushes; commit remains with caller."""
    item = get_scoped(db, context, ChecklistItem, item_id, "Checklist item")
    previous = item.status
    item.status = status
    item.completed_at = utcnow() if status == ChecklistStatus.complete else None
    if notes is not None:
        item.notes = notes
    db.flush()
    activity_log.log_activity(db, item.project_id, activity_log.ACTION_CHECKLIST_ITEM_UPDATED, user_id=context.auth_user_id, details={
        "item_id": item.id,
        "previous_status": previous,
        "new_status": status,
        "notes": notes,
    })
    return item


def approve_sow(db: Session, context: TenantContext, project_id: str) -> OnboardingProject:
    """Stamp sow_signed_at once. A second approval is a conflict and changes nothing."""
    project = require_project_access(db, context, project_id)
    if project.sow_signed_at is not None:
        raise ConflictError("Statement of Work has already been signed")
    signed_at = utcnow()
    claimed = db.query(OnboardingProject).filter(
        OnboardingProject.id == project.id,
        OnboardingProject.sow_signed_at.is_(None),
    ).update(
        {OnboardingProject.sow_signed_at: signed_at, OnboardingProject.stage: SOW_APPROVED_STAGE, OnboardingProject.updated_at: signed_at},
        synchronize_session="fetch",
    )
    if not claimed:
        raise ConflictError("Statement of Work has already been signed")
    activity_log.log_activity(db, project.id, activity_log.ACTION_SOW_APPROVED, user_id=context.auth_user_id, details={
        "signed_at": signed_at,
        "signed_by": context.email,
    })
    return project


def update_project(db: Session, staff: TenantContext, project_id: str, data: ProjectUpdate) -> ProjectChange:
    """Apply an admin update. Status changes go through the state machine, then notify every contact."""
    project = get_project_or_404(db, project_id)
    previous_status = project.status
    updates = data.model_dump(exclude_unset=True)

    new_status = updates.get("status")
    status_changed = new_status is not None and new_status != previous_status
    if status_changed and not can_transition(previous_status, new_status):
        raise ValidationError(f"Cannot change status from {previous_status.value} to {new_status.value}")
    if new_status is not None and not status_changed:
        updates.pop("status")

    for key, value in updates.items():
        setattr(project, key, value)
    if status_changed and new_status == ProjectStatus.live and project.actual_go_live_date is None:
        project.actual_go_live_date = date.today()
    project.updated_at = utcnow()
    db.flush()

    activity_log.log_activity(db, project.id, activity_log.ACTION_PROJECT_UPDATED, user_id=staff.auth_user_id, details={
        "updates": updates,
        "previous_status": previous_status,
    })
    if status_changed:
        activity_log.log_activity(db, project.id, activity_log.ACTION_STATUS_CHANGED, user_id=staff.auth_user_id, details={
            "previous_status": previous_status,
            "new_status": new_status,
        })
    db.commit()

    notification = None
    if status_changed:
        notification = notify_all_project_contacts(db, project.id, previous_status, new_status)
        db.commit()
        if not notification.success:
            logger.warning("Status change for project %s not delivered to any contact: %s", project.id, notification.errors)
    db.refresh(project)
    return ProjectChange(
        project=project,
        previous_status=previous_status,
        status_changed=status_changed,
        notification=notification,
        errors=list(notification.errors) if notification else [],
    )


def admin_stats(db: Session) -> dict:
    statuses = [s for (s,) in db.query(OnboardingProject.status).all()]
    by_status = Counter(s.value for s in statuses)
    return {
        "totalProjects": len(statuses),
        "totalCompanies": db.query(Company).count(),
        "byStatus": dict(by_status),
    }
