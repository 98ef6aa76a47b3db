"""Status-change emails to a company's contacts."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.models.company import Company, Contact, ContactRole
from intake_portal.models.project import OnboardingProject
from intake_portal.services.activity_log import log_activity, ACTION_STATUS_NOTIFICATION_SENT
from intake_portal.services.notifications import SendResult, send_status_update_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FanoutResult:
    success: bool
    sent_count: int = 0
    errors: list[str] = field(default_factory=list)


def _portal_url() -> str:
    return f"{get_settings().app_base_url.rstrip('/')}/portal"


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


def _load(db: Session, project_id: str) -> tuple[OnboardingProject | None, Company | None]:
    project = db.query(OnboardingProject).filter(OnboardingProject.id == project_id).first()
    if not project:
        return None, None
    company = db.query(Company).filter(Company.id == project.company_id).first()
    return project, company


def notify_status_change(db: Session, project_id: str, previous_status: Any, new_status: Any) -> SendResult:
    """Email the primary contact (or the first active contact) about a status change."""
    project, company = _load(db, project_id)
    if not project or not company:
        return SendResult(success=False, error="Project not found")
    contacts = (
        db.query(Contact)
        .filter(Contact.company_id == company.id, Contact.is_active.is_(True))
        .order_by(Contact.created_at)
        .all()
    )
    contact = next((c for c in contacts if c.role == ContactRole.primary), None) or (contacts[0] if contacts else None)
    if not contact:
        return SendResult(success=False, error="No contact found for project")

    result = send_status_update_email(
        db,
        contact.email,
        contact_name=contact.first_name,
        company_name=company.legal_name,
        previous_status=previous_status,
        new_status=new_status,
        portal_url=_portal_url(),
        project_id=project.id,
    )
    if result.success:
        log_activity(db, project.id, ACTION_STATUS_NOTIFICATION_SENT, details={
            "recipient": contact.email,
            "previous_status": _status_value(previous_status),
            "new_status": _status_value(new_status),
        })
    return result


def notify_all_project_contacts(db: Session, project_id: str, previous_status: Any, new_status: Any) -> FanoutResult:
    """Email every active contact. Per-recipient failures are collected, never raised."""
    project, company = _load(db, project_id)
    if not project or not company:
        return FanoutResult(success=False, errors=["Project not found"])
    contacts = (
        db.query(Contact)
        .filter(Contact.company_id == company.id, Contact.is_active.is_(True))
        .order_by(Contact.created_at)
        .all()
    )
    if not contacts:
        return FanoutResult(success=False, errors=["No active contacts found"])

    sent = 0
    errors: list[str] = []
    recipients: list[str] = []
    for contact in contacts:
        result = send_status_update_email(
            db,
            contact.email,
            contact_name=contact.first_name,
            company_name=company.legal_name,
            previous_status=previous_status,
            new_status=new_status,
            portal_url=_portal_url(),
            project_id=project.id,
        )
        if result.success:
            sent += 1
            recipients.append(contact.email)
        else:
            errors.append(f"{contact.email}: {result.error or 'send failed'}")

    if sent:
        log_activity(db, project.id, ACTION_STATUS_NOTIFICATION_SENT, details={
            "recipients": recipients,
            "previous_status": _status_value(previous_status),
            "new_status": _status_value(new_status),
        })
    if errors:
        logger.warning("Status notification for project %s: %d sent, %d failed", project.id, sent, len(errors))
    return FanoutResult(success=sent > 0, sent_count=sent, errors=errors)
