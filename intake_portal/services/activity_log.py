"""Append-only project activity log. Never update or delete."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from intake_portal.models.activity_log import ActivityLog

ACTION_ONBOARDING_SUBMITTED = "onboarding_submitted"
ACTION_CHECKLIST_ITEM_UPDATED = "checklist_item_updated"
ACTION_PROJECT_UPDATED = "project_updated"
ACTION_STATUS_CHANGED = "status_changed"
ACTION_STATUS_NOTIFICATION_SENT = "status_notification_sent"
ACTION_SOW_APPROVED = "sow_approved"
ACTION_DOCUMENT_UPLOADED = "document_uploaded"
ACTION_DOCUMENT_DELETED = "document_deleted"
ACTION_DOCUMENT_REVIEWED = "document_reviewed"
ACTION_WEBHOOK_CREATED = "webhook_created"
ACTION_WEBHOOK_DELETED = "webhook_deleted"
ACTION_INTEGRATION_ADDED = "integration_added"
ACTION_API_CREDENTIALS_REGENERATED = "api_credentials_regenerated"
ACTION_TEAM_MEMBER_INVITED = "team_member_invited"

_ACTION_LEN = 64


def _sanitize_value(v: Any) -> Any:
    """Convert to JSON-serializable value so details never raise on INSERT."""
    if v is None:
        return None
    if isinstance(v, enum.Enum):
        return getattr(v, "value", str(v))
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, dict):
        return {str(k): _sanitize_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set)):
        return [_sanitize_value(x) for x in v]
    return str(v)


def _sanitize_details(details: dict[str, Any] | None) -> dict[str, Any]:
    if not details:
        return {}
    return {str(k): _sanitize_value(v) for k, v in details.items()}


def log_activity(
    db: Session,
    project_id: str,
    action: str,
    *,
    user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> ActivityLog:
    """Append one activity record. Flushes; commit remains with caller."""
    entry = ActivityLog(
        project_id=project_id,
        user_id=user_id,
        action=(action or "")[:_ACTION_LEN].strip(),
        details=_sanitize_details(details),
    )
    db.add(entry)
    db.flush()
    return entry


def list_activity(db: Session, project_id: str, limit: int = 50) -> list[ActivityLog]:
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.project_id == project_id)
        .order_by(ActivityLog.created_at.desc())
        .limit(limit)
        .all()
    )
