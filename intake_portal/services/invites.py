"""Invite lifecycle: create, validate, mark used, revoke, resend, expire.

Every state change out of `pending` is a conditional UPDATE on status, so two
concurrent attempts on the same invite cannot both succeed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import SessionLocal, utcnow, as_utc
from intake_portal.models.invite import Invite, InviteStatus
from intake_portal.services.credentials import generate_token
from intake_portal.services.notifications import send_invite_email

logger = logging.getLogger(__name__)

ERROR_INVALID = "Invalid invite token"
ERROR_USED = "This invite has already been used"
ERROR_EXPIRED = "This invite has expired"
ERROR_REVOKED = "This invite has been revoked"
ERROR_RESEND_EMAIL = "Failed to send email"

_STATUS_ERRORS = {
    InviteStatus.used: ERROR_USED,
    InviteStatus.expired: ERROR_EXPIRED,
    InviteStatus.revoked: ERROR_REVOKED,
}


@dataclass(frozen=True)
class InviteValidation:
    valid: bool
    invite: Invite | None = None
    error: str | None = None


@dataclass(frozen=True)
class CreatedInvite:
    invite: Invite
    email_sent: bool
    warning: str | None = None


@dataclass(frozen=True)
class ActionResult:
    success: bool
    error: str | None = None


def build_invite_url(token: str) -> str:
    return f"{get_settings().app_base_url.rstrip('/')}/onboarding/{token}"


def create_invite(
    db: Session,
    email: str,
    *,
    inviter_id: str | None,
    inviter_name: str,
    company_name: str | None = None,
    expiration_days: int | None = None,
    metadata: dict[str, Any] | None = None,
    recipient_name: str | None = None,
) -> CreatedInvite:
    """Persist a pending invite and email its link. A failed email does not undo the invite."""
    settings = get_settings()
    days = expiration_days or settings.invite_expiration_days
    invite = Invite(
        token=generate_token(settings.invite_token_length),
        email=email.strip().lower(),
        company_name=(company_name or "").strip() or None,
        invited_by=inviter_id,
        status=InviteStatus.pending,
        expires_at=utcnow() + timedelta(days=days),
        meta=metadata or {},
    )
    db.add(invite)
    db.flush()

    result = send_invite_email(
        db,
        invite.email,
        invite_url=build_invite_url(invite.token),
        invited_by=inviter_name,
        expires_at=as_utc(invite.expires_at),
        company_name=invite.company_name,
        recipient_name=recipient_name,
        invite_id=invite.id,
    )
    if not result.success:
        logger.warning("Invite %s created but email to %s failed: %s", invite.id, invite.email, result.error)
        return CreatedInvite(invite=invite, email_sent=False, warning="Invite created but email failed to send")
    return CreatedInvite(invite=invite, email_sent=True)


def expire_old_invites(db: Session) -> int:
    """Mark every pending invite past its expiry as expired. Returns rows affected."""
    count = db.query(Invite).filter(
        Invite.status == InviteStatus.pending,
        Invite.expires_at < utcnow(),
    ).update({Invite.status: InviteStatus.expired, Invite.updated_at: utcnow()}, synchronize_session="fetch")
    return count


def validate_invite(db: Session, token: str) -> InviteValidation:
    expire_old_invites(db)
    invite = db.query(Invite).filter(Invite.token == token).first() if token else None
    if not invite:
        return InviteValidation(valid=False, error=ERROR_INVALID)
    if invite.status in _STATUS_ERRORS:
        return InviteValidation(valid=False, invite=invite, error=_STATUS_ERRORS[invite.status])
    if as_utc(invite.expires_at) <= utcnow():
        # crossed expiry between the sweep and the load
        invite.status = InviteStatus.expired
        db.flush()
        return InviteValidation(valid=False, invite=invite, error=ERROR_EXPIRED)
    return InviteValidation(valid=True, invite=invite)


def mark_invite_used(db: Session, token: str, project_id: str | None) -> bool:
    now = utcnow()
    updated = db.query(Invite).filter(
        Invite.token == token,
        Invite.status == InviteStatus.pending,
    ).update(
        {Invite.status: InviteStatus.used, Invite.used_at: now, Invite.project_id: project_id, Invite.updated_at: now},
        synchronize_session="fetch",
    )
    return updated == 1


def revoke_invite(db: Session, invite_id: str) -> bool:
    updated = db.query(Invite).filter(
        Invite.id == invite_id,
        Invite.status == InviteStatus.pending,
    ).update({Invite.status: InviteStatus.revoked, Invite.updated_at: utcnow()}, synchronize_session="fetch")
    return updated == 1


def resend_invite(db: Session, invite_id: str, inviter_name: str) -> ActionResult:
    """Re-send the email for a pending invite. The token is not rotated."""
    invite = get_invite(db, invite_id)
    if not invite:
        return ActionResult(success=False, error="Invite not found")
    if invite.status != InviteStatus.pending:
        return ActionResult(success=False, error="Can only resend pending invites")
    if as_utc(invite.expires_at) <= utcnow():
        return ActionResult(success=False, error="Invite has expired. Please create a new one.")
    result = send_invite_email(
        db,
        invite.email,
        invite_url=build_invite_url(invite.token),
        invited_by=inviter_name,
        expires_at=as_utc(invite.expires_at),
        company_name=invite.company_name,
        invite_id=invite.id,
    )
    if not result.success:
        return ActionResult(success=False, error=ERROR_RESEND_EMAIL)
    return ActionResult(success=True)


def get_invite(db: Session, invite_id: str) -> Invite | None:
    return db.query(Invite).filter(Invite.id == invite_id).first()


def list_invites(
    db: Session,
    *,
    status: InviteStatus | None = None,
    email: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Invite], int]:
    query = db.query(Invite)
    if status:
        query = query.filter(Invite.status == status)
    if email:
        query = query.filter(Invite.email.ilike(f"%{email.strip().lower()}%"))
    total = query.count()
    invites = query.order_by(Invite.created_at.desc()).offset(offset).limit(limit).all()
    return invites, total


def invite_stats(db: Session) -> dict[str, int]:
    expire_old_invites(db)
    counts = dict(db.query(Invite.status, func.count(Invite.id)).group_by(Invite.status).all())
    stats = {s.value: int(counts.get(s, 0)) for s in InviteStatus}
    stats["total"] = sum(stats.values())
    return stats


def run_invite_expiry_job() -> None:
    """Scheduled sweep: expire pending invites past their expiry."""
    db: Session = SessionLocal()
    try:
        expired = expire_old_invites(db)
        db.commit()
        if expired:
            logger.info("Invite expiry: marked %d pending invite(s) as expired.", expired)
    finally:
        db.close()
