"""Invite lifecycle endpoints. Staff only, except the public token check."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from intake_portal.database import as_utc, get_db
from intake_portal.dependencies import require_staff
from intake_portal.errors import NotFoundError, UpstreamError, ValidationError
from intake_portal.models.invite import InviteStatus
from intake_portal.schemas.invite import (
    InviteCreate,
    InviteCreateResponse,
    InviteListResponse,
    InviteResponse,
    InviteStatsResponse,
    InviteValidationResponse,
)
from intake_portal.schemas.auth import MessageResponse
from intake_portal.services import invites as invite_service
from intake_portal.services.tenant import StaffPrincipal

router = APIRouter(prefix="/api/invites", tags=["invites"])

MIN_TOKEN_LENGTH = 32


@router.get("/validate/{token}", response_model=InviteValidationResponse)
def validate_token(token: str, db: Session = Depends(get_db)):
    if len(token) < MIN_TOKEN_LENGTH:
        raise HTTPException(status_code=400, detail="Invalid token format")
    result = invite_service.validate_invite(db, token)
    db.commit()
    if not result.valid:
        return InviteValidationResponse(valid=False, error=result.error)
    invite = result.invite
    return InviteValidationResponse(
        valid=True,
        email=invite.email,
        company_name=invite.company_name,
        expires_at=as_utc(invite.expires_at),
    )


@router.get("/stats/summary", response_model=InviteStatsResponse)
def invite_stats(
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    stats = invite_service.invite_stats(db)
    db.commit()
    return InviteStatsResponse(**stats)


@router.post("", response_model=InviteCreateResponse, status_code=201)
def create_invite(
    data: InviteCreate,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    created = invite_service.create_invite(
        db,
        data.email,
        inviter_id=staff.auth_user_id,
        inviter_name=staff.display_name,
        company_name=data.company_name,
        expiration_days=data.expiration_days,
        metadata=data.metadata,
    )
    db.commit()
    db.refresh(created.invite)
    return InviteCreateResponse(
        invite=InviteResponse.model_validate(created.invite),
        invite_url=invite_service.build_invite_url(created.invite.token),
        email_sent=created.email_sent,
        warning=created.warning,
    )


@router.get("", response_model=InviteListResponse)
def list_invites(
    status: InviteStatus | None = None,
    email: str | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    invites, total = invite_service.list_invites(db, status=status, email=email, limit=limit, offset=offset)
    return InviteListResponse(
        invites=[InviteResponse.model_validate(i) for i in invites],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{invite_id}", response_model=InviteResponse)
def get_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    invite = invite_service.get_invite(db, invite_id)
    if not invite:
        raise NotFoundError("Invite not found")
    return InviteResponse.model_validate(invite)


@router.post("/{invite_id}/resend", response_model=MessageResponse)
def resend_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    if not invite_service.get_invite(db, invite_id):
        raise NotFoundError("Invite not found")
    result = invite_service.resend_invite(db, invite_id, staff.display_name)
    db.commit()
    if not result.success:
        if result.error == invite_service.ERROR_RESEND_EMAIL:
            raise UpstreamError(result.error)
        raise ValidationError(result.error)
    return MessageResponse(message="Invite resent")


@router.post("/{invite_id}/revoke", response_model=MessageResponse)
def revoke_invite(
    invite_id: str,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    if not invite_service.get_invite(db, invite_id):
        raise NotFoundError("Invite not found")
    if not invite_service.revoke_invite(db, invite_id):
        raise ValidationError("Can only revoke pending invites")
    db.commit()
    return MessageResponse(message="Invite revoked")
