"""Authentication flows on top of the token issuer: magic link, password login, reset, provisioning."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import utcnow, as_utc
from intake_portal.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from intake_portal.models.auth import AuthMethod, AuthUser, PasswordResetToken
from intake_portal.models.company import Contact
from intake_portal.models.user import PortalUser, StaffRole, StaffUser
from intake_portal.services.credentials import (
    generate_token,
    hash_password,
    validate_password_strength,
    verify_password,
)
from intake_portal.services.notifications import send_magic_link_email, send_password_reset_email
from intake_portal.services.token_issuer import (
    IssuedSession,
    get_auth_user_by_email,
    get_or_create_auth_user,
    get_token_issuer,
    normalize_email,
)

logger = logging.getLogger(__name__)

RESET_ERROR_INVALID = "Invalid reset token"
RESET_ERROR_USED = "This reset link has already been used"
RESET_ERROR_EXPIRED = "This reset link has expired"
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."
MIN_TOKEN_LENGTH = 32


@dataclass(frozen=True)
class ResetTokenValidation:
    valid: bool
    record: PasswordResetToken | None = None
    error: str | None = None


def send_magic_link(db: Session, email: str) -> bool:
    """Email a sign-in link and code. Unknown emails are ignored so callers cannot probe accounts."""
    settings = get_settings()
    user = get_auth_user_by_email(db, email)
    if not user:
        logger.info("Magic link requested for unknown email %s", normalize_email(email))
        return False
    code = get_token_issuer().send_code(db, user.email)
    query = urlencode({"email": user.email, "code": code})
    link = f"{settings.app_base_url.rstrip('/')}/api/auth/callback?{query}"
    result = send_magic_link_email(
        db,
        user.email,
        magic_link_url=link,
        code=code,
        expires_in_minutes=settings.magic_link_expire_minutes,
    )
    return result.success


def login_with_password(db: Session, email: str, password: str) -> IssuedSession:
    """Verify email + password and mint a full session."""
    user = get_auth_user_by_email(db, email)
    if not user:
        logger.info("Failed password login for %s: no account", normalize_email(email))
        raise AuthenticationError("Invalid email or password")
    if not user.password_hash:
        raise AuthenticationError("Password login not enabled. Please use magic link.")
    if not verify_password(password, user.password_hash):
        logger.info("Failed password login for %s: bad password", user.email)
        raise AuthenticationError("Invalid email or password")
    return get_token_issuer().issue(db, user)


def _require_strong(password: str) -> None:
    strength = validate_password_strength(password)
    if not strength.valid:
        raise ValidationError(strength.errors[0], details=strength.errors)


def _store_password(user: AuthUser, password: str) -> None:
    _require_strong(password)
    user.password_hash = hash_password(password)
    user.password_set_at = utcnow()
    user.auth_method = AuthMethod.both


def set_password(db: Session, auth_user_id: str, password: str) -> None:
    user = db.query(AuthUser).filter(AuthUser.id == auth_user_id).first()
    if not user:
        raise NotFoundError("User not found")
    _store_password(user, password)
    db.flush()


def request_password_reset(db: Session, email: str) -> None:
    """Create a reset token (replacing earlier ones) and email it. Silent for unknown emails."""
    settings = get_settings()
    user = get_auth_user_by_email(db, email)
    if not user:
        return
    db.query(PasswordResetToken).filter(PasswordResetToken.auth_user_id == user.id).delete(synchronize_session="fetch")
    record = PasswordResetToken(
        auth_user_id=user.id,
        token=generate_token(32),
        expires_at=utcnow() + timedelta(hours=settings.password_reset_expiration_hours),
    )
    db.add(record)
    db.flush()
    result = send_password_reset_email(
        db,
        user.email,
        reset_url=f"{settings.app_base_url.rstrip('/')}/reset-password/{record.token}",
        expires_in_hours=settings.password_reset_expiration_hours,
    )
    if not result.success:
        logger.warning("Password reset email to %s failed: %s", user.email, result.error)


def validate_reset_token(db: Session, token: str) -> ResetTokenValidation:
    record = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first() if token else None
    if not record:
        return ResetTokenValidation(valid=False, error=RESET_ERROR_INVALID)
    if record.used_at is not None:
        return ResetTokenValidation(valid=False, record=record, error=RESET_ERROR_USED)
    if as_utc(record.expires_at) <= utcnow():
        return ResetTokenValidation(valid=False, record=record, error=RESET_ERROR_EXPIRED)
    return ResetTokenValidation(valid=True, record=record)


def reset_password(db: Session, token: str, password: str) -> None:
    """Re-validate the token, store the new hash and consume the token in the same flush."""
    validation = validate_reset_token(db, token)
    if not validation.valid:
        raise ValidationError(validation.error)
    record = validation.record
    user = db.query(AuthUser).filter(AuthUser.id == record.auth_user_id).first()
    if not user:
        raise ValidationError(RESET_ERROR_INVALID)
    # a rejected password must leave the token unclaimed
    _require_strong(password)
    claimed = db.query(PasswordResetToken).filter(
        PasswordResetToken.id == record.id,
        PasswordResetToken.used_at.is_(None),
    ).update({PasswordResetToken.used_at: utcnow()}, synchronize_session="fetch")
    if not claimed:
        raise ValidationError(RESET_ERROR_USED)
    _store_password(user, password)
    db.flush()


def provision_portal_user(db: Session, contact_id: str) -> tuple[PortalUser, AuthUser]:
    """Give a contact a sign-in identity and a portal account scoped to its company."""
    contact = db.query(Contact).filter(Contact.id == contact_id).first()
    if not contact:
        raise NotFoundError("Contact not found")
    auth_user = get_or_create_auth_user(db, contact.email)
    existing = db.query(PortalUser).filter(PortalUser.auth_user_id == auth_user.id).first()
    if existing:
        raise ConflictError("A portal user already exists for this email")
    portal_user = PortalUser(
        auth_user_id=auth_user.id,
        company_id=contact.company_id,
        contact_id=contact.id,
        is_active=True,
    )
    db.add(portal_user)
    db.flush()
    return portal_user, auth_user


def create_staff_user(
    db: Session,
    email: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    role: StaffRole = StaffRole.admin,
    password: str | None = None,
) -> StaffUser:
    auth_user = get_or_create_auth_user(db, email)
    staff = db.query(StaffUser).filter(StaffUser.auth_user_id == auth_user.id).first()
    if staff:
        raise ConflictError("Staff user already exists")
    if password:
        _store_password(auth_user, password)
    staff = StaffUser(
        auth_user_id=auth_user.id,
        email=auth_user.email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
    )
    db.add(staff)
    db.flush()
    return staff
