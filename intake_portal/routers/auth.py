"""Authentication: magic link, password login, session cookies, password reset."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from urllib.parse import quote

from intake_portal.config import get_settings
from intake_portal.database import get_db
from intake_portal.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_access_token,
    get_current_principal,
    get_identity,
)
from intake_portal.models.auth import AuthUser
from intake_portal.schemas.auth import (
    ForgotPasswordRequest,
    MagicLinkRequest,
    MessageResponse,
    PasswordLoginRequest,
    PasswordStrengthRequest,
    PasswordStrengthResponse,
    ResetPasswordRequest,
    SessionResponse,
    SessionUser,
    SetPasswordRequest,
    VerifyCodeRequest,
)
from intake_portal.services import auth as auth_service
from intake_portal.services.credentials import validate_password_strength
from intake_portal.services.tenant import StaffPrincipal, TenantContext, resolve_context
from intake_portal.services.token_issuer import Identity, IssuedSession, get_token_issuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookies(response: Response, session: IssuedSession) -> None:
    settings = get_settings()
    common = {"httponly": True, "secure": settings.is_production, "samesite": "lax", "path": "/"}
    response.set_cookie(ACCESS_COOKIE, session.access_token, max_age=session.expires_in, **common)
    response.set_cookie(REFRESH_COOKIE, session.refresh_token, max_age=settings.refresh_token_expire_days * 24 * 3600, **common)


def _clear_session_cookies(response: Response) -> None:
    settings = get_settings()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, path="/", secure=settings.is_production, httponly=True, samesite="lax")


def _session_user(db: Session, auth_user_id: str, context: TenantContext | None = None) -> SessionUser | None:
    user = db.query(AuthUser).filter(AuthUser.id == auth_user_id).first()
    if context is None:
        context = resolve_context(db, auth_user_id)
    if not user or context is None:
        return None
    is_staff = isinstance(context, StaffPrincipal)
    return SessionUser(
        id=auth_user_id,
        email=context.email or user.email,
        type=context.kind,
        role=context.role.value if is_staff else None,
        company_id=None if is_staff else context.company_id,
        contact_id=None if is_staff else context.contact_id,
        first_name=context.first_name,
        last_name=context.last_name,
        has_password=bool(user.password_hash),
    )


def _session_response(db: Session, session: IssuedSession) -> SessionResponse:
    return SessionResponse(
        expires_in=session.expires_in,
        expires_at=session.expires_at.isoformat(),
        user=_session_user(db, session.auth_user_id),
    )


@router.post("/login", response_model=MessageResponse)
def send_magic_link(data: MagicLinkRequest, db: Session = Depends(get_db)):
    auth_service.send_magic_link(db, data.email)
    db.commit()
    return MessageResponse(message="If an account exists for this email, a sign-in link has been sent.")


@router.post("/verify", response_model=SessionResponse)
def verify_code(data: VerifyCodeRequest, response: Response, db: Session = Depends(get_db)):
    session = get_token_issuer().verify_code(db, data.email, data.code)
    if not session:
        db.rollback()
        raise HTTPException(status_code=400, detail="Invalid or expired code")
    db.commit()
    _set_session_cookies(response, session)
    return _session_response(db, session)


@router.get("/callback")
def magic_link_callback(email: str = "", code: str = "", db: Session = Depends(get_db)):
    """Landing URL from the magic-link email: set cookies and send the browser on."""
    session = get_token_issuer().verify_code(db, email, code) if email and code else None
    if not session:
        db.rollback()
        return RedirectResponse(url=f"/login?error={quote('Invalid or expired sign-in link')}", status_code=302)
    db.commit()
    context = resolve_context(db, session.auth_user_id)
    target = "/admin" if isinstance(context, StaffPrincipal) else "/portal"
    redirect = RedirectResponse(url=target, status_code=302)
    _set_session_cookies(redirect, session)
    return redirect


@router.post("/login-password", response_model=SessionResponse)
def login_password(data: PasswordLoginRequest, response: Response, db: Session = Depends(get_db)):
    session = auth_service.login_with_password(db, data.email, data.password)
    db.commit()
    _set_session_cookies(response, session)
    return _session_response(db, session)


@router.post("/refresh", response_model=SessionResponse)
def refresh_session(request: Request, response: Response, db: Session = Depends(get_db)):
    refresh_token = request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        raise HTTPException(status_code=401, detail="No refresh token")
    session = get_token_issuer().refresh(db, refresh_token)
    if not session:
        db.rollback()
        raise HTTPException(status_code=401, detail="Failed to refresh token")
    db.commit()
    _set_session_cookies(response, session)
    return _session_response(db, session)


@router.post("/signout", response_model=MessageResponse)
def sign_out(
    response: Response,
    db: Session = Depends(get_db),
    token: str | None = Depends(get_access_token),
):
    if token:
        try:
            get_token_issuer().revoke(db, token)
            db.commit()
        except SQLAlchemyError:
            logger.exception("Session revoke failed during sign-out")
            db.rollback()
    _clear_session_cookies(response)
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=SessionUser)
def me(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
    principal: TenantContext = Depends(get_current_principal),
):
    user = _session_user(db, identity.auth_user_id, principal)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/set-password", response_model=MessageResponse)
def set_password(
    data: SetPasswordRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    auth_service.set_password(db, identity.auth_user_id, data.password)
    db.commit()
    return MessageResponse(message="Password set successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    auth_service.request_password_reset(db, data.email)
    db.commit()
    return MessageResponse(message=auth_service.FORGOT_PASSWORD_MESSAGE)


@router.get("/validate-reset-token/{token}")
def validate_reset_token(token: str, db: Session = Depends(get_db)):
    if len(token) < auth_service.MIN_TOKEN_LENGTH:
        raise HTTPException(status_code=400, detail="Invalid token format")
    validation = auth_service.validate_reset_token(db, token)
    return {"valid": validation.valid, "error": validation.error}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(db, data.token, data.password)
    db.commit()
    return MessageResponse(message="Password has been reset. You can now sign in.")


@router.post("/password-strength", response_model=PasswordStrengthResponse)
def password_strength(data: PasswordStrengthRequest):
    result = validate_password_strength(data.password)
    return PasswordStrengthResponse(valid=result.valid, score=result.score, errors=result.errors)
