"""Shared dependencies: access token extraction, current principal, role gates."""
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from intake_portal.database import get_db
from intake_portal.services.tenant import (
    PortalPrincipal,
    StaffPrincipal,
    TenantContext,
    resolve_context,
)
from intake_portal.services.token_issuer import Identity, get_token_issuer

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"

security = HTTPBearer(auto_error=False)


def get_access_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials.strip()
    return request.cookies.get(ACCESS_COOKIE) or None


def get_identity(
    db: Session = Depends(get_db),
    token: str | None = Depends(get_access_token),
) -> Identity:
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    identity = get_token_issuer().verify(db, token)
    if not identity:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return identity


def get_current_principal(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> TenantContext:
    context = resolve_context(db, identity.auth_user_id)
    if context is None:
        raise HTTPException(status_code=403, detail="User not found in system. Please contact support.")
    return context


def require_staff(principal: TenantContext = Depends(get_current_principal)) -> StaffPrincipal:
    if not isinstance(principal, StaffPrincipal):
        raise HTTPException(status_code=403, detail="Staff access required")
    return principal


def require_portal_user(principal: TenantContext = Depends(get_current_principal)) -> PortalPrincipal:
    if not isinstance(principal, PortalPrincipal):
        raise HTTPException(status_code=403, detail="Portal user access required")
    return principal
