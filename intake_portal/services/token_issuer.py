"""Session token issuer: magic-link codes, JWT access tokens, rotating refresh tokens.

Business code only talks to the TokenIssuer interface; JwtTokenIssuer is the
self-hosted backend (JWT signed with JWT_SECRET_KEY, sessions in auth_sessions).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

import jwt
from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import utcnow, as_utc
from intake_portal.models.auth import AuthUser, AuthSession, LoginCode
from intake_portal.services.credentials import generate_login_code, generate_token, hash_secret

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    refresh_token: str
    expires_in: int  # seconds
    expires_at: datetime
    auth_user_id: str
    email: str


@dataclass(frozen=True)
class Identity:
    auth_user_id: str
    email: str
    session_id: str


class TokenIssuer(Protocol):
    def send_code(self, db: Session, email: str) -> str: ...

    def verify_code(self, db: Session, email: str, code: str) -> IssuedSession | None: ...

    def issue(self, db: Session, auth_user: AuthUser) -> IssuedSession: ...

    def verify(self, db: Session, access_token: str) -> Identity | None: ...

    def refresh(self, db: Session, refresh_token: str) -> IssuedSession | None: ...

    def revoke(self, db: Session, access_token: str) -> bool: ...


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_auth_user_by_email(db: Session, email: str) -> AuthUser | None:
    return db.query(AuthUser).filter(AuthUser.email == normalize_email(email)).first()


def get_or_create_auth_user(db: Session, email: str) -> AuthUser:
    user = get_auth_user_by_email(db, email)
    if user:
        return user
    user = AuthUser(email=normalize_email(email))
    db.add(user)
    db.flush()
    return user


def decode_token_with_error(token: str, verify_exp: bool = True) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    settings = get_settings()
    try:
        payload = jwt.decode(
            token.strip(),
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
        return payload, None
    except jwt.PyJWTError as e:
        return None, str(e)


class JwtTokenIssuer:
    def send_code(self, db: Session, email: str) -> str:
        """Create a fresh one-time code for email; any earlier unused code stops working."""
        settings = get_settings()
        user = get_or_create_auth_user(db, email)
        db.query(LoginCode).filter(
            LoginCode.auth_user_id == user.id,
            LoginCode.used_at.is_(None),
        ).delete(synchronize_session="fetch")
        code = generate_login_code()
        db.add(LoginCode(
            auth_user_id=user.id,
            code_hash=hash_secret(code),
            expires_at=utcnow() + timedelta(minutes=settings.magic_link_expire_minutes),
        ))
        db.flush()
        return code

    def verify_code(self, db: Session, email: str, code: str) -> IssuedSession | None:
        user = get_auth_user_by_email(db, email)
        if not user or not code:
            return None
        row = db.query(LoginCode).filter(
            LoginCode.auth_user_id == user.id,
            LoginCode.code_hash == hash_secret(code.strip()),
            LoginCode.used_at.is_(None),
        ).first()
        if not row or as_utc(row.expires_at) <= utcnow():
            return None
        # conditional so that a code can only be exchanged once
        claimed = db.query(LoginCode).filter(
            LoginCode.id == row.id,
            LoginCode.used_at.is_(None),
        ).update({LoginCode.used_at: utcnow()}, synchronize_session="fetch")
        if not claimed:
            return None
        return self.issue(db, user)

    def issue(self, db: Session, auth_user: AuthUser) -> IssuedSession:
        settings = get_settings()
        now = utcnow()
        refresh_token = generate_token(32)
        session = AuthSession(
            auth_user_id=auth_user.id,
            refresh_token_hash=hash_secret(refresh_token),
            expires_at=now + timedelta(days=settings.refresh_token_expire_days),
        )
        db.add(session)
        db.flush()

        expires_in = settings.access_token_expire_minutes * 60
        expires_at = now + timedelta(seconds=expires_in)
        payload = {
            "sub": auth_user.id,
            "email": auth_user.email,
            "sid": session.id,
            "type": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": expires_at,
        }
        access_token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        auth_user.last_sign_in_at = now
        return IssuedSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            expires_at=expires_at,
            auth_user_id=auth_user.id,
            email=auth_user.email,
        )

    def verify(self, db: Session, access_token: str) -> Identity | None:
        payload, _ = decode_token_with_error(access_token)
        if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None
        sid = payload.get("sid")
        session = db.query(AuthSession).filter(AuthSession.id == sid).first() if sid else None
        if not session or session.revoked_at is not None or session.auth_user_id != payload.get("sub"):
            return None
        return Identity(auth_user_id=session.auth_user_id, email=payload.get("email") or "", session_id=session.id)

    def refresh(self, db: Session, refresh_token: str) -> IssuedSession | None:
        """Rotate: the presented refresh token is revoked and a new pair is issued."""
        if not refresh_token:
            return None
        session = db.query(AuthSession).filter(
            AuthSession.refresh_token_hash == hash_secret(refresh_token.strip()),
            AuthSession.revoked_at.is_(None),
        ).first()
        if not session or as_utc(session.expires_at) <= utcnow():
            return None
        revoked = db.query(AuthSession).filter(
            AuthSession.id == session.id,
            AuthSession.revoked_at.is_(None),
        ).update({AuthSession.revoked_at: utcnow()}, synchronize_session="fetch")
        if not revoked:
            return None
        user = db.query(AuthUser).filter(AuthUser.id == session.auth_user_id).first()
        if not user:
            return None
        return self.issue(db, user)

    def revoke(self, db: Session, access_token: str) -> bool:
        # an expired access token may still sign out its session
        payload, _ = decode_token_with_error(access_token, verify_exp=False)
        if not payload or not payload.get("sid"):
            return False
        updated = db.query(AuthSession).filter(
            AuthSession.id == payload["sid"],
            AuthSession.revoked_at.is_(None),
        ).update({AuthSession.revoked_at: utcnow()}, synchronize_session="fetch")
        return bool(updated)


_issuer = JwtTokenIssuer()


def get_token_issuer() -> TokenIssuer:
    return _issuer
