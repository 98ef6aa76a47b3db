"""Identity records owned by the token issuer: users, sessions, one-time codes, reset tokens."""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, new_id, utcnow


class AuthMethod(str, enum.Enum):
    magic_link = "magic_link"
    password = "password"
    both = "both"


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # bcrypt hash; null until the user sets a password
    password_hash = Column(String(255), nullable=True)
    password_set_at = Column(DateTime(timezone=True), nullable=True)
    auth_method = Column(SQLEnum(AuthMethod, name="auth_method"), nullable=False, default=AuthMethod.magic_link)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class AuthSession(Base):
    """One signed-in session. Only the sha256 of the refresh token is stored."""
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class LoginCode(Base):
    """Magic-link one-time code. At most one unused code per user."""
    __tablename__ = "login_codes"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
