"""Single-use onboarding invite. pending -> used | expired | revoked; all three are terminal."""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class InviteStatus(str, enum.Enum):
    pending = "pending"
    used = "used"
    expired = "expired"
    revoked = "revoked"


class Invite(Base):
    __tablename__ = "invites"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(128), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)  # stored lower-cased
    company_name = Column(String(255), nullable=True)
    invited_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)
    status = Column(SQLEnum(InviteStatus, name="invite_status"), nullable=False, default=InviteStatus.pending, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="SET NULL"), nullable=True)
    meta = Column("metadata", JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
