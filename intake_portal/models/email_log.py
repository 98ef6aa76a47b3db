"""Append-only record of every outbound email attempt, sent or failed."""
import enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class EmailType(str, enum.Enum):
    invite = "invite"
    magic_link = "magic_link"
    status_update = "status_update"
    password_reset = "password_reset"
    welcome = "welcome"


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    email_type = Column(SQLEnum(EmailType, name="email_type"), nullable=False, index=True)
    recipient_email = Column(String(255), nullable=False, index=True)
    subject = Column(String(500), nullable=False)
    status = Column(String(16), nullable=False)  # sent | failed
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="SET NULL"), nullable=True, index=True)
    invite_id = Column(String(36), ForeignKey("invites.id", ondelete="SET NULL"), nullable=True, index=True)
    meta = Column("metadata", JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
