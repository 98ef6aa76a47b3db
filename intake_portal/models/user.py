"""Principals: internal staff and external portal users. Both link to an auth identity."""
import enum

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, new_id, utcnow


class StaffRole(str, enum.Enum):
    admin = "admin"
    csm = "csm"
    engineer = "engineer"


class StaffUser(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), unique=True, nullable=False)
    email = Column(String(255), index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(SQLEnum(StaffRole, name="staff_role"), nullable=False, default=StaffRole.csm)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class PortalUser(Base):
    """Client-side principal, scoped to exactly one company."""
    __tablename__ = "portal_users"

    id = Column(String(36), primary_key=True, default=new_id)
    auth_user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
