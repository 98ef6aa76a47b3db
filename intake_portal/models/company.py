"""Tenant root: company and its contacts."""
import enum

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class CompanySize(str, enum.Enum):
    micro = "micro"
    small = "small"
    medium = "medium"
    large = "large"
    enterprise = "enterprise"


class ContactRole(str, enum.Enum):
    primary = "primary"
    technical = "technical"
    executive = "executive"
    billing = "billing"
    other = "other"


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=new_id)
    legal_name = Column(String(255), nullable=False)
    dba_name = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    address_line_1 = Column(String(255), nullable=True)
    address_line_2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    company_size = Column(SQLEnum(CompanySize, name="company_size"), nullable=True)
    lines_of_business = Column(JSONType, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("company_id", "email", name="uq_contacts_company_email"),)

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    title = Column(String(100), nullable=True)
    role = Column(SQLEnum(ContactRole, name="contact_role"), nullable=False, default=ContactRole.other)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
