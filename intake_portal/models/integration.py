"""External-system connection metadata: webhooks, integration configs, API credentials.
Nothing here is delivered or called; rows only describe the connection."""
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    events = Column(JSONType, nullable=False, default=lambda: ["*"])
    description = Column(String(500), nullable=True)
    # signing secret; shown to the client once, at creation
    secret = Column(String(128), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class IntegrationConfig(Base):
    __tablename__ = "integration_configs"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    system_name = Column(String(255), nullable=False)
    system_type = Column(String(100), nullable=False)
    connection_method = Column(String(100), nullable=True)
    api_documentation_url = Column(String(1000), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ApiCredential(Base):
    """One key pair per project. The secret is stored only as a sha256 hash."""
    __tablename__ = "api_credentials"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="CASCADE"), unique=True, nullable=False)
    api_key = Column(String(100), unique=True, nullable=False, index=True)
    secret_hash = Column(String(64), nullable=False)
    rotated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
