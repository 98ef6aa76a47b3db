"""Append-only project activity trail. No updates or deletes."""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="CASCADE"), nullable=False, index=True)

    # null = system / anonymous submitter
    user_id = Column(String(36), ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True)

    # action tag: onboarding_submitted | checklist_item_updated | project_updated | status_changed | ...
    action = Column(String(64), nullable=False, index=True)
    details = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
