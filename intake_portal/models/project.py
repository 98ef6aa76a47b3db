"""Onboarding project, its module selections and the per-module requirement configs."""
import enum

from sqlalchemy import Column, String, Text, Integer, Date, DateTime, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from intake_portal.database import Base, JSONType, new_id, utcnow


class ProjectStatus(str, enum.Enum):
    discovery_in_progress = "discovery_in_progress"
    sow_pending = "sow_pending"
    contract_signed = "contract_signed"
    onboarding = "onboarding"
    live = "live"
    churned = "churned"


class ModuleType(str, enum.Enum):
    core = "core"
    comms = "comms"
    fnol = "fnol"


class WhiteLabelLevel(str, enum.Enum):
    none = "none"
    basic = "basic"
    full = "full"


class OnboardingProject(Base):
    __tablename__ = "onboarding_projects"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(ProjectStatus, name="project_status"), nullable=False, default=ProjectStatus.discovery_in_progress)
    stage = Column(String(64), nullable=True)  # internal substage, e.g. sow_approved
    target_go_live_date = Column(Date, nullable=True)
    actual_go_live_date = Column(Date, nullable=True)
    assigned_csm_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sow_signed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ModuleSelection(Base):
    __tablename__ = "module_selections"
    __table_args__ = (UniqueConstraint("project_id", "module_type", name="uq_module_selections_project_module"),)

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("onboarding_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    module_type = Column(SQLEnum(ModuleType, name="module_type"), nullable=False)
    is_selected = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class CoreModuleConfig(Base):
    __tablename__ = "core_module_configs"

    id = Column(String(36), primary_key=True, default=new_id)
    module_selection_id = Column(String(36), ForeignKey("module_selections.id", ondelete="CASCADE"), unique=True, nullable=False)
    claim_types = Column(JSONType, nullable=False, default=list)
    perils = Column(JSONType, nullable=False, default=list)
    document_types = Column(JSONType, nullable=False, default=list)
    monthly_claim_volume = Column(Integer, nullable=True)
    monthly_document_volume = Column(Integer, nullable=True)
    pain_points = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CommsModuleConfig(Base):
    __tablename__ = "comms_module_configs"

    id = Column(String(36), primary_key=True, default=new_id)
    module_selection_id = Column(String(36), ForeignKey("module_selections.id", ondelete="CASCADE"), unique=True, nullable=False)
    desired_channels = Column(JSONType, nullable=False, default=list)
    monthly_message_volume = Column(Integer, nullable=True)
    white_label_level = Column(SQLEnum(WhiteLabelLevel, name="white_label_level"), nullable=False, default=WhiteLabelLevel.none)
    languages_required = Column(JSONType, nullable=False, default=lambda: ["English"])

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class FnolModuleConfig(Base):
    __tablename__ = "fnol_module_configs"

    id = Column(String(36), primary_key=True, default=new_id)
    module_selection_id = Column(String(36), ForeignKey("module_selections.id", ondelete="CASCADE"), unique=True, nullable=False)
    desired_intake_methods = Column(JSONType, nullable=False, default=list)
    monthly_fnol_volume = Column(Integer, nullable=True)
    lines_of_business = Column(JSONType, nullable=False, default=list)
    photo_required = Column(Boolean, nullable=False, default=False)
    video_required = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


CONFIG_MODELS = {
    ModuleType.core: CoreModuleConfig,
    ModuleType.comms: CommsModuleConfig,
    ModuleType.fnol: FnolModuleConfig,
}
