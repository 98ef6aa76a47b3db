"""Onboarding submission pipeline.

One database transaction: company -> primary contact -> project -> module
selections -> module configs -> checklist items -> activity entry. Each step
flushes so later steps can reference generated ids; any failure rolls back
every row written so far.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from intake_portal.errors import ConflictError
from intake_portal.models.checklist import ChecklistItem, ChecklistTemplate
from intake_portal.models.company import Company, Contact, ContactRole
from intake_portal.models.project import (
    CONFIG_MODELS,
    ModuleSelection,
    ModuleType,
    OnboardingProject,
    ProjectStatus,
)
from intake_portal.schemas.onboarding import CompanyInput, ContactInput, OnboardingSubmission
from intake_portal.services.activity_log import log_activity, ACTION_ONBOARDING_SUBMITTED
from intake_portal.services.invites import ERROR_USED, mark_invite_used

logger = logging.getLogger(__name__)


def _create_company(db: Session, data: CompanyInput) -> Company:
    company = Company(
        legal_name=data.legal_name,
        dba_name=data.dba_name,
        website=data.website,
        address_line_1=data.address_line_1,
        address_line_2=data.address_line_2,
        city=data.city,
        state=data.state,
        postal_code=data.postal_code,
        company_size=data.company_size,
        lines_of_business=list(data.lines_of_business),
    )
    db.add(company)
    db.flush()
    return company


def _create_primary_contact(db: Session, company: Company, data: ContactInput) -> Contact:
    contact = Contact(
        company_id=company.id,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone=data.phone,
        title=data.title,
        role=ContactRole.primary,
        is_active=True,
    )
    db.add(contact)
    db.flush()
    return contact


def _create_project(db: Session, company: Company) -> OnboardingProject:
    project = OnboardingProject(company_id=company.id, status=ProjectStatus.discovery_in_progress)
    db.add(project)
    db.flush()
    return project


def _create_module_selections(db: Session, project: OnboardingProject, submission: OnboardingSubmission) -> dict[ModuleType, ModuleSelection]:
    selections = {}
    for module_type in ModuleType:
        selection = ModuleSelection(
            project_id=project.id,
            module_type=module_type,
            is_selected=bool(getattr(submission.modules, module_type.value)),
        )
        db.add(selection)
        selections[module_type] = selection
    db.flush()
    return selections


def upsert_module_config(db: Session, selection: ModuleSelection, values: dict):
    """Create the config row for a selected module, or update it if one exists."""
    model = CONFIG_MODELS[selection.module_type]
    config = db.query(model).filter(model.module_selection_id == selection.id).first()
    if config is None:
        config = model(module_selection_id=selection.id)
        db.add(config)
    for key, value in values.items():
        setattr(config, key, value)
    db.flush()
    return config


def _create_module_configs(db: Session, selections: dict[ModuleType, ModuleSelection], submission: OnboardingSubmission) -> None:
    for module_type, selection in selections.items():
        if not selection.is_selected:
            continue
        requirements = getattr(submission.requirements, module_type.value)
        values = requirements.model_dump() if requirements is not None else {}
        upsert_module_config(db, selection, values)


def _create_checklist(db: Session, project: OnboardingProject, selected: list[str]) -> int:
    templates = db.query(ChecklistTemplate).order_by(ChecklistTemplate.order_index).all()
    count = 0
    for template in templates:
        required = template.required_for_modules or []
        if required and not set(required) & set(selected):
            continue
        db.add(ChecklistItem(project_id=project.id, template_id=template.id))
        count += 1
    db.flush()
    return count


def submit_onboarding(db: Session, submission: OnboardingSubmission) -> OnboardingProject:
    """Run the whole pipeline and commit. Raises after rolling back on any failure.

    When the submission carries an invite token, the invite is claimed in the same
    transaction; losing that race rolls everything back with a ConflictError.
    """
    selected = submission.modules.selected()
    try:
        company = _create_company(db, submission.company)
        contact = _create_primary_contact(db, company, submission.contact)
        project = _create_project(db, company)
        selections = _create_module_selections(db, project, submission)
        _create_module_configs(db, selections, submission)
        _create_checklist(db, project, selected)
        log_activity(db, project.id, ACTION_ONBOARDING_SUBMITTED, user_id=None, details={
            "company_name": company.legal_name,
            "contact_email": contact.email,
            "modules_selected": selected,
        })
        if submission.invite_token and not mark_invite_used(db, submission.invite_token, project.id):
            raise ConflictError(ERROR_USED)
        db.commit()
    except ConflictError:
        logger.warning("Invite for %s was consumed concurrently; rolling back", submission.company.legal_name)
        db.rollback()
        raise
    except Exception:
        logger.exception("Onboarding submission failed for %s; rolling back", submission.company.legal_name)
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback after failed onboarding submission also failed")
        raise
    db.refresh(project)
    logger.info("Onboarding submitted: project=%s company=%s modules=%s", project.id, company.legal_name, selected)
    return project
