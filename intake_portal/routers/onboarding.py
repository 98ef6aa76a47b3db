"""Public onboarding wizard endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import get_db
from intake_portal.errors import NotFoundError, ValidationError
from intake_portal.models.company import Company
from intake_portal.models.project import OnboardingProject
from intake_portal.schemas.onboarding import OnboardingStatusResponse, OnboardingSubmission, OnboardingSubmitResponse
from intake_portal.services.invites import validate_invite
from intake_portal.services.notifications import send_welcome_email
from intake_portal.services.onboarding import submit_onboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])


@router.post("/submit", response_model=OnboardingSubmitResponse, status_code=201)
def submit(data: OnboardingSubmission, db: Session = Depends(get_db)):
    if data.invite_token:
        validation = validate_invite(db, data.invite_token)
        db.commit()  # keep any expiry sweep even when the invite is rejected
        if not validation.valid:
            raise ValidationError(validation.error)

    project = submit_onboarding(db, data)

    result = send_welcome_email(
        db,
        data.contact.email,
        contact_name=data.contact.first_name,
        company_name=data.company.legal_name,
        portal_url=f"{get_settings().app_base_url.rstrip('/')}/portal",
        project_id=project.id,
    )
    db.commit()
    if not result.success:
        logger.warning("Welcome email for project %s not sent: %s", project.id, result.error)
    return OnboardingSubmitResponse(project_id=project.id)


@router.get("/status/{project_id}", response_model=OnboardingStatusResponse)
def status(project_id: str, db: Session = Depends(get_db)):
    row = (
        db.query(OnboardingProject, Company.legal_name)
        .outerjoin(Company, Company.id == OnboardingProject.company_id)
        .filter(OnboardingProject.id == project_id)
        .first()
    )
    if not row:
        raise NotFoundError("Project not found")
    project, company_name = row
    return OnboardingStatusResponse(
        id=project.id,
        status=project.status.value,
        createdAt=project.created_at.isoformat() if project.created_at else None,
        companyName=company_name,
    )
