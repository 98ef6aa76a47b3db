"""Staff console: all projects, status changes, provisioning and email audit."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from intake_portal.database import get_db
from intake_portal.dependencies import require_staff
from intake_portal.models.company import Company
from intake_portal.models.email_log import EmailLog, EmailType
from intake_portal.models.project import ProjectStatus
from intake_portal.schemas.admin import (
    AdminStats,
    EmailLogResponse,
    PortalUserCreate,
    PortalUserResponse,
    ProjectUpdate,
    ProjectUpdateResponse,
)
from intake_portal.schemas.portal import CompanyResponse, DocumentResponse, DocumentReview, ProjectDetail, ProjectSummary
from intake_portal.services import auth as auth_service
from intake_portal.services import documents, projects
from intake_portal.services.tenant import StaffPrincipal

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/projects", response_model=list[ProjectSummary])
def list_projects(
    status: ProjectStatus | None = None,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    return [projects.build_summary(db, p) for p in projects.list_projects(db, staff, status)]


@router.get("/projects/{project_id}", response_model=ProjectDetail)
def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    project = projects.get_project_or_404(db, project_id)
    return projects.build_detail(db, project, include_activity=True)


@router.patch("/projects/{project_id}", response_model=ProjectUpdateResponse)
def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    change = projects.update_project(db, staff, project_id, data)
    return ProjectUpdateResponse(
        status=change.project.status,
        previous_status=change.previous_status,
        notifications_sent=change.notification.sent_count if change.notification else 0,
        notification_errors=change.errors,
    )


@router.get("/stats", response_model=AdminStats)
def stats(db: Session = Depends(get_db), staff: StaffPrincipal = Depends(require_staff)):
    return AdminStats(**projects.admin_stats(db))


@router.get("/companies", response_model=list[CompanyResponse])
def list_companies(db: Session = Depends(get_db), staff: StaffPrincipal = Depends(require_staff)):
    companies = db.query(Company).order_by(Company.created_at.desc()).all()
    return [CompanyResponse.model_validate(c) for c in companies]


@router.post("/portal-users", response_model=PortalUserResponse, status_code=201)
def create_portal_user(
    data: PortalUserCreate,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    portal_user, auth_user = auth_service.provision_portal_user(db, data.contact_id)
    db.commit()
    db.refresh(portal_user)
    return PortalUserResponse(
        id=portal_user.id,
        auth_user_id=auth_user.id,
        company_id=portal_user.company_id,
        contact_id=portal_user.contact_id,
        email=auth_user.email,
        is_active=portal_user.is_active,
    )


@router.patch("/documents/{document_id}", response_model=DocumentResponse)
def review_document(
    document_id: str,
    data: DocumentReview,
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    document = documents.review_document(db, staff, document_id, data.status, data.notes)
    db.commit()
    db.refresh(document)
    return DocumentResponse.model_validate(document)


@router.get("/email-logs", response_model=list[EmailLogResponse])
def list_email_logs(
    email_type: EmailType | None = None,
    project_id: str | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    staff: StaffPrincipal = Depends(require_staff),
):
    query = db.query(EmailLog)
    if email_type:
        query = query.filter(EmailLog.email_type == email_type)
    if project_id:
        query = query.filter(EmailLog.project_id == project_id)
    return [EmailLogResponse.model_validate(e) for e in query.order_by(EmailLog.created_at.desc()).limit(limit).all()]
