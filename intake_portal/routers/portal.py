"""Client portal: tenant-scoped project views and mutations."""
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.database import get_db
from intake_portal.dependencies import get_current_principal, require_portal_user
from intake_portal.errors import ConflictError, NotFoundError
from intake_portal.models.company import Contact
from intake_portal.schemas.auth import MessageResponse
from intake_portal.schemas.portal import (
    ActivityLogResponse,
    ApiCredentialResponse,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    ContactResponse,
    DocumentResponse,
    IntegrationConfigCreate,
    IntegrationConfigResponse,
    ProfileUpdate,
    ProjectDetail,
    ProjectSummary,
    TeamInviteRequest,
    WebhookCreate,
    WebhookCreatedResponse,
    WebhookResponse,
)
from intake_portal.services import activity_log, documents, integrations, projects
from intake_portal.services.invites import create_invite
from intake_portal.services.sow import build_sow_pdf
from intake_portal.services.storage import ObjectStore, get_object_store
from intake_portal.services.tenant import PortalPrincipal, TenantContext, require_project_access

router = APIRouter(prefix="/api/portal", tags=["portal"])


@router.get("/projects", response_model=list[ProjectSummary])
def list_projects(
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    return [projects.build_summary(db, p) for p in projects.list_projects(db, principal)]


@router.get("/projects/{project_id}", response_model=ProjectDetail)
def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    project = require_project_access(db, principal, project_id)
    return projects.build_detail(db, project)


@router.get("/projects/{project_id}/checklist", response_model=list[ChecklistItemResponse])
def get_checklist(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    require_project_access(db, principal, project_id)
    return projects.list_checklist(db, project_id)


@router.patch("/checklist/{item_id}", response_model=ChecklistItemResponse)
def update_checklist_item(
    item_id: str,
    data: ChecklistItemUpdate,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    item = projects.update_checklist_item(db, principal, item_id, data.status, data.notes)
    db.commit()
    db.refresh(item)
    return ChecklistItemResponse.model_validate(item)


@router.get("/projects/{project_id}/activity", response_model=list[ActivityLogResponse])
def get_activity(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    require_project_access(db, principal, project_id)
    return [ActivityLogResponse.model_validate(a) for a in activity_log.list_activity(db, project_id, limit=50)]


@router.get("/projects/{project_id}/documents", response_model=list[DocumentResponse])
def list_documents(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    return [DocumentResponse.model_validate(d) for d in documents.list_documents(db, principal, project_id)]


@router.post("/projects/{project_id}/documents/upload", response_model=DocumentResponse, status_code=201)
def upload_document(
    project_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    principal: TenantContext = Depends(get_current_principal),
):
    # read one byte past the limit so oversize files are detected without buffering everything
    data = file.file.read(get_settings().max_upload_bytes + 1)
    document = documents.upload_document(
        db,
        store,
        principal,
        project_id,
        filename=file.filename or "document",
        content_type=file.content_type or "",
        data=data,
    )
    db.commit()
    db.refresh(document)
    return DocumentResponse.model_validate(document)


@router.delete("/documents/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    principal: TenantContext = Depends(get_current_principal),
):
    documents.delete_document(db, store, principal, document_id)
    db.commit()
    return MessageResponse(message="Document deleted")


@router.get("/documents/{document_id}/download")
def download_document(
    document_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    principal: TenantContext = Depends(get_current_principal),
):
    document, url = documents.document_download_url(db, store, principal, document_id)
    return {"url": url, "name": document.name, "expires_in": get_settings().storage_url_expire_seconds}


@router.post("/projects/{project_id}/sow/approve", response_model=ProjectDetail)
def approve_sow(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    project = projects.approve_sow(db, principal, project_id)
    db.commit()
    db.refresh(project)
    return projects.build_detail(db, project)


@router.get("/projects/{project_id}/sow/pdf")
def sow_pdf(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    project = require_project_access(db, principal, project_id)
    pdf = build_sow_pdf(db, project)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="statement-of-work-{project.id}.pdf"'},
    )


@router.get("/projects/{project_id}/webhooks", response_model=list[WebhookResponse])
def list_webhooks(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    return [WebhookResponse.model_validate(w) for w in integrations.list_webhooks(db, principal, project_id)]


@router.post("/projects/{project_id}/webhooks", response_model=WebhookCreatedResponse, status_code=201)
def create_webhook(
    project_id: str,
    data: WebhookCreate,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    webhook = integrations.create_webhook(db, principal, project_id, data)
    db.commit()
    db.refresh(webhook)
    return WebhookCreatedResponse(webhook=WebhookResponse.model_validate(webhook), secret=webhook.secret)


@router.delete("/webhooks/{webhook_id}", response_model=MessageResponse)
def delete_webhook(
    webhook_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    integrations.delete_webhook(db, principal, webhook_id)
    db.commit()
    return MessageResponse(message="Webhook deleted")


@router.get("/projects/{project_id}/integrations", response_model=list[IntegrationConfigResponse])
def list_integrations(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    return [IntegrationConfigResponse.model_validate(i) for i in integrations.list_integrations(db, principal, project_id)]


@router.post("/projects/{project_id}/integrations", response_model=IntegrationConfigResponse, status_code=201)
def add_integration(
    project_id: str,
    data: IntegrationConfigCreate,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    config = integrations.add_integration(db, principal, project_id, data)
    db.commit()
    db.refresh(config)
    return IntegrationConfigResponse.model_validate(config)


@router.post("/projects/{project_id}/api-credentials/regenerate", response_model=ApiCredentialResponse)
def regenerate_api_credentials(
    project_id: str,
    db: Session = Depends(get_db),
    principal: TenantContext = Depends(get_current_principal),
):
    generated = integrations.regenerate_api_credentials(db, principal, project_id)
    db.commit()
    db.refresh(generated.credential)
    return ApiCredentialResponse(
        api_key=generated.credential.api_key,
        api_secret=generated.api_secret,
        created_at=generated.credential.rotated_at or generated.credential.created_at,
    )


@router.patch("/profile", response_model=ContactResponse)
def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    principal: PortalPrincipal = Depends(require_portal_user),
):
    contact = db.query(Contact).filter(Contact.id == principal.contact_id).first() if principal.contact_id else None
    if not contact:
        raise NotFoundError("Contact not found")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(contact, key, value)
    db.commit()
    db.refresh(contact)
    return ContactResponse.model_validate(contact)


@router.get("/team", response_model=list[ContactResponse])
def list_team(
    db: Session = Depends(get_db),
    principal: PortalPrincipal = Depends(require_portal_user),
):
    contacts = (
        db.query(Contact)
        .filter(Contact.company_id == principal.company_id, Contact.is_active.is_(True))
        .order_by(Contact.created_at)
        .all()
    )
    return [ContactResponse.model_validate(c) for c in contacts]


@router.post("/team/invite", status_code=201)
def invite_team_member(
    data: TeamInviteRequest,
    db: Session = Depends(get_db),
    principal: PortalPrincipal = Depends(require_portal_user),
):
    email = data.email.lower()
    exists = db.query(Contact).filter(Contact.company_id == principal.company_id, Contact.email == email).first()
    if exists:
        raise ConflictError("A team member with this email already exists")
    contact = Contact(
        company_id=principal.company_id,
        first_name=data.first_name,
        last_name=data.last_name,
        email=email,
        title=data.title,
        role=data.role,
        is_active=True,
    )
    db.add(contact)
    db.flush()
    created = create_invite(
        db,
        email,
        inviter_id=principal.auth_user_id,
        inviter_name=principal.display_name,
        metadata={"contact_id": contact.id, "company_id": principal.company_id, "type": "team_member"},
        recipient_name=data.first_name,
    )
    for project in projects.list_projects(db, principal):
        activity_log.log_activity(db, project.id, activity_log.ACTION_TEAM_MEMBER_INVITED, user_id=principal.auth_user_id, details={
            "contact_id": contact.id,
            "email": email,
        })
    db.commit()
    db.refresh(contact)
    return {
        "success": True,
        "contact": ContactResponse.model_validate(contact),
        "invite_id": created.invite.id,
        "email_sent": created.email_sent,
        "warning": created.warning,
    }
