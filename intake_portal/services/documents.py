"""Project documents: upload to the object store, list, delete, signed download."""
from __future__ import annotations

import logging
import os
import secrets

from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.errors import UpstreamError, ValidationError
from intake_portal.models.document import Document, DocumentStatus
from intake_portal.services import activity_log
from intake_portal.services.storage import ObjectStore, StorageError
from intake_portal.services.tenant import TenantContext, get_scoped, require_project_access

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/csv",
    "text/plain",
})


def _safe_extension(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return ext if ext[1:].isalnum() and len(ext) <= 10 else ""


def list_documents(db: Session, context: TenantContext, project_id: str) -> list[Document]:
    require_project_access(db, context, project_id)
    return db.query(Document).filter(Document.project_id == project_id).order_by(Document.created_at.desc()).all()


def upload_document(
    db: Session,
    store: ObjectStore,
    context: TenantContext,
    project_id: str,
    *,
    filename: str,
    content_type: str,
    data: bytes,
) -> Document:
    """Validate type and size, store the blob under a random key, then record it. Flushes; caller commits."""
    require_project_access(db, context, project_id)
    max_bytes = get_settings().max_upload_bytes
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"File type {content_type or 'unknown'} is not allowed")
    if not data:
        raise ValidationError("File is empty")
    if len(data) > max_bytes:
        raise ValidationError(f"File exceeds the maximum size of {max_bytes // (1024 * 1024)} MB")

    key = f"{project_id}/{secrets.token_hex(16)}{_safe_extension(filename)}"
    try:
        store.put(key, data, content_type)
    except StorageError as e:
        raise UpstreamError("Failed to upload file") from e

    document = Document(
        project_id=project_id,
        name=(filename or "document")[:255],
        file_path=key,
        file_type=content_type,
        file_size=len(data),
        status=DocumentStatus.pending,
        uploaded_by_id=context.auth_user_id,
    )
    db.add(document)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_DOCUMENT_UPLOADED, user_id=context.auth_user_id, details={
        "document_id": document.id,
        "name": document.name,
        "file_type": content_type,
        "file_size": len(data),
    })
    return document


def delete_document(db: Session, store: ObjectStore, context: TenantContext, document_id: str) -> None:
    """Remove the row and the blob. A failed blob delete is logged, not raised."""
    document = get_scoped(db, context, Document, document_id, "Document")
    try:
        store.delete(document.file_path)
    except StorageError:
        logger.exception("Failed to delete stored blob %s for document %s", document.file_path, document.id)
    project_id = document.project_id
    details = {"document_id": document.id, "name": document.name}
    db.delete(document)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_DOCUMENT_DELETED, user_id=context.auth_user_id, details=details)


def document_download_url(db: Session, store: ObjectStore, context: TenantContext, document_id: str) -> tuple[Document, str]:
    document = get_scoped(db, context, Document, document_id, "Document")
    return document, store.signed_url(document.file_path, filename=document.name, content_type=document.file_type)


def review_document(db: Session, context: TenantContext, document_id: str, status: DocumentStatus, notes: str | None) -> Document:
    document = get_scoped(db, context, Document, document_id, "Document")
    document.status = status
    if notes is not None:
        document.notes = notes
    db.flush()
    activity_log.log_activity(db, document.project_id, activity_log.ACTION_DOCUMENT_REVIEWED, user_id=context.auth_user_id, details={
        "document_id": document.id,
        "status": status,
    })
    return document
