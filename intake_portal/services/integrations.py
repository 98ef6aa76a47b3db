"""Webhooks, integration configs and API credentials for a project. Metadata only; nothing is delivered."""
from __future__ import annotations

import secrets
from dataclasses import dataclass

from sqlalchemy.orm import Session

from intake_portal.database import utcnow
from intake_portal.models.integration import ApiCredential, IntegrationConfig, Webhook
from intake_portal.schemas.portal import IntegrationConfigCreate, WebhookCreate
from intake_portal.services import activity_log
from intake_portal.services.credentials import generate_token, hash_secret
from intake_portal.services.tenant import TenantContext, get_scoped, require_project_access

WEBHOOK_SECRET_PREFIX = "whsec_"
API_KEY_PREFIX = "ciq_live_"


@dataclass(frozen=True)
class GeneratedCredentials:
    credential: ApiCredential
    api_secret: str


def list_webhooks(db: Session, context: TenantContext, project_id: str) -> list[Webhook]:
    require_project_access(db, context, project_id)
    return db.query(Webhook).filter(Webhook.project_id == project_id).order_by(Webhook.created_at).all()


def create_webhook(db: Session, context: TenantContext, project_id: str, data: WebhookCreate) -> Webhook:
    require_project_access(db, context, project_id)
    webhook = Webhook(
        project_id=project_id,
        url=str(data.url),
        events=list(data.events),
        description=data.description,
        secret=WEBHOOK_SECRET_PREFIX + secrets.token_hex(24),
        created_by=context.auth_user_id,
    )
    db.add(webhook)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_WEBHOOK_CREATED, user_id=context.auth_user_id, details={
        "webhook_id": webhook.id,
        "url": webhook.url,
        "events": webhook.events,
    })
    return webhook


def delete_webhook(db: Session, context: TenantContext, webhook_id: str) -> None:
    webhook = get_scoped(db, context, Webhook, webhook_id, "Webhook")
    project_id = webhook.project_id
    details = {"webhook_id": webhook.id, "url": webhook.url}
    db.delete(webhook)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_WEBHOOK_DELETED, user_id=context.auth_user_id, details=details)


def list_integrations(db: Session, context: TenantContext, project_id: str) -> list[IntegrationConfig]:
    require_project_access(db, context, project_id)
    return db.query(IntegrationConfig).filter(IntegrationConfig.project_id == project_id).order_by(IntegrationConfig.created_at).all()


def add_integration(db: Session, context: TenantContext, project_id: str, data: IntegrationConfigCreate) -> IntegrationConfig:
    require_project_access(db, context, project_id)
    config = IntegrationConfig(
        project_id=project_id,
        system_name=data.system_name,
        system_type=data.system_type,
        connection_method=data.connection_method,
        api_documentation_url=str(data.api_documentation_url) if data.api_documentation_url else None,
        notes=data.notes,
    )
    db.add(config)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_INTEGRATION_ADDED, user_id=context.auth_user_id, details={
        "integration_id": config.id,
        "system_name": config.system_name,
        "system_type": config.system_type,
    })
    return config


def regenerate_api_credentials(db: Session, context: TenantContext, project_id: str) -> GeneratedCredentials:
    """Issue a new key pair, replacing any previous one. Only the secret's hash is kept."""
    require_project_access(db, context, project_id)
    api_key = API_KEY_PREFIX + generate_token(16)
    api_secret = generate_token(32)
    credential = db.query(ApiCredential).filter(ApiCredential.project_id == project_id).first()
    if credential is None:
        credential = ApiCredential(project_id=project_id, created_by=context.auth_user_id)
        db.add(credential)
    else:
        credential.rotated_at = utcnow()
    credential.api_key = api_key
    credential.secret_hash = hash_secret(api_secret)
    db.flush()
    activity_log.log_activity(db, project_id, activity_log.ACTION_API_CREDENTIALS_REGENERATED, user_id=context.auth_user_id, details={
        "api_key": api_key,
    })
    return GeneratedCredentials(credential=credential, api_secret=api_secret)
