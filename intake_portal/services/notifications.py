"""Notification dispatcher: Mailgun (preferred) or SendGrid email, templated bodies, email_logs audit."""
from __future__ import annotations

import html as html_lib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx
from sqlalchemy.orm import Session

from intake_portal.config import get_settings
from intake_portal.models.email_log import EmailLog, EmailType

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"

STATUS_LABELS = {
    "discovery_in_progress": "Discovery In Progress",
    "sow_pending": "Statement of Work Pending",
    "contract_signed": "Contract Signed",
    "onboarding": "Onboarding",
    "live": "Live",
    "churned": "Churned",
}

STATUS_MESSAGES = {
    "discovery_in_progress": "We are currently reviewing your requirements and preparing your proposal.",
    "sow_pending": "Your Statement of Work is ready for review. Please check your email for next steps.",
    "contract_signed": "Great news! Your contract has been signed and we are preparing your onboarding.",
    "onboarding": "Your onboarding process has officially begun! Our team is setting up your platform.",
    "live": "Congratulations! Your platform is now live and ready to use!",
    "churned": "Your project status has been updated.",
}


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


def get_status_label(status: Any) -> str:
    value = getattr(status, "value", status) or ""
    return STATUS_LABELS.get(value, str(value).replace("_", " ").title())


def get_status_message(status: Any) -> str:
    value = getattr(status, "value", status) or ""
    return STATUS_MESSAGES.get(value, "Your project status has been updated.")


def send_email(
    to: str,
    subject: str,
    html: str | None = None,
    text: str | None = None,
    template_id: str | None = None,
    template_data: dict[str, Any] | None = None,
) -> SendResult:
    """Send via Mailgun when configured, else SendGrid. Never raises; failures come back in the result."""
    settings = get_settings()
    if template_id:
        # dynamic templates only exist on SendGrid
        if not settings.sendgrid_api_key:
            return SendResult(success=False, error="Template emails require SendGrid")
        return _send_email_sendgrid(to, subject, html, text, template_id, template_data, settings=settings)
    if settings.mailgun_api_key and settings.mailgun_domain:
        return _send_email_mailgun(to, subject, html, text, settings=settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to, subject, html, text, settings=settings)
    logger.warning("Email not sent to=%s subject=%s: no email provider configured", to, subject)
    return SendResult(success=False, error="Email provider not configured")


def _send_email_mailgun(to: str, subject: str, html: str | None, text: str | None, settings=None) -> SendResult:
    if settings is None:
        settings = get_settings()
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = (settings.mailgun_domain or "").strip().lower()
    from_addr = (settings.mailgun_from_email or "").strip()
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun rejects senders outside the sending domain
        from_addr = f"noreply@{domain}"
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": to,
        "subject": subject,
        "text": text or "",
        "html": html or "",
    }
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                logger.info("Mailgun 401 on US endpoint, retrying EU endpoint")
                r = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
    except httpx.HTTPError as e:
        logger.error("Mailgun request failed to=%s: %s", to, e)
        return SendResult(success=False, error=f"Mailgun request failed: {type(e).__name__}")
    if 200 <= r.status_code < 300:
        try:
            msg_id = (r.json() or {}).get("id") or None
        except ValueError:
            msg_id = None
        logger.info("Email sent via Mailgun to=%s subject=%s id=%s", to, subject, msg_id)
        return SendResult(success=True, message_id=msg_id)
    logger.error("Mailgun rejected email to=%s status=%s body=%s", to, r.status_code, r.text[:500])
    return SendResult(success=False, error=f"Mailgun returned {r.status_code}")


def _send_email_sendgrid(
    to: str,
    subject: str,
    html: str | None,
    text: str | None,
    template_id: str | None = None,
    template_data: dict[str, Any] | None = None,
    settings=None,
) -> SendResult:
    if settings is None:
        settings = get_settings()
    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail

    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to,
        subject=subject,
        html_content=html,
        plain_text_content=text,
    )
    if template_id:
        message.template_id = template_id
        message.dynamic_template_data = template_data or {}
    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:
        # the SDK raises python_http_client errors for non-2xx responses
        logger.error("SendGrid send failed to=%s: %s", to, e)
        return SendResult(success=False, error=f"SendGrid send failed: {type(e).__name__}")
    headers = getattr(response, "headers", None) or {}
    msg_id = headers.get("X-Message-Id") if hasattr(headers, "get") else None
    logger.info("Email sent via SendGrid to=%s subject=%s id=%s", to, subject, msg_id)
    return SendResult(success=True, message_id=msg_id)


def dispatch(
    db: Session,
    email_type: EmailType,
    to: str,
    subject: str,
    html: str,
    text: str,
    *,
    project_id: str | None = None,
    invite_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> SendResult:
    """Send one email and append its outcome to email_logs. Flushes; commit remains with caller."""
    result = send_email(to, subject, html=html, text=text)
    db.add(EmailLog(
        email_type=email_type,
        recipient_email=to,
        subject=subject,
        status="sent" if result.success else "failed",
        provider_message_id=result.message_id,
        error_message=result.error,
        project_id=project_id,
        invite_id=invite_id,
        meta=metadata or {},
    ))
    db.flush()
    return result


def _esc(value: Any) -> str:
    return html_lib.escape(str(value)) if value is not None else ""


def _layout(heading: str, body: str) -> str:
    brand = _esc(get_settings().brand_name)
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #1a56db; color: white; padding: 20px; text-align: center;"><h1>{brand}</h1></div>
    <div style="background: #f9fafb; padding: 30px;">
      <h2>{heading}</h2>
      {body}
    </div>
  </div>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<p style="text-align: center;"><a href="{_esc(url)}" '
        f'style="display: inline-block; background: #1a56db; color: white; padding: 14px 28px; '
        f'text-decoration: none; border-radius: 6px;">{_esc(label)}</a></p>'
    )


def _format_date(value: datetime | None) -> str:
    return value.strftime("%B %d, %Y") if value else ""


def send_invite_email(
    db: Session,
    to: str,
    *,
    invite_url: str,
    invited_by: str,
    expires_at: datetime,
    company_name: str | None = None,
    recipient_name: str | None = None,
    invite_id: str | None = None,
) -> SendResult:
    brand = get_settings().brand_name
    subject = f"You've been invited to onboard with {brand}"
    greeting = f"Hello {recipient_name}," if recipient_name else "Hello,"
    company_html = f"<p>Company: <strong>{_esc(company_name)}</strong></p>" if company_name else ""
    html = _layout("You're Invited!", f"""
      <p>{_esc(greeting)}</p>
      <p>You have been invited to begin the onboarding process with <strong>{_esc(brand)}</strong>.</p>
      {company_html}
      <p>Click the button below to start your onboarding:</p>
      {_button(invite_url, "Start Onboarding")}
      <p><strong>This link will expire on {_format_date(expires_at)}.</strong></p>
      <p style="font-size: 12px; color: #666;">Invited by: {_esc(invited_by)}<br>
      If you did not expect this invitation, please ignore this email.</p>""")
    text = "\n".join([
        f"You're Invited to {brand}!",
        "",
        greeting,
        "",
        f"You have been invited to begin the onboarding process with {brand}.",
        f"Company: {company_name}" if company_name else "",
        "",
        f"Click here to start your onboarding: {invite_url}",
        "",
        f"This link will expire on {_format_date(expires_at)}.",
        "",
        f"Invited by: {invited_by}",
        "",
        "If you did not expect this invitation, please ignore this email.",
    ])
    return dispatch(db, EmailType.invite, to, subject, html, text, invite_id=invite_id)


def send_magic_link_email(db: Session, to: str, *, magic_link_url: str, code: str, expires_in_minutes: int) -> SendResult:
    brand = get_settings().brand_name
    subject = f"Your {brand} Sign-In Link"
    html = _layout("Sign in to your account", f"""
      <p>Click the button below to sign in. This link expires in {expires_in_minutes} minutes.</p>
      {_button(magic_link_url, "Sign In")}
      <p>Or enter this code: <strong style="font-size: 1.2em; letter-spacing: 0.2em;">{_esc(code)}</strong></p>
      <p style="font-size: 12px; color: #666;">If you did not request this, you can ignore this email.</p>""")
    text = (
        f"Sign in to {brand}\n\n"
        f"Use this link to sign in: {magic_link_url}\n\n"
        f"Or enter this code: {code}\n\n"
        f"This link expires in {expires_in_minutes} minutes. If you did not request this, you can ignore this email."
    )
    return dispatch(db, EmailType.magic_link, to, subject, html, text)


def send_status_update_email(
    db: Session,
    to: str,
    *,
    contact_name: str,
    company_name: str,
    previous_status: Any,
    new_status: Any,
    portal_url: str,
    project_id: str | None = None,
) -> SendResult:
    brand = get_settings().brand_name
    old_label = get_status_label(previous_status)
    new_label = get_status_label(new_status)
    message = get_status_message(new_status)
    subject = f"Your {brand} Onboarding Status: {new_label}"
    html = _layout("Onboarding Status Update", f"""
      <p>Hello {_esc(contact_name)},</p>
      <p>The onboarding status for <strong>{_esc(company_name)}</strong> has been updated.</p>
      <p style="text-align: center;"><span>{_esc(old_label)}</span> &rarr; <strong>{_esc(new_label)}</strong></p>
      <p style="background: #dbeafe; border-left: 4px solid #1a56db; padding: 15px;">{_esc(message)}</p>
      {_button(portal_url, "View Your Portal")}""")
    text = (
        f"Hello {contact_name},\n\n"
        f"The onboarding status for {company_name} has been updated.\n\n"
        f"{old_label} -> {new_label}\n\n"
        f"{message}\n\n"
        f"View your portal: {portal_url}"
    )
    return dispatch(
        db, EmailType.status_update, to, subject, html, text,
        project_id=project_id,
        metadata={
            "previous_status": getattr(previous_status, "value", previous_status),
            "new_status": getattr(new_status, "value", new_status),
        },
    )


def send_password_reset_email(db: Session, to: str, *, reset_url: str, expires_in_hours: int) -> SendResult:
    brand = get_settings().brand_name
    subject = f"Reset Your {brand} Password"
    html = _layout("Reset your password", f"""
      <p>We received a request to reset your password. Click the button below to choose a new one.</p>
      {_button(reset_url, "Reset Password")}
      <p>This link expires in {expires_in_hours} hours.</p>
      <p style="font-size: 12px; color: #666;">If you did not request a password reset, you can ignore this email.</p>""")
    text = (
        f"Reset your {brand} password\n\n"
        f"Use this link to choose a new password: {reset_url}\n\n"
        f"This link expires in {expires_in_hours} hours. If you did not request a password reset, you can ignore this email."
    )
    return dispatch(db, EmailType.password_reset, to, subject, html, text)


def send_welcome_email(
    db: Session,
    to: str,
    *,
    contact_name: str,
    company_name: str,
    portal_url: str,
    project_id: str | None = None,
) -> SendResult:
    brand = get_settings().brand_name
    subject = f"Welcome to {brand}!"
    html = _layout(f"Welcome, {_esc(contact_name)}!", f"""
      <p>Thank you for submitting the onboarding information for <strong>{_esc(company_name)}</strong>.</p>
      <p>Our team is reviewing your requirements and will be in touch shortly with next steps.</p>
      {_button(portal_url, "Visit Your Portal")}""")
    text = (
        f"Welcome to {brand}, {contact_name}!\n\n"
        f"Thank you for submitting the onboarding information for {company_name}.\n"
        "Our team is reviewing your requirements and will be in touch shortly with next steps.\n\n"
        f"Visit your portal: {portal_url}"
    )
    return dispatch(db, EmailType.welcome, to, subject, html, text, project_id=project_id)
