"""Claims iQ Onboarding – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_portal.config import get_settings
from intake_portal.database import Base, SessionLocal, engine
from intake_portal.errors import register_exception_handlers
# Import models so Base.metadata has all tables before create_all
from intake_portal import models  # noqa: F401
from intake_portal.routers import admin, auth, invites, onboarding, portal, storage

logger = logging.getLogger("uvicorn.error")

settings = get_settings()
# Debug mode swaps the JSON 500 handler for a traceback page; never on in production
app = FastAPI(title=settings.app_name, debug=settings.debug and not settings.is_production)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(onboarding.router)
app.include_router(invites.router)
app.include_router(portal.router)
app.include_router(admin.router)
app.include_router(storage.router)


def _log_email_provider() -> None:
    if settings.mailgun_api_key and settings.mailgun_domain:
        from_addr = settings.mailgun_from_email or ""
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        send_domain = settings.mailgun_domain.lower()
        if from_domain and from_domain != send_domain:
            logger.warning("[Mailgun] from=%s does not match domain=%s. Emails may not be delivered.", from_addr, settings.mailgun_domain)
        else:
            logger.info("[Mailgun] Using domain=%s from=%s", settings.mailgun_domain, from_addr or "(none)")
    elif settings.sendgrid_api_key:
        logger.info("[SendGrid] Using from=%s", settings.sendgrid_from_email)
    else:
        logger.warning("No email provider configured - invites and sign-in links will not be delivered")


@app.on_event("startup")
def startup():
    _log_email_provider()
    try:
        Base.metadata.create_all(bind=engine)
        from intake_portal.seed import seed_checklist_templates
        db = SessionLocal()
        try:
            seed_checklist_templates(db)
        finally:
            db.close()
    except Exception as e:
        logger.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL. Error: %s", e)

    if settings.invite_expiry_job_enabled:
        from apscheduler.schedulers.background import BackgroundScheduler
        from intake_portal.services.invites import run_invite_expiry_job
        scheduler = BackgroundScheduler()
        scheduler.add_job(run_invite_expiry_job, "interval", hours=1)
        scheduler.start()
        app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
