"""
Pytest configuration and fixtures.

Provides:
    - db_session: in-memory SQLite session, tables created and dropped per test
    - client: FastAPI TestClient bound to db_session and a temp-dir object store
    - mailer: records outbound email instead of calling a provider (autouse)
    - make_staff / make_portal_user / auth_headers: principals and bearer headers
    - onboarding_payload / project_id: a valid submission and its resulting project
"""
import os

# Must be set before any intake_portal import reads settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["INVITE_EXPIRY_JOB_ENABLED"] = "false"
os.environ["APP_BASE_URL"] = "http://testserver"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["SENDGRID_API_KEY"] = ""

import copy
import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from intake_portal.database import Base, get_db
from intake_portal.main import app
from intake_portal.models.company import Contact, ContactRole
from intake_portal.models.user import StaffRole
from intake_portal.seed import seed_checklist_templates
from intake_portal.services import notifications
from intake_portal.services.auth import create_staff_user, provision_portal_user
from intake_portal.services.notifications import SendResult
from intake_portal.services.storage import LocalObjectStore, get_object_store
from intake_portal.services.token_issuer import get_or_create_auth_user, get_token_issuer

TEST_DATABASE_URL = "sqlite://"

ACME_PAYLOAD = {
    "company": {
        "legal_name": "Acme Insurance Co",
        "dba_name": "Acme",
        "website": "https://acme-insurance.example.com",
        "address_line_1": "100 Main Street",
        "city": "Hartford",
        "state": "CT",
        "postal_code": "06103",
        "company_size": "medium",
        "lines_of_business": ["auto", "property"],
    },
    "contact": {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "Jane.Doe@Acme-Insurance.example.com",
        "phone": "555-0100",
        "title": "VP Claims",
    },
    "modules": {"core": True, "comms": False, "fnol": True},
    "requirements": {
        "core": {
            "claim_types": ["auto", "property"],
            "perils": ["hail", "wind"],
            "monthly_claim_volume": 1200,
        },
        "fnol": {
            "desired_intake_methods": ["web", "phone"],
            "monthly_fnol_volume": 300,
            "photo_required": True,
        },
    },
}


class FakeMailer:
    """Stands in for the provider call; records every message."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self._ids = itertools.count(1)

    def __call__(self, to, subject, html=None, text=None, template_id=None, template_data=None):
        if to in self.fail_for:
            return SendResult(success=False, error="Mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return SendResult(success=True, message_id=f"test-{next(self._ids)}")

    def to(self, address):
        return [m for m in self.sent if m["to"] == address]


@pytest.fixture(autouse=True)
def mailer(monkeypatch):
    fake = FakeMailer()
    monkeypatch.setattr(notifications, "send_email", fake)
    return fake


@pytest.fixture()
def db_session():
    """Fresh in-memory database per test, checklist templates seeded."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    seed_checklist_templates(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def object_store(tmp_path):
    return LocalObjectStore(tmp_path / "storage")


@pytest.fixture()
def client(db_session, object_store):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: object_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(db_session):
    """Return a function that signs in an email and builds a bearer header."""
    def _headers(email):
        user = get_or_create_auth_user(db_session, email)
        session = get_token_issuer().issue(db_session, user)
        db_session.commit()
        return {"Authorization": f"Bearer {session.access_token}"}
    return _headers


@pytest.fixture()
def make_staff(db_session):
    def _make(email="admin@claimsiq.ai", role=StaffRole.admin, password=None):
        staff = create_staff_user(db_session, email, first_name="Sam", last_name="Staff", role=role, password=password)
        db_session.commit()
        return staff
    return _make


@pytest.fixture()
def make_portal_user(db_session):
    """Provision a portal user for an existing contact, or for a new contact of company_id."""
    def _make(company_id, email=None, contact_id=None):
        if contact_id is None:
            contact = Contact(
                company_id=company_id,
                first_name="Pat",
                last_name="Portal",
                email=email,
                role=ContactRole.other,
            )
            db_session.add(contact)
            db_session.flush()
            contact_id = contact.id
        portal_user, auth_user = provision_portal_user(db_session, contact_id)
        db_session.commit()
        return portal_user
    return _make


@pytest.fixture()
def onboarding_payload():
    def _payload(**overrides):
        data = copy.deepcopy(ACME_PAYLOAD)
        data.update(overrides)
        return data
    return _payload


@pytest.fixture()
def project_id(client, onboarding_payload):
    res = client.post("/api/onboarding/submit", json=onboarding_payload())
    assert res.status_code == 201
    return res.json()["project_id"]


@pytest.fixture()
def staff_headers(make_staff, auth_headers):
    make_staff()
    return auth_headers("admin@claimsiq.ai")


@pytest.fixture()
def portal_headers(db_session, project_id, make_portal_user, auth_headers):
    """Portal user bound to the primary contact of the submitted project's company."""
    from intake_portal.models.project import OnboardingProject
    project = db_session.query(OnboardingProject).filter(OnboardingProject.id == project_id).one()
    primary = db_session.query(Contact).filter(
        Contact.company_id == project.company_id,
        Contact.role == ContactRole.primary,
    ).one()
    make_portal_user(project.company_id, contact_id=primary.id)
    return auth_headers(primary.email)
