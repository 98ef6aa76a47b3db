"""Tenant resolution and isolation between companies."""
import pytest

from intake_portal.errors import NotFoundError, TenantAccessError
from intake_portal.models.checklist import ChecklistItem
from intake_portal.models.company import Company
from intake_portal.models.project import OnboardingProject
from intake_portal.models.user import StaffRole
from intake_portal.services.tenant import (
    PortalPrincipal,
    StaffPrincipal,
    get_scoped,
    has_company_access,
    has_project_access,
    require_project_access,
    require_staff_role,
    resolve_context,
)
from intake_portal.services.token_issuer import get_or_create_auth_user


@pytest.fixture()
def two_tenants(client, db_session, onboarding_payload):
    first = client.post("/api/onboarding/submit", json=onboarding_payload()).json()["project_id"]
    other = onboarding_payload()
    other["company"]["legal_name"] = "Beta Mutual"
    other["contact"]["email"] = "ops@beta-mutual.example.com"
    second = client.post("/api/onboarding/submit", json=other).json()["project_id"]
    projects = {p.id: p for p in db_session.query(OnboardingProject).all()}
    return projects[first], projects[second]


def test_resolve_context_prefers_staff(db_session, make_staff, make_portal_user, two_tenants):
    acme, _ = two_tenants
    staff = make_staff(email="both@claimsiq.ai", role=StaffRole.csm)
    make_portal_user(acme.company_id, email="both@claimsiq.ai")
    context = resolve_context(db_session, staff.auth_user_id)
    assert isinstance(context, StaffPrincipal)
    assert context.role == StaffRole.csm


def test_resolve_context_portal_user(db_session, make_portal_user, two_tenants):
    acme, _ = two_tenants
    portal_user = make_portal_user(acme.company_id, email="pat@acme-insurance.example.com")
    context = resolve_context(db_session, portal_user.auth_user_id)
    assert isinstance(context, PortalPrincipal)
    assert context.company_id == acme.company_id
    assert context.email == "pat@acme-insurance.example.com"


def test_resolve_context_unprovisioned_user(db_session):
    user = get_or_create_auth_user(db_session, "stranger@example.com")
    assert resolve_context(db_session, user.id) is None


def test_portal_user_is_confined_to_own_company(db_session, make_portal_user, two_tenants):
    acme, beta = two_tenants
    portal_user = make_portal_user(acme.company_id, email="pat@acme-insurance.example.com")
    context = resolve_context(db_session, portal_user.auth_user_id)

    assert has_company_access(context, acme.company_id)
    assert not has_company_access(context, beta.company_id)
    assert not has_company_access(context, None)
    assert has_project_access(db_session, context, acme.id)
    assert not has_project_access(db_session, context, beta.id)
    assert require_project_access(db_session, context, acme.id).id == acme.id
    with pytest.raises(TenantAccessError):
        require_project_access(db_session, context, beta.id)


def test_staff_sees_every_company(db_session, make_staff, two_tenants):
    acme, beta = two_tenants
    staff = make_staff()
    context = resolve_context(db_session, staff.auth_user_id)
    for project in (acme, beta):
        assert has_project_access(db_session, context, project.id)
    assert db_session.query(Company).count() == 2


def test_child_rows_outside_tenant_read_as_not_found(db_session, make_portal_user, two_tenants):
    acme, beta = two_tenants
    portal_user = make_portal_user(acme.company_id, email="pat@acme-insurance.example.com")
    context = resolve_context(db_session, portal_user.auth_user_id)
    foreign_item = db_session.query(ChecklistItem).filter(ChecklistItem.project_id == beta.id).first()
    own_item = db_session.query(ChecklistItem).filter(ChecklistItem.project_id == acme.id).first()

    assert get_scoped(db_session, context, ChecklistItem, own_item.id, "Checklist item").id == own_item.id
    with pytest.raises(NotFoundError) as exc:
        get_scoped(db_session, context, ChecklistItem, foreign_item.id, "Checklist item")
    assert exc.value.message == "Checklist item not found"


def test_require_staff_role(db_session, make_staff, make_portal_user, two_tenants):
    acme, _ = two_tenants
    engineer = resolve_context(db_session, make_staff(email="eng@claimsiq.ai", role=StaffRole.engineer).auth_user_id)
    assert require_staff_role(engineer) is engineer
    assert require_staff_role(engineer, StaffRole.engineer, StaffRole.admin) is engineer
    with pytest.raises(TenantAccessError):
        require_staff_role(engineer, StaffRole.admin)

    portal = resolve_context(db_session, make_portal_user(acme.company_id, email="pat@acme-insurance.example.com").auth_user_id)
    with pytest.raises(TenantAccessError):
        require_staff_role(portal)
    with pytest.raises(TenantAccessError):
        require_staff_role(None)


def test_portal_api_blocks_other_tenant(client, db_session, make_portal_user, auth_headers, two_tenants):
    acme, beta = two_tenants
    make_portal_user(acme.company_id, email="pat@acme-insurance.example.com")
    headers = auth_headers("pat@acme-insurance.example.com")

    listing = client.get("/api/portal/projects", headers=headers).json()
    assert [p["id"] for p in listing] == [acme.id]
    res = client.get(f"/api/portal/projects/{beta.id}", headers=headers)
    assert res.status_code == 403
    assert client.get(f"/api/portal/projects/{beta.id}/checklist", headers=headers).status_code == 403


def test_authenticated_but_unprovisioned_user_is_forbidden(client, auth_headers):
    res = client.get("/api/portal/projects", headers=auth_headers("stranger@example.com"))
    assert res.status_code == 403
    assert res.json()["detail"] == "User not found in system. Please contact support."
