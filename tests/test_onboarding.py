"""Onboarding submission pipeline and public endpoints."""
import pytest

from intake_portal.errors import ConflictError
from intake_portal.models.activity_log import ActivityLog
from intake_portal.models.checklist import ChecklistItem, ChecklistTemplate
from intake_portal.models.company import Company, Contact, ContactRole
from intake_portal.models.email_log import EmailLog, EmailType
from intake_portal.models.invite import Invite, InviteStatus
from intake_portal.models.project import (
    CommsModuleConfig,
    CoreModuleConfig,
    FnolModuleConfig,
    ModuleSelection,
    ModuleType,
    OnboardingProject,
    ProjectStatus,
)
from intake_portal.schemas.onboarding import OnboardingSubmission
from intake_portal.services import invites as invite_service
from intake_portal.services import onboarding as onboarding_service
from intake_portal.services.token_issuer import get_or_create_auth_user


def test_acme_submission_end_to_end(client, db_session, onboarding_payload, mailer):
    res = client.post("/api/onboarding/submit", json=onboarding_payload())
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    project = db_session.query(OnboardingProject).filter(OnboardingProject.id == body["project_id"]).one()
    assert project.status == ProjectStatus.discovery_in_progress

    company = db_session.query(Company).one()
    assert company.legal_name == "Acme Insurance Co"
    assert company.lines_of_business == ["auto", "property"]
    contact = db_session.query(Contact).one()
    assert contact.role == ContactRole.primary
    assert contact.email == "jane.doe@acme-insurance.example.com"

    selections = {s.module_type: s for s in db_session.query(ModuleSelection).filter(ModuleSelection.project_id == project.id)}
    assert set(selections) == set(ModuleType)
    assert selections[ModuleType.core].is_selected
    assert selections[ModuleType.fnol].is_selected
    assert not selections[ModuleType.comms].is_selected

    core = db_session.query(CoreModuleConfig).one()
    assert core.module_selection_id == selections[ModuleType.core].id
    assert core.perils == ["hail", "wind"]
    assert core.monthly_claim_volume == 1200
    fnol = db_session.query(FnolModuleConfig).one()
    assert fnol.photo_required is True
    assert db_session.query(CommsModuleConfig).count() == 0

    activity = db_session.query(ActivityLog).filter(ActivityLog.project_id == project.id).one()
    assert activity.action == "onboarding_submitted"
    assert activity.details["modules_selected"] == ["core", "fnol"]

    welcome = mailer.to("jane.doe@acme-insurance.example.com")
    assert len(welcome) == 1
    assert db_session.query(EmailLog).filter(EmailLog.email_type == EmailType.welcome).count() == 1


def test_checklist_follows_selected_modules(client, db_session, onboarding_payload):
    project_id = client.post("/api/onboarding/submit", json=onboarding_payload()).json()["project_id"]
    rows = (
        db_session.query(ChecklistTemplate)
        .join(ChecklistItem, ChecklistItem.template_id == ChecklistTemplate.id)
        .filter(ChecklistItem.project_id == project_id)
        .all()
    )
    for template in rows:
        required = template.required_for_modules
        assert not required or set(required) & {"core", "fnol"}
    expected = [
        t for t in db_session.query(ChecklistTemplate).all()
        if not t.required_for_modules or set(t.required_for_modules) & {"core", "fnol"}
    ]
    assert len(rows) == len(expected)
    assert not any(t.required_for_modules == ["comms"] for t in rows)


def test_no_modules_selected_is_rejected_without_writes(client, db_session, onboarding_payload):
    res = client.post("/api/onboarding/submit", json=onboarding_payload(modules={"core": False, "comms": False, "fnol": False}))
    assert res.status_code == 400
    assert res.json()["detail"] == "At least one module must be selected"
    assert db_session.query(Company).count() == 0


def test_missing_required_company_field(client, db_session, onboarding_payload):
    payload = onboarding_payload()
    payload["company"]["legal_name"] = "   "
    res = client.post("/api/onboarding/submit", json=payload)
    assert res.status_code == 400
    assert db_session.query(Company).count() == 0


def test_invalid_website_is_rejected(client, onboarding_payload):
    payload = onboarding_payload()
    payload["company"]["website"] = "not a url"
    assert client.post("/api/onboarding/submit", json=payload).status_code == 400


def test_failure_mid_pipeline_rolls_back_everything(db_session, onboarding_payload, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("contact insert failed")

    monkeypatch.setattr(onboarding_service, "_create_primary_contact", boom)
    submission = OnboardingSubmission(**onboarding_payload())
    with pytest.raises(RuntimeError):
        onboarding_service.submit_onboarding(db_session, submission)
    assert db_session.query(Company).count() == 0
    assert db_session.query(OnboardingProject).count() == 0


def test_upsert_module_config_updates_existing_row(client, db_session, onboarding_payload):
    project_id = client.post("/api/onboarding/submit", json=onboarding_payload()).json()["project_id"]
    selection = db_session.query(ModuleSelection).filter(
        ModuleSelection.project_id == project_id,
        ModuleSelection.module_type == ModuleType.core,
    ).one()
    onboarding_service.upsert_module_config(db_session, selection, {"monthly_claim_volume": 5000})
    db_session.commit()
    configs = db_session.query(CoreModuleConfig).all()
    assert len(configs) == 1
    assert configs[0].monthly_claim_volume == 5000
    assert configs[0].perils == ["hail", "wind"]


def test_submission_with_invite_marks_it_used(client, db_session, onboarding_payload):
    inviter = get_or_create_auth_user(db_session, "csm@claimsiq.ai")
    invite = invite_service.create_invite(db_session, "jane.doe@acme-insurance.example.com", inviter_id=inviter.id, inviter_name="Casey").invite
    db_session.commit()

    res = client.post("/api/onboarding/submit", json=onboarding_payload(invite_token=invite.token))
    assert res.status_code == 201
    db_session.refresh(invite)
    assert invite.status == InviteStatus.used
    assert invite.project_id == res.json()["project_id"]
    assert invite.used_at is not None

    again = client.post("/api/onboarding/submit", json=onboarding_payload(invite_token=invite.token))
    assert again.status_code == 400
    assert again.json()["detail"] == invite_service.ERROR_USED
    assert db_session.query(Company).count() == 1


def test_submission_with_unknown_invite(client, db_session, onboarding_payload):
    res = client.post("/api/onboarding/submit", json=onboarding_payload(invite_token="a" * 64))
    assert res.status_code == 400
    assert res.json()["detail"] == invite_service.ERROR_INVALID
    assert db_session.query(Invite).count() == 0
    assert db_session.query(Company).count() == 0


def test_welcome_email_failure_does_not_fail_submission(client, db_session, onboarding_payload, mailer):
    mailer.fail_for.add("jane.doe@acme-insurance.example.com")
    res = client.post("/api/onboarding/submit", json=onboarding_payload())
    assert res.status_code == 201
    assert db_session.query(OnboardingProject).count() == 1


def test_status_endpoint(client, project_id):
    res = client.get(f"/api/onboarding/status/{project_id}")
    assert res.status_code == 200
    body = res.json()
    assert body == {
        "id": project_id,
        "status": "discovery_in_progress",
        "createdAt": body["createdAt"],
        "companyName": "Acme Insurance Co",
    }
    assert body["createdAt"]


def test_status_endpoint_unknown_project(client):
    res = client.get("/api/onboarding/status/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404
    assert res.json()["detail"] == "Project not found"


def test_core_only_submission(client, db_session, onboarding_payload):
    payload = onboarding_payload(
        modules={"core": True, "comms": False, "fnol": False},
        requirements={"core": {"claim_types": ["auto"], "perils": ["hail"], "monthly_claim_volume": 500}},
    )
    res = client.post("/api/onboarding/submit", json=payload)
    assert res.status_code == 201
    project_id = res.json()["project_id"]

    selections = db_session.query(ModuleSelection).filter(ModuleSelection.project_id == project_id).all()
    assert len(selections) == 3
    assert [s.module_type for s in selections if s.is_selected] == [ModuleType.core]
    core = db_session.query(CoreModuleConfig).one()
    assert core.monthly_claim_volume == 500
    assert db_session.query(CommsModuleConfig).count() == 0
    assert db_session.query(FnolModuleConfig).count() == 0


def test_invite_consumed_during_submission_rolls_back(client, db_session, onboarding_payload, monkeypatch):
    inviter = get_or_create_auth_user(db_session, "csm@claimsiq.ai")
    invite = invite_service.create_invite(db_session, "jane.doe@acme-insurance.example.com", inviter_id=inviter.id, inviter_name="Casey").invite
    db_session.commit()
    token = invite.token
    real_create_project = onboarding_service._create_project

    def create_project_then_lose_race(db, company):
        project = real_create_project(db, company)
        # another submission claims the same invite after this one validated it
        assert invite_service.mark_invite_used(db, token, None)
        return project

    monkeypatch.setattr(onboarding_service, "_create_project", create_project_then_lose_race)
    res = client.post("/api/onboarding/submit", json=onboarding_payload(invite_token=token))
    assert res.status_code == 409
    assert res.json()["detail"] == invite_service.ERROR_USED
    assert db_session.query(Company).count() == 0
    assert db_session.query(OnboardingProject).count() == 0


def test_pipeline_refuses_an_already_used_invite(db_session, onboarding_payload):
    inviter = get_or_create_auth_user(db_session, "csm@claimsiq.ai")
    invite = invite_service.create_invite(db_session, "jane.doe@acme-insurance.example.com", inviter_id=inviter.id, inviter_name="Casey").invite
    assert invite_service.mark_invite_used(db_session, invite.token, None)
    db_session.commit()

    submission = OnboardingSubmission.model_validate(onboarding_payload(invite_token=invite.token))
    with pytest.raises(ConflictError):
        onboarding_service.submit_onboarding(db_session, submission)
    assert db_session.query(Company).count() == 0
    assert db_session.query(ChecklistItem).count() == 0
    db_session.refresh(invite)
    assert invite.status == InviteStatus.used
    assert invite.project_id is None
