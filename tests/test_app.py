"""App wiring: health probes, error envelope, template seeding."""
from fastapi.testclient import TestClient

from intake_portal.main import app
from intake_portal.models.checklist import ChecklistTemplate
from intake_portal.routers import onboarding as onboarding_router
from intake_portal.seed import seed_checklist_templates


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "ok"


def test_validation_errors_use_400_envelope(client):
    res = client.post("/api/onboarding/submit", json={"company": {}})
    assert res.status_code == 400
    body = res.json()
    assert isinstance(body["detail"], str)
    assert body["errors"]
    assert {"loc", "msg", "type"} <= set(body["errors"][0])


def test_seed_is_idempotent(db_session):
    count = db_session.query(ChecklistTemplate).count()
    assert count == 10
    seed_checklist_templates(db_session)
    assert db_session.query(ChecklistTemplate).count() == count


def test_unexpected_errors_return_generic_500(client, onboarding_payload, monkeypatch):
    def explode(db, submission):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(onboarding_router, "submit_onboarding", explode)
    quiet_client = TestClient(app, raise_server_exceptions=False)
    res = quiet_client.post("/api/onboarding/submit", json=onboarding_payload())
    assert res.status_code == 500
    assert res.json() == {"detail": "Internal server error"}
    assert "Traceback" not in res.text
    assert app.debug is False
