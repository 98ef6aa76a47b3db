"""Client portal endpoints: project views, checklist, SOW, documents, integrations, team."""
from intake_portal.models.activity_log import ActivityLog
from intake_portal.models.company import Contact
from intake_portal.models.document import Document
from intake_portal.models.integration import ApiCredential
from intake_portal.models.invite import Invite
from intake_portal.services.credentials import hash_secret


def _actions(db_session, project_id):
    return [a.action for a in db_session.query(ActivityLog).filter(ActivityLog.project_id == project_id)]


def test_project_list_and_detail(client, portal_headers, project_id):
    listing = client.get("/api/portal/projects", headers=portal_headers)
    assert listing.status_code == 200
    summary = listing.json()[0]
    assert summary["id"] == project_id
    assert summary["company"]["legal_name"] == "Acme Insurance Co"
    assert summary["primary_contact"]["first_name"] == "Jane"
    assert summary["checklist_progress"]["completed"] == 0
    assert summary["checklist_progress"]["total"] > 0

    detail = client.get(f"/api/portal/projects/{project_id}", headers=portal_headers).json()
    modules = {m["module_type"]: m for m in detail["module_selections"]}
    assert modules["core"]["config"]["monthly_claim_volume"] == 1200
    assert modules["comms"]["config"] is None
    assert len(detail["contacts"]) == 1
    assert detail["checklist_items"][0]["template"]["name"]
    assert detail["activity_logs"] is None


def test_portal_requires_authentication(client, project_id):
    assert client.get("/api/portal/projects").status_code == 401
    bad = client.get("/api/portal/projects", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid or expired token"


def test_session_cookie_is_accepted(client, portal_headers):
    token = portal_headers["Authorization"].split(" ", 1)[1]
    client.cookies.set("sb-access-token", token)
    assert client.get("/api/portal/projects").status_code == 200


def test_checklist_completed_at_tracks_status(client, db_session, portal_headers, project_id):
    items = client.get(f"/api/portal/projects/{project_id}/checklist", headers=portal_headers).json()
    orders = [i["template"]["order_index"] for i in items]
    assert orders == sorted(orders)
    item_id = items[0]["id"]

    done = client.patch(f"/api/portal/checklist/{item_id}", json={"status": "complete", "notes": "Done on call"}, headers=portal_headers)
    assert done.status_code == 200
    assert done.json()["completed_at"] is not None
    assert done.json()["notes"] == "Done on call"

    reopened = client.patch(f"/api/portal/checklist/{item_id}", json={"status": "in_progress"}, headers=portal_headers)
    assert reopened.json()["completed_at"] is None
    assert reopened.json()["notes"] == "Done on call"

    assert _actions(db_session, project_id).count("checklist_item_updated") == 2
    summary = client.get("/api/portal/projects", headers=portal_headers).json()[0]
    assert summary["checklist_progress"]["completed"] == 0


def test_checklist_invalid_status(client, portal_headers, project_id):
    items = client.get(f"/api/portal/projects/{project_id}/checklist", headers=portal_headers).json()
    res = client.patch(f"/api/portal/checklist/{items[0]['id']}", json={"status": "finished"}, headers=portal_headers)
    assert res.status_code == 400


def test_unknown_checklist_item(client, portal_headers):
    res = client.patch("/api/portal/checklist/missing", json={"status": "complete"}, headers=portal_headers)
    assert res.status_code == 404
    assert res.json()["detail"] == "Checklist item not found"


def test_activity_feed(client, portal_headers, project_id):
    res = client.get(f"/api/portal/projects/{project_id}/activity", headers=portal_headers)
    assert res.status_code == 200
    assert res.json()[0]["action"] == "onboarding_submitted"


def test_sow_approval_is_one_shot(client, db_session, portal_headers, project_id):
    first = client.post(f"/api/portal/projects/{project_id}/sow/approve", headers=portal_headers)
    assert first.status_code == 200
    body = first.json()
    assert body["sow_signed_at"] is not None
    assert body["stage"] == "sow_approved"

    second = client.post(f"/api/portal/projects/{project_id}/sow/approve", headers=portal_headers)
    assert second.status_code == 409
    assert second.json()["detail"] == "Statement of Work has already been signed"
    assert _actions(db_session, project_id).count("sow_approved") == 1


def test_sow_pdf(client, portal_headers, project_id):
    res = client.get(f"/api/portal/projects/{project_id}/sow/pdf", headers=portal_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")
    assert "attachment" in res.headers["content-disposition"]


def test_document_upload_download_delete(client, db_session, portal_headers, project_id, object_store):
    res = client.post(
        f"/api/portal/projects/{project_id}/documents/upload",
        files={"file": ("loss-runs.pdf", b"%PDF-1.4 sample", "application/pdf")},
        headers=portal_headers,
    )
    assert res.status_code == 201
    doc = res.json()
    assert doc["name"] == "loss-runs.pdf"
    assert doc["file_size"] == len(b"%PDF-1.4 sample")
    assert doc["status"] == "pending"

    stored = db_session.query(Document).one()
    assert stored.file_path.startswith(f"{project_id}/")
    assert object_store.get(stored.file_path) == b"%PDF-1.4 sample"

    listing = client.get(f"/api/portal/projects/{project_id}/documents", headers=portal_headers).json()
    assert [d["id"] for d in listing] == [doc["id"]]

    link = client.get(f"/api/portal/documents/{doc['id']}/download", headers=portal_headers).json()
    assert link["url"].startswith("http://testserver/api/storage/download?token=")
    blob = client.get(link["url"].replace("http://testserver", ""))
    assert blob.status_code == 200
    assert blob.content == b"%PDF-1.4 sample"
    assert blob.headers["content-type"] == "application/pdf"
    assert 'filename="loss-runs.pdf"' in blob.headers["content-disposition"]

    assert client.delete(f"/api/portal/documents/{doc['id']}", headers=portal_headers).status_code == 200
    assert db_session.query(Document).count() == 0
    assert client.get(link["url"].replace("http://testserver", "")).status_code == 404
    actions = _actions(db_session, project_id)
    assert "document_uploaded" in actions
    assert "document_deleted" in actions


def test_document_upload_rejects_disallowed_type(client, db_session, portal_headers, project_id):
    res = client.post(
        f"/api/portal/projects/{project_id}/documents/upload",
        files={"file": ("run.exe", b"MZ", "application/x-msdownload")},
        headers=portal_headers,
    )
    assert res.status_code == 400
    assert db_session.query(Document).count() == 0


def test_storage_download_rejects_bad_token(client):
    assert client.get("/api/storage/download", params={"token": "garbage"}).status_code == 401


def test_webhooks(client, db_session, portal_headers, project_id):
    res = client.post(
        f"/api/portal/projects/{project_id}/webhooks",
        json={"url": "https://hooks.acme-insurance.example.com/claims", "events": ["project.updated"]},
        headers=portal_headers,
    )
    assert res.status_code == 201
    created = res.json()
    assert created["secret"].startswith("whsec_")
    assert created["webhook"]["events"] == ["project.updated"]

    listing = client.get(f"/api/portal/projects/{project_id}/webhooks", headers=portal_headers).json()
    assert len(listing) == 1
    assert "secret" not in listing[0]

    deleted = client.delete(f"/api/portal/webhooks/{created['webhook']['id']}", headers=portal_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/portal/projects/{project_id}/webhooks", headers=portal_headers).json() == []
    actions = _actions(db_session, project_id)
    assert "webhook_created" in actions
    assert "webhook_deleted" in actions


def test_webhook_defaults_to_all_events(client, portal_headers, project_id):
    res = client.post(f"/api/portal/projects/{project_id}/webhooks", json={"url": "https://example.com/hook"}, headers=portal_headers)
    assert res.json()["webhook"]["events"] == ["*"]


def test_webhook_rejects_invalid_url(client, portal_headers, project_id):
    res = client.post(f"/api/portal/projects/{project_id}/webhooks", json={"url": "ftp//nope"}, headers=portal_headers)
    assert res.status_code == 400


def test_integrations(client, portal_headers, project_id):
    res = client.post(
        f"/api/portal/projects/{project_id}/integrations",
        json={"system_name": "Guidewire ClaimCenter", "system_type": "claims", "connection_method": "rest"},
        headers=portal_headers,
    )
    assert res.status_code == 201
    listing = client.get(f"/api/portal/projects/{project_id}/integrations", headers=portal_headers).json()
    assert listing[0]["system_name"] == "Guidewire ClaimCenter"


def test_api_credentials_regenerate(client, db_session, portal_headers, project_id):
    first = client.post(f"/api/portal/projects/{project_id}/api-credentials/regenerate", headers=portal_headers).json()
    assert first["api_key"].startswith("ciq_live_")
    assert len(first["api_secret"]) == 64
    credential = db_session.query(ApiCredential).one()
    assert credential.secret_hash == hash_secret(first["api_secret"])

    second = client.post(f"/api/portal/projects/{project_id}/api-credentials/regenerate", headers=portal_headers).json()
    assert second["api_key"] != first["api_key"]
    db_session.expire_all()
    credential = db_session.query(ApiCredential).one()
    assert credential.rotated_at is not None
    assert credential.secret_hash == hash_secret(second["api_secret"])


def test_profile_update(client, portal_headers):
    res = client.patch("/api/portal/profile", json={"title": "Chief Claims Officer", "phone": "555-0199"}, headers=portal_headers)
    assert res.status_code == 200
    assert res.json()["title"] == "Chief Claims Officer"
    assert res.json()["first_name"] == "Jane"


def test_team_invite(client, db_session, portal_headers, project_id, mailer):
    res = client.post(
        "/api/portal/team/invite",
        json={"email": "Adjuster@Acme-Insurance.example.com", "first_name": "Alex", "last_name": "Adjuster", "role": "technical"},
        headers=portal_headers,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["contact"]["email"] == "adjuster@acme-insurance.example.com"
    assert body["email_sent"] is True

    invite = db_session.query(Invite).one()
    assert invite.meta["type"] == "team_member"
    assert invite.meta["contact_id"] == body["contact"]["id"]
    assert mailer.to("adjuster@acme-insurance.example.com")
    assert "team_member_invited" in _actions(db_session, project_id)

    team = client.get("/api/portal/team", headers=portal_headers).json()
    assert {c["email"] for c in team} == {"jane.doe@acme-insurance.example.com", "adjuster@acme-insurance.example.com"}

    dup = client.post(
        "/api/portal/team/invite",
        json={"email": "adjuster@acme-insurance.example.com", "first_name": "Alex", "last_name": "Adjuster"},
        headers=portal_headers,
    )
    assert dup.status_code == 409
    assert db_session.query(Contact).count() == 2


def test_team_invite_cannot_add_primary(client, portal_headers):
    res = client.post(
        "/api/portal/team/invite",
        json={"email": "boss@acme-insurance.example.com", "first_name": "B", "last_name": "Oss", "role": "primary"},
        headers=portal_headers,
    )
    assert res.status_code == 400


def test_team_endpoints_are_portal_only(client, staff_headers):
    assert client.get("/api/portal/team", headers=staff_headers).status_code == 403


def test_profile_update_rejects_null_names(client, db_session, portal_headers):
    res = client.patch("/api/portal/profile", json={"first_name": None}, headers=portal_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "first_name cannot be null"
    contact = db_session.query(Contact).filter(Contact.email == "jane.doe@acme-insurance.example.com").one()
    assert contact.first_name == "Jane"

    assert client.patch("/api/portal/profile", json={"last_name": None}, headers=portal_headers).status_code == 400
    cleared = client.patch("/api/portal/profile", json={"title": None}, headers=portal_headers)
    assert cleared.status_code == 200
    assert cleared.json()["title"] is None
