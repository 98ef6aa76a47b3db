"""Magic-link codes, access tokens and refresh rotation."""
from datetime import timedelta

import jwt

from intake_portal.config import get_settings
from intake_portal.database import utcnow
from intake_portal.models.auth import AuthSession, LoginCode
from intake_portal.services.token_issuer import get_or_create_auth_user, get_token_issuer


def test_send_code_stores_only_a_hash(db_session):
    code = get_token_issuer().send_code(db_session, "User@Example.com")
    db_session.commit()
    row = db_session.query(LoginCode).one()
    assert row.code_hash != code
    assert len(row.code_hash) == 64


def test_code_can_be_exchanged_once(db_session):
    issuer = get_token_issuer()
    code = issuer.send_code(db_session, "user@example.com")
    session = issuer.verify_code(db_session, "USER@example.com", code)
    assert session is not None
    assert session.email == "user@example.com"
    assert issuer.verify_code(db_session, "user@example.com", code) is None


def test_new_code_invalidates_previous_one(db_session):
    issuer = get_token_issuer()
    first = issuer.send_code(db_session, "user@example.com")
    second = issuer.send_code(db_session, "user@example.com")
    if first != second:
        assert issuer.verify_code(db_session, "user@example.com", first) is None
    assert issuer.verify_code(db_session, "user@example.com", second) is not None


def test_expired_code_is_rejected(db_session):
    issuer = get_token_issuer()
    code = issuer.send_code(db_session, "user@example.com")
    row = db_session.query(LoginCode).one()
    row.expires_at = utcnow() - timedelta(minutes=1)
    db_session.flush()
    assert issuer.verify_code(db_session, "user@example.com", code) is None


def test_verify_code_for_unknown_email(db_session):
    assert get_token_issuer().verify_code(db_session, "nobody@example.com", "123456") is None


def test_access_token_claims_and_verify(db_session):
    issuer = get_token_issuer()
    user = get_or_create_auth_user(db_session, "user@example.com")
    session = issuer.issue(db_session, user)
    settings = get_settings()
    claims = jwt.decode(session.access_token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    assert claims["sub"] == user.id
    assert claims["email"] == "user@example.com"
    assert claims["type"] == "access"
    assert session.expires_in == settings.access_token_expire_minutes * 60

    identity = issuer.verify(db_session, session.access_token)
    assert identity.auth_user_id == user.id
    assert identity.session_id == claims["sid"]


def test_verify_rejects_garbage_and_foreign_signatures(db_session):
    issuer = get_token_issuer()
    assert issuer.verify(db_session, "not-a-jwt") is None
    forged = jwt.encode({"sub": "x", "sid": "y", "type": "access"}, "other-secret", algorithm="HS256")
    assert issuer.verify(db_session, forged) is None


def test_refresh_rotates_and_revokes_old_session(db_session):
    issuer = get_token_issuer()
    user = get_or_create_auth_user(db_session, "user@example.com")
    first = issuer.issue(db_session, user)
    second = issuer.refresh(db_session, first.refresh_token)
    assert second is not None
    assert second.refresh_token != first.refresh_token
    # the old refresh token and access token stop working
    assert issuer.refresh(db_session, first.refresh_token) is None
    assert issuer.verify(db_session, first.access_token) is None
    assert issuer.verify(db_session, second.access_token) is not None


def test_refresh_token_stored_as_hash(db_session):
    issuer = get_token_issuer()
    user = get_or_create_auth_user(db_session, "user@example.com")
    session = issuer.issue(db_session, user)
    row = db_session.query(AuthSession).one()
    assert row.refresh_token_hash != session.refresh_token


def test_revoke_ends_session(db_session):
    issuer = get_token_issuer()
    user = get_or_create_auth_user(db_session, "user@example.com")
    session = issuer.issue(db_session, user)
    assert issuer.revoke(db_session, session.access_token) is True
    assert issuer.verify(db_session, session.access_token) is None
    assert issuer.revoke(db_session, session.access_token) is False
