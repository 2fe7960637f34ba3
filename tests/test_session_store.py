"""Tests for the signed cookie session store."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from fastapi import Request, Response
from jose import jwt

from app.config import Settings
from app.core.session import SESSION_ALGORITHM, CookieSessionStore
from app.schemas.session import AuthErrorPayload, SessionData
from app.schemas.users import UserInDB


def make_request(cookie: str | None = None, name: str = "__session") -> Request:
    headers = [(b"cookie", f"{name}={cookie}".encode())] if cookie else []
    return Request(
        {"type": "http", "method": "GET", "path": "/", "headers": headers, "query_string": b""}
    )


def make_user() -> UserInDB:
    now = datetime.now(UTC)
    return UserInDB(
        id=uuid4(),
        user_id="user_abc",
        email="a@x.com",
        name="Ada",
        avatar_url=None,
        created_at=now,
        updated_at=now,
    )


def test_missing_cookie_loads_empty_session(session_store):
    """Test first request from a device."""
    assert session_store.load(make_request()) == SessionData()


def test_committed_session_loads_back(session_store):
    """Test user, strategy and state survive the cookie."""
    state = uuid4()
    session = SessionData(user=make_user(), strategy="google", oauth_state=state)

    loaded = session_store.load(make_request(session_store.commit(session)))

    assert loaded == session
    assert loaded.oauth_state == state


def test_payload_uses_authenticator_key_names(session_store):
    """Test wire keys for state and error."""
    state = uuid4()
    session = SessionData(oauth_state=state, auth_error=AuthErrorPayload(message="nope"))

    claims = jwt.decode(
        session_store.commit(session), "test-session-secret", algorithms=[SESSION_ALGORITHM]
    )

    assert claims["data"] == {"oauth2:state": str(state), "auth:error": {"message": "nope"}}


def test_tampered_cookie_loads_empty_session(session_store):
    """Test a modified signature is rejected."""
    token = session_store.commit(SessionData(strategy="google"))
    tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")

    assert session_store.load(make_request(tampered)) == SessionData()


def test_garbage_cookie_loads_empty_session(session_store):
    """Test a cookie that is not a token at all."""
    assert session_store.load(make_request("not-a-token")) == SessionData()


def test_cookie_signed_with_unknown_secret_is_rejected(session_store):
    """Test a forged cookie."""
    forged = CookieSessionStore(secrets=["attacker-secret"]).commit(SessionData(strategy="google"))

    assert session_store.load(make_request(forged)) == SessionData()


def test_rotated_secret_still_verifies():
    """Test cookies signed with an older secret remain valid."""
    old = CookieSessionStore(secrets=["old-secret"])
    rotated = CookieSessionStore(secrets=["new-secret", "old-secret"])
    session = SessionData(strategy="google")

    assert rotated.load(make_request(old.commit(session))) == session
    # New cookies are signed with the newest secret
    assert old.load(make_request(rotated.commit(session))) == SessionData()


def test_unknown_keys_are_rejected(session_store):
    """Test a validly signed payload with an unexpected shape."""
    token = jwt.encode(
        {"data": {"strategy": "google", "is_admin": True}},
        "test-session-secret",
        algorithm=SESSION_ALGORITHM,
    )

    assert session_store.load(make_request(token)) == SessionData()


def test_invalid_state_token_is_rejected(session_store):
    """Test the state must be a UUID."""
    token = jwt.encode(
        {"data": {"oauth2:state": "not-a-uuid"}},
        "test-session-secret",
        algorithm=SESSION_ALGORITHM,
    )

    assert session_store.load(make_request(token)) == SessionData()


def test_expired_cookie_loads_empty_session():
    """Test a cookie past its max age."""
    store = CookieSessionStore(secrets=["s"], max_age=-60)
    token = store.commit(SessionData(strategy="google"))

    assert store.load(make_request(token)) == SessionData()


def test_apply_sets_cookie_attributes(session_store):
    """Test cookie transport attributes."""
    response = Response()

    session_store.apply(response, SessionData(strategy="google"))

    header = response.headers["set-cookie"]
    assert header.startswith("__session=")
    assert "HttpOnly" in header
    assert "Path=/" in header
    assert "SameSite=lax" in header
    assert "Secure" not in header


def test_destroy_expires_cookie(session_store):
    """Test logout clears the cookie."""
    response = Response()

    session_store.destroy(response)

    header = response.headers["set-cookie"]
    assert header.startswith("__session=")
    assert "Max-Age=0" in header


def test_secure_flag_only_in_production():
    """Test the secure flag follows the deployment environment."""
    base = {
        "DATABASE_URL": "postgresql://x/y",
        "GOOGLE_CLIENT_ID": "id",
        "GOOGLE_CLIENT_SECRET": "secret",
        "GOOGLE_CALLBACK_URL": "http://test/callback",
        "NEON_API_KEY": "key",
        "SESSION_SECRET": "one, two",
    }

    production = CookieSessionStore.from_settings(Settings(**base, ENVIRONMENT="production"))
    development = CookieSessionStore.from_settings(Settings(**base, ENVIRONMENT="development"))

    assert production.secure is True
    assert development.secure is False
    assert production.secrets == ["one", "two"]
    assert production.cookie_name == "__session"


def test_requires_a_secret():
    """Test construction without secrets."""
    with pytest.raises(ValueError):
        CookieSessionStore(secrets=[])
