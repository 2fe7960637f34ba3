"""Tests for the strategy-based authenticator."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from app.core.exceptions import IdentityError, ProviderError, ProvisioningError
from app.schemas.session import AuthErrorPayload, SessionData
from app.schemas.users import Identity, UserInDB
from app.services.authenticator import Authenticator
from tests.fakes import FakeStrategy


def make_user(email: str = "a@x.com") -> UserInDB:
    now = datetime.now(UTC)
    return UserInDB(
        id=uuid4(),
        user_id="user_abc",
        email=email,
        name=None,
        avatar_url=None,
        created_at=now,
        updated_at=now,
    )


class Resolver:
    """Records identities it was asked to resolve."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.identities: list[Identity] = []

    async def __call__(self, identity: Identity) -> UserInDB:
        self.identities.append(identity)
        if self.error:
            raise self.error
        return make_user(identity.email)


def pending_session(authenticator: Authenticator) -> tuple[str, SessionData]:
    url, session = authenticator.challenge("fake", SessionData())
    return str(session.oauth_state), session


def test_registry_is_read_only():
    """Test strategies cannot be swapped after construction."""
    authenticator = Authenticator([FakeStrategy()])

    assert list(authenticator.strategies) == ["fake"]
    with pytest.raises(TypeError):
        authenticator.strategies["other"] = FakeStrategy()  # type: ignore[index]


def test_duplicate_strategy_names_rejected():
    """Test two strategies with one name."""
    with pytest.raises(ValueError):
        Authenticator([FakeStrategy(), FakeStrategy()])


def test_fail_fast_is_the_default():
    """Test errors are raised unless configured otherwise."""
    assert Authenticator([]).throw_on_error is True


def test_challenge_stores_state_and_returns_provider_url():
    """Test the challenge phase."""
    authenticator = Authenticator([FakeStrategy()])
    previous = SessionData(auth_error=AuthErrorPayload(message="old failure"))

    url, session = authenticator.challenge("fake", previous)

    assert session.oauth_state is not None
    assert session.strategy == "fake"
    assert session.auth_error is None
    assert url == f"https://idp.example.com/authorize?state={session.oauth_state}"


def test_challenge_unknown_strategy():
    """Test an unregistered strategy name."""
    with pytest.raises(IdentityError):
        Authenticator([FakeStrategy()]).challenge("github", SessionData())


def test_is_authenticated():
    """Test reading the user from the session."""
    authenticator = Authenticator([FakeStrategy()])
    user = make_user()

    assert authenticator.is_authenticated(SessionData()) is None
    assert authenticator.is_authenticated(SessionData(user=user)) == user


def test_logout_returns_empty_session():
    """Test sign out."""
    authenticator = Authenticator([FakeStrategy()])

    assert authenticator.logout(SessionData(user=make_user(), strategy="fake")) == SessionData()


@pytest.mark.asyncio
class TestAuthenticate:
    """Tests for the callback phase."""

    async def test_success_resolves_identity_into_session(self):
        """Test a valid callback."""
        authenticator = Authenticator([FakeStrategy()])
        state, session = pending_session(authenticator)
        resolve = Resolver()

        result = await authenticator.authenticate(
            "fake", {"code": "good-code", "state": state}, session, resolve
        )

        assert result.user is not None
        assert result.user.email == "a@x.com"
        assert [identity.email for identity in resolve.identities] == ["a@x.com"]
        assert result.session.user == result.user
        assert result.session.strategy == "fake"
        assert result.session.oauth_state is None
        assert result.session.auth_error is None

    async def test_state_mismatch_fails_before_resolution(self):
        """Test a forged or replayed callback."""
        authenticator = Authenticator([FakeStrategy()])
        _, session = pending_session(authenticator)
        resolve = Resolver()

        with pytest.raises(IdentityError):
            await authenticator.authenticate(
                "fake", {"code": "good-code", "state": str(uuid4())}, session, resolve
            )

        assert resolve.identities == []

    async def test_missing_pending_state_fails(self):
        """Test a callback without a preceding challenge."""
        authenticator = Authenticator([FakeStrategy()])

        with pytest.raises(IdentityError):
            await authenticator.authenticate(
                "fake", {"code": "good-code", "state": str(uuid4())}, SessionData(), Resolver()
            )

    async def test_provider_error_parameter_fails(self):
        """Test the user denying consent."""
        authenticator = Authenticator([FakeStrategy()])
        state, session = pending_session(authenticator)

        with pytest.raises(IdentityError) as exc_info:
            await authenticator.authenticate(
                "fake", {"error": "access_denied", "state": state}, session, Resolver()
            )

        assert "access_denied" in exc_info.value.message

    async def test_unverifiable_identity_fails(self):
        """Test a failed code exchange."""
        authenticator = Authenticator([FakeStrategy()])
        state, session = pending_session(authenticator)

        with pytest.raises(IdentityError):
            await authenticator.authenticate(
                "fake", {"code": "bad-code", "state": state}, session, Resolver()
            )

    async def test_resolution_failure_is_raised(self):
        """Test provisioning errors reach the caller in fail-fast mode."""
        authenticator = Authenticator([FakeStrategy()])
        state, session = pending_session(authenticator)
        error = ProvisioningError("a@x.com", ProviderError("HTTP 500"))

        with pytest.raises(ProvisioningError) as exc_info:
            await authenticator.authenticate(
                "fake", {"code": "good-code", "state": state}, session, Resolver(error)
            )

        assert exc_info.value is error

    async def test_resolution_failure_embedded_in_session_when_not_fail_fast(self):
        """Test the session-embedded error mode."""
        authenticator = Authenticator([FakeStrategy()], throw_on_error=False)
        state, session = pending_session(authenticator)
        error = ProvisioningError("a@x.com", ProviderError("HTTP 500"))

        result = await authenticator.authenticate(
            "fake", {"code": "good-code", "state": state}, session, Resolver(error)
        )

        assert result.user is None
        assert result.session.user is None
        assert result.session.oauth_state is None
        assert result.session.auth_error == AuthErrorPayload(message="resource creation failed")
