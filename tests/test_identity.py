"""
Unit Tests for the Identity Provider

Test coverage for:
- Signup and duplicate email rejection
- Password hashing at rest
- Login success and failure
- Token resolution, expiry and logout
"""

import pytest

from tracker.errors import InvalidCredentialsError, UnauthorizedError, UserAlreadyExistsError
from tracker.models import AuthenticatedIdentity

from .conftest import TEST_PASSWORD


@pytest.fixture
def registered(identity_provider):
    return identity_provider.signup("Alice", "alice@example.com", TEST_PASSWORD)


class TestSignup:

    def test_signup_creates_user(self, registered):
        assert registered.name == "Alice"
        assert registered.email == "alice@example.com"
        assert registered.id

    def test_password_not_stored_in_clear(self, document_store, registered):
        stored = document_store.collection("users").find_one({"id": registered.id})
        assert stored["password_hash"] != TEST_PASSWORD
        assert TEST_PASSWORD not in stored.values()

    def test_duplicate_email_rejected(self, identity_provider, registered):
        with pytest.raises(UserAlreadyExistsError):
            identity_provider.signup("Alice Again", "ALICE@example.com ", "another-pass")

    def test_email_normalized(self, identity_provider):
        user = identity_provider.signup("Bob", "  Bob@Example.COM", TEST_PASSWORD)
        assert user.email == "bob@example.com"


class TestLogin:

    def test_login_returns_token(self, identity_provider, registered):
        token, user = identity_provider.login("alice@example.com", TEST_PASSWORD)

        assert token
        assert user.id == registered.id

    def test_login_case_insensitive_email(self, identity_provider, registered):
        _, user = identity_provider.login("Alice@Example.com", TEST_PASSWORD)
        assert user.id == registered.id

    def test_wrong_password(self, identity_provider, registered):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            identity_provider.login("alice@example.com", "wrong-password")
        assert exc_info.value.status_code == 401

    def test_unknown_email(self, identity_provider):
        with pytest.raises(InvalidCredentialsError):
            identity_provider.login("nobody@example.com", TEST_PASSWORD)

    def test_tokens_are_distinct(self, identity_provider, registered):
        first, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        second, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        assert first != second

    def test_login_sweeps_expired_sessions(self, identity_provider, registered, clock):
        stale, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        clock.advance(minutes=30)
        live, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        clock.advance(minutes=45)

        fresh, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)

        assert set(identity_provider._sessions) == {live, fresh}
        assert stale not in identity_provider._sessions


class TestResolve:

    def test_resolve_token(self, identity_provider, registered):
        token, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)

        identity = identity_provider.resolve(token)

        assert identity == AuthenticatedIdentity(user_id=registered.id, email="alice@example.com")

    @pytest.mark.parametrize("token", [None, "", "not-a-token"])
    def test_invalid_tokens(self, identity_provider, token):
        with pytest.raises(UnauthorizedError):
            identity_provider.resolve(token)

    def test_expired_token(self, identity_provider, registered, clock):
        token, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        clock.advance(hours=1, seconds=1)

        with pytest.raises(UnauthorizedError) as exc_info:
            identity_provider.resolve(token)
        assert exc_info.value.message == "Token expired"

        # Expired sessions are dropped
        with pytest.raises(UnauthorizedError) as exc_info:
            identity_provider.resolve(token)
        assert exc_info.value.message == "Invalid token"

    def test_token_valid_until_expiry(self, identity_provider, registered, clock):
        token, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)
        clock.advance(minutes=59)

        assert identity_provider.resolve(token).user_id == registered.id

    def test_logout(self, identity_provider, registered):
        token, _ = identity_provider.login("alice@example.com", TEST_PASSWORD)

        identity_provider.logout(token)
        identity_provider.logout(token)

        with pytest.raises(UnauthorizedError):
            identity_provider.resolve(token)
