"""Unit tests for AuthService: transactional registration and login."""

from __future__ import annotations

from datetime import timedelta

import pytest
from gatekeeper.models import RefreshToken, User, UserRole
from gatekeeper.models.base import utcnow
from gatekeeper.repositories import UserRepository
from gatekeeper.services._shared.errors import (
    AuthenticationError,
    EmailDispatchError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from gatekeeper.services.auth.claims import AccessTokenClaims
from gatekeeper.services.auth.dto import LoginIn, RegisterIn
from gatekeeper.services.confirmation.dto import TokenKind
from sqlalchemy import func, select
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


@pytest.fixture()
def auth(services):
    return services.auth


@pytest.fixture()
def repo(session) -> UserRepository:
    return UserRepository(session=session)


def _alice() -> RegisterIn:
    return RegisterIn(username="alice", email="alice@example.com", password="password123")


# --------------------------------------------------------------------------- #
# Registration
# --------------------------------------------------------------------------- #


def test_register_creates_unconfirmed_user_with_default_role(auth, services, repo, roles, outbox):
    result = auth.register(_alice())

    user = repo.get_by_username("alice")
    assert user is not None
    assert user.is_email_confirmed is False
    assert user.is_active is True
    assert user.verify_password("password123")
    assert result.user.id == user.id
    assert result.user.roles == ["user"]
    assert [r.name for r in services.user_roles.get_user_roles(user.id)] == ["user"]

    claims = AccessTokenClaims.from_jwt(services.token_provider.decode(result.access_token))
    assert claims.sub == user.id
    assert claims.roles == ("user",)
    assert claims.username == "alice"


def test_register_persists_refresh_token_for_full_ttl(auth, services, session, roles):
    before = utcnow()
    result = auth.register(_alice())

    stored = session.scalars(
        select(RefreshToken).where(RefreshToken.token == result.refresh_token)
    ).one()
    assert stored.user_id == result.user.id
    expected = before + services.refresh_tokens.ttl
    assert abs(stored.expires_at - expected) < timedelta(seconds=5)


def test_register_stores_and_mails_confirmation_token(auth, services, repo, roles, outbox):
    auth.register(_alice())

    user = repo.get_by_username("alice")
    assert user.email_confirmation_token
    message = outbox.last_to("alice@example.com")
    assert message is not None
    assert message.subject == "Confirm Your Email"
    assert "/api/v1/auth/confirm-email?token=" in message.html_body
    claims = services.confirmation_tokens.validate_stored_token(
        user.email_confirmation_token,
        user.email_confirmation_token,
        user.email_confirmation_token_expiry,
        TokenKind.EMAIL_CONFIRMATION,
    )
    assert claims.sub == user.id


def test_register_rolls_back_everything_when_email_dispatch_fails(
    auth, session, repo, roles, outbox
):
    outbox.fail = True

    with pytest.raises(EmailDispatchError):
        auth.register(_alice())

    assert repo.get_by_username("alice") is None
    assert session.scalar(select(func.count()).select_from(UserRole)) == 0
    assert session.scalar(select(func.count()).select_from(RefreshToken)) == 0
    assert outbox.outbox == []


def test_register_without_role_catalog_is_an_internal_error(auth, repo):
    with pytest.raises(InternalError) as exc:
        auth.register(_alice())

    assert exc.value.key == "roles.errors.default_role_missing"
    assert repo.get_by_username("alice") is None


def test_register_reports_every_taken_field(auth, roles):
    UserFactory(username="alice", email="alice@example.com")

    with pytest.raises(ValidationError) as exc:
        auth.register(_alice())

    assert set(exc.value.fields) == {"username", "email"}
    assert exc.value.errors["username"][0].code == "already_exists"


def test_register_reports_only_the_taken_username(auth, roles):
    UserFactory(username="alice", email="someone@example.com")

    with pytest.raises(ValidationError) as exc:
        auth.register(_alice())

    assert exc.value.fields == ["username"]


def test_register_email_check_ignores_case(auth, roles):
    UserFactory(username="other", email="alice@example.com")

    with pytest.raises(ValidationError) as exc:
        auth.register(
            RegisterIn(username="alice", email="ALICE@Example.com", password="password123")
        )

    assert exc.value.fields == ["email"]


def test_register_losing_a_uniqueness_race_surfaces_validation_error(
    auth, session, roles, monkeypatch
):
    """The pre-check passes, the unique constraint then decides."""
    UserFactory(username="alice", email="first@example.com")
    session.commit()
    monkeypatch.setattr(UserRepository, "exists_by_username", lambda self, username: False)

    with pytest.raises(ValidationError) as exc:
        auth.register(_alice())

    assert exc.value.fields == ["username"]
    count = session.scalar(select(func.count()).select_from(User).where(User.username == "alice"))
    assert count == 1


# --------------------------------------------------------------------------- #
# Login
# --------------------------------------------------------------------------- #


def test_login_returns_tokens_and_roles(auth, services, session, roles):
    user = UserFactory(username="bob")
    session.add(UserRole(user_id=user.id, role_id=roles["admin"].id))
    session.commit()

    result = auth.login(LoginIn(username="bob", password=DEFAULT_PASSWORD))

    assert result.user.id == user.id
    assert result.user.roles == ["admin"]
    claims = AccessTokenClaims.from_jwt(services.token_provider.decode(result.access_token))
    assert claims.has_role("admin")
    stored = session.scalars(
        select(RefreshToken).where(RefreshToken.token == result.refresh_token)
    ).one()
    assert stored.user_id == user.id


def test_login_keeps_existing_sessions(auth, session, roles):
    UserFactory(username="bob")

    first = auth.login(LoginIn(username="bob", password=DEFAULT_PASSWORD))
    second = auth.login(LoginIn(username="bob", password=DEFAULT_PASSWORD))

    assert first.refresh_token != second.refresh_token
    tokens = set(session.scalars(select(RefreshToken.token)))
    assert {first.refresh_token, second.refresh_token} <= tokens


@pytest.mark.parametrize(
    ("factory_kwargs", "username", "password", "key"),
    [
        ({}, "ghost", DEFAULT_PASSWORD, "auth.errors.invalid_credentials"),
        ({}, "bob", "wrong-password1", "auth.errors.invalid_credentials"),
        ({"unconfirmed": True}, "bob", DEFAULT_PASSWORD, "auth.errors.email_not_confirmed"),
        ({"inactive": True}, "bob", DEFAULT_PASSWORD, "auth.errors.account_inactive"),
    ],
    ids=["unknown-user", "wrong-password", "unconfirmed", "inactive"],
)
def test_login_rejections(auth, roles, factory_kwargs, username, password, key):
    UserFactory(username="bob", **factory_kwargs)

    with pytest.raises(AuthenticationError) as exc:
        auth.login(LoginIn(username=username, password=password))

    assert exc.value.key == key


def test_login_with_wrong_password_hides_account_state(auth, roles):
    UserFactory(username="bob", unconfirmed=True, inactive=True)

    with pytest.raises(AuthenticationError) as exc:
        auth.login(LoginIn(username="bob", password="wrong-password1"))

    assert exc.value.key == "auth.errors.invalid_credentials"


# --------------------------------------------------------------------------- #
# Access tokens
# --------------------------------------------------------------------------- #


def test_generate_token_reflects_current_roles(auth, services, session, roles):
    user = UserFactory()
    session.add(UserRole(user_id=user.id, role_id=roles["user"].id))
    session.commit()

    before = AccessTokenClaims.from_jwt(
        services.token_provider.decode(auth.generate_token(user.id))
    )
    session.add(UserRole(user_id=user.id, role_id=roles["manager"].id))
    session.commit()
    after = AccessTokenClaims.from_jwt(services.token_provider.decode(auth.generate_token(user.id)))

    assert before.roles == ("user",)
    assert after.roles == ("manager", "user")
    assert after.exp - after.iat == timedelta(seconds=3600)


def test_generate_token_for_unknown_user(auth):
    with pytest.raises(NotFoundError):
        auth.generate_token(987654)
