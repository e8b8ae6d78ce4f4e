"""End-to-end tests for the ``/auth`` blueprint."""

from __future__ import annotations

import pytest
from gatekeeper.models import User
from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.integration.helpers import API, bearer, link_token, login


@pytest.fixture()
def register_payload():
    return {"username": "alice", "email": "alice@example.com", "password": "password123"}


class TestRegister:
    def test_register_returns_user_tokens_and_cookie(self, client, roles, register_payload):
        resp = client.post(f"{API}/auth/register", json=register_payload)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["username"] == "alice"
        assert data["user"]["is_email_confirmed"] is False
        assert data["user"]["roles"] == ["user"]
        assert "password" not in data["user"]

        cookie = resp.headers["Set-Cookie"]
        assert cookie.startswith("refresh_token=")
        for flag in ("HttpOnly", "Secure", "SameSite=Strict", "Path=/"):
            assert flag in cookie

    def test_duplicate_registration_lists_both_fields(
        self, client, roles, session, register_payload
    ):
        UserFactory(username="alice", email="alice@example.com")
        session.commit()

        resp = client.post(f"{API}/auth/register", json=register_payload)

        assert resp.status_code == 422
        assert resp.mimetype == "application/problem+json"
        body = resp.get_json()
        assert set(body["details"]["errors"]) == {"username", "email"}
        assert body["details"]["errors"]["email"][0]["code"] == "already_exists"

    @pytest.mark.parametrize(
        ("override", "field"),
        [
            ({"username": "al"}, "username"),
            ({"email": "not-an-email"}, "email"),
            ({"password": "short1"}, "password"),
            ({"password": "no-digits-here"}, "password"),
        ],
    )
    def test_invalid_payloads_are_422(self, client, roles, register_payload, override, field):
        resp = client.post(f"{API}/auth/register", json={**register_payload, **override})

        assert resp.status_code == 422
        assert field in resp.get_json()["details"]["errors"]

    def test_register_fails_whole_when_mail_is_refused(
        self, client, roles, outbox, register_payload
    ):
        outbox.fail = True

        resp = client.post(f"{API}/auth/register", json=register_payload)

        assert resp.status_code == 500
        assert "Set-Cookie" not in resp.headers
        outbox.fail = False
        assert client.post(f"{API}/auth/register", json=register_payload).status_code == 201


class TestEmailConfirmation:
    def test_link_from_registration_mail_confirms_and_unlocks_login(
        self, client, roles, outbox, register_payload
    ):
        client.post(f"{API}/auth/register", json=register_payload)
        login_body = {"username": "alice", "password": "password123"}
        blocked = client.post(f"{API}/auth/login", json=login_body)
        assert blocked.status_code == 401
        assert blocked.get_json()["message_key"] == "auth.errors.email_not_confirmed"

        token = link_token(outbox.last_to("alice@example.com").html_body)
        resp = client.get(f"{API}/auth/confirm-email", query_string={"token": token})

        assert resp.status_code == 204
        assert client.post(f"{API}/auth/login", json=login_body).status_code == 200
        again = client.get(f"{API}/auth/confirm-email", query_string={"token": token})
        assert again.status_code == 422

    def test_garbage_token_is_401(self, client):
        resp = client.get(f"{API}/auth/confirm-email", query_string={"token": "garbage"})

        assert resp.status_code == 401

    def test_missing_token_is_422(self, client):
        assert client.get(f"{API}/auth/confirm-email").status_code == 422


class TestLogin:
    @pytest.mark.parametrize(
        ("factory_kwargs", "password", "key"),
        [
            ({}, "wrong-password1", "auth.errors.invalid_credentials"),
            ({"inactive": True}, DEFAULT_PASSWORD, "auth.errors.account_inactive"),
        ],
    )
    def test_login_failures_are_401(self, client, session, factory_kwargs, password, key):
        UserFactory(username="bob", **factory_kwargs)
        session.commit()

        resp = client.post(f"{API}/auth/login", json={"username": "bob", "password": password})

        assert resp.status_code == 401
        assert resp.get_json()["message_key"] == key

    def test_unknown_user_is_indistinguishable_from_wrong_password(self, client):
        resp = client.post(
            f"{API}/auth/login", json={"username": "ghost", "password": DEFAULT_PASSWORD}
        )

        assert resp.status_code == 401
        assert resp.get_json()["message_key"] == "auth.errors.invalid_credentials"


class TestRefreshAndLogout:
    def test_refresh_with_cookie(self, client, session):
        user = UserFactory(username="bob")
        session.commit()
        login(client, "bob")

        resp = client.post(f"{API}/auth/refresh", json={"user_id": user.id})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["token_type"] == "bearer"
        assert resp.get_json()["data"]["access_token"]

    def test_refresh_with_body_token(self, client, session):
        row = RefreshTokenFactory()
        session.commit()

        resp = client.post(
            f"{API}/auth/refresh", json={"user_id": row.user_id, "refresh_token": row.token}
        )

        assert resp.status_code == 200

    def test_refresh_under_another_user_id_is_401(self, client, session):
        row = RefreshTokenFactory()
        other = UserFactory()
        session.commit()

        resp = client.post(
            f"{API}/auth/refresh", json={"user_id": other.id, "refresh_token": row.token}
        )

        assert resp.status_code == 401
        assert resp.get_json()["message_key"] == "auth.errors.invalid_refresh_token"

    def test_expired_refresh_token_is_401(self, client, session):
        row = RefreshTokenFactory(expired=True)
        session.commit()

        resp = client.post(
            f"{API}/auth/refresh", json={"user_id": row.user_id, "refresh_token": row.token}
        )

        assert resp.status_code == 401
        assert resp.get_json()["message_key"] == "auth.errors.expired_refresh_token"

    def test_refresh_without_any_token_is_401(self, client):

        resp = client.post(f"{API}/auth/refresh", json={"user_id": 1})

        assert resp.status_code == 401

    def test_logout_revokes_only_the_presented_token(self, client, session):
        user = UserFactory(username="bob")
        other_device = RefreshTokenFactory(user=user)
        session.commit()
        access = login(client, "bob")

        resp = client.post(f"{API}/auth/logout", headers=bearer(access))

        assert resp.status_code == 204
        assert "refresh_token=;" in resp.headers["Set-Cookie"]
        assert client.post(f"{API}/auth/refresh", json={"user_id": user.id}).status_code == 401
        still_valid = client.post(
            f"{API}/auth/refresh", json={"user_id": user.id, "refresh_token": other_device.token}
        )
        assert still_valid.status_code == 200

    def test_logout_all_revokes_every_token(self, client, session):
        user = UserFactory(username="bob")
        other_device = RefreshTokenFactory(user=user)
        session.commit()
        user_id, other_token = user.id, other_device.token
        access = login(client, "bob")

        resp = client.post(f"{API}/auth/logout-all", headers=bearer(access))

        assert resp.status_code == 204
        revoked = client.post(
            f"{API}/auth/refresh", json={"user_id": user_id, "refresh_token": other_token}
        )
        assert revoked.status_code == 401

    def test_logout_requires_access_token(self, client):
        resp = client.post(f"{API}/auth/logout")

        assert resp.status_code == 401
        assert resp.get_json()["message_key"] == "auth.errors.missing_token"


class TestPasswordReset:
    def test_unknown_email_still_answers_202(self, client, outbox):
        resp = client.post(f"{API}/auth/password-reset", json={"email": "ghost@example.com"})

        assert resp.status_code == 202
        assert outbox.outbox == []

    def test_full_reset_flow(self, client, session, outbox):
        UserFactory(username="bob", email="bob@example.com")
        session.commit()

        assert (
            client.post(f"{API}/auth/password-reset", json={"email": "bob@example.com"}).status_code
            == 202
        )
        token = link_token(outbox.last_to("bob@example.com").html_body)

        resp = client.post(
            f"{API}/auth/confirm-password-reset",
            json={"token": token, "new_password": "brandnew99"},
        )

        assert resp.status_code == 204
        login(client, "bob", "brandnew99")
        reused = client.post(
            f"{API}/auth/confirm-password-reset",
            json={"token": token, "new_password": "another123"},
        )
        assert reused.status_code in (401, 403)

    def test_dispatch_failure_answers_like_an_unknown_address(self, client, session, outbox):
        user = UserFactory(email="bob@example.com")
        session.commit()
        user_id = user.id
        outbox.fail = True

        known = client.post(f"{API}/auth/password-reset", json={"email": "bob@example.com"})
        unknown = client.post(f"{API}/auth/password-reset", json={"email": "ghost@example.com"})

        assert known.status_code == unknown.status_code == 202
        assert known.get_data() == unknown.get_data()
        assert session.get(User, user_id).password_reset_token is None
