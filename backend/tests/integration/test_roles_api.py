"""End-to-end tests for the ``/roles`` catalog blueprint."""

from __future__ import annotations

import pytest
from gatekeeper.models import UserRole
from tests.factories.user import UserFactory
from tests.integration.helpers import API, bearer, login


@pytest.fixture()
def admin_token(client, session, roles):
    admin = UserFactory(username="root")
    session.add(UserRole(user_id=admin.id, role_id=roles["admin"].id))
    session.commit()
    return login(client, "root")


def test_member_cannot_read_the_catalog(client, session, roles):
    member = UserFactory(username="member")
    session.add(UserRole(user_id=member.id, role_id=roles["user"].id))
    session.commit()

    resp = client.get(f"{API}/roles", headers=bearer(login(client, "member")))

    assert resp.status_code == 403


def test_list_seeded_roles(client, admin_token):
    resp = client.get(f"{API}/roles", headers=bearer(admin_token))

    assert resp.status_code == 200
    assert {r["name"] for r in resp.get_json()["data"]} == {"admin", "manager", "user"}


def test_role_lifecycle(client, admin_token):
    created = client.post(f"{API}/roles", headers=bearer(admin_token), json={"name": "Auditor"})
    assert created.status_code == 201
    role = created.get_json()["data"]
    assert (role["name"], role["description"]) == ("auditor", None)
    url = f"{API}/roles/{role['id']}"

    updated = client.put(url, headers=bearer(admin_token), json={"description": "Reads logs"})
    assert updated.get_json()["data"]["description"] == "Reads logs"
    assert client.get(url, headers=bearer(admin_token)).get_json()["data"]["name"] == "auditor"

    assert client.delete(url, headers=bearer(admin_token)).status_code == 204
    missing = client.get(url, headers=bearer(admin_token))
    assert missing.status_code == 404
    assert missing.get_json()["message_key"] == "role.errors.not_found"


def test_duplicate_name_is_422(client, admin_token):
    resp = client.post(f"{API}/roles", headers=bearer(admin_token), json={"name": "ADMIN"})

    assert resp.status_code == 422
    assert resp.get_json()["details"]["errors"]["name"][0]["code"] == "already_exists"


def test_blank_name_is_422(client, admin_token):
    resp = client.post(f"{API}/roles", headers=bearer(admin_token), json={"name": ""})

    assert resp.status_code == 422
