"""Request helpers shared by the API tests."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from tests.factories.user import DEFAULT_PASSWORD

API = "/api/v1"


def login(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
    """Log in through the API and return the access token."""
    resp = client.post(f"{API}/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]["access_token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def link_token(html_body: str) -> str:
    """Extract the ``token`` query parameter from the first link in an email."""
    start = html_body.index('href="') + len('href="')
    href = html_body[start : html_body.index('"', start)].replace("&amp;", "&")
    return parse_qs(urlparse(href).query)["token"][0]
