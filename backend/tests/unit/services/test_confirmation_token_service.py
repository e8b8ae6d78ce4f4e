"""Unit tests for ConfirmationTokenService (pure, no storage)."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from freezegun import freeze_time
from gatekeeper.models.base import utcnow
from gatekeeper.services._shared.errors import AuthenticationError, AuthorizationError
from gatekeeper.services.confirmation.dto import TokenKind
from gatekeeper.services.confirmation.service import ConfirmationTokenService

SECRET = "unit-test-confirmation-secret-0123456789abcdef"


@pytest.fixture()
def service() -> ConfirmationTokenService:
    return ConfirmationTokenService(secret=SECRET, ttl_seconds=3600)


def test_email_confirmation_token_round_trips_claims(service):
    token = service.generate_email_confirmation_token(7, "alice@example.com")

    claims = service.validate_token(token)

    assert claims.sub == 7
    assert claims.email == "alice@example.com"
    assert claims.token_type is TokenKind.EMAIL_CONFIRMATION
    assert claims.new_email is None
    assert claims.exp - claims.iat == timedelta(hours=1)


def test_email_change_token_carries_new_email(service):
    token = service.generate_email_change_token(7, "old@example.com", "new@example.com")

    claims = service.validate_token(token)

    assert claims.token_type is TokenKind.EMAIL_CHANGE
    assert claims.email == "old@example.com"
    assert claims.new_email == "new@example.com"


def test_tokens_minted_in_the_same_instant_differ(service):
    with freeze_time("2026-01-01 12:00:00"):
        first = service.generate_password_reset_token(1, "a@example.com")
        second = service.generate_password_reset_token(1, "a@example.com")

        assert first != second
        assert service.validate_token(first).jti != service.validate_token(second).jti


def test_validate_token_rejects_foreign_signature(service):
    other = ConfirmationTokenService(secret="another-secret-0123456789abcdef-xyz")
    token = other.generate_email_confirmation_token(1, "a@example.com")

    with pytest.raises(AuthenticationError) as exc:
        service.validate_token(token)
    assert exc.value.key == "auth.errors.invalid_token"


def test_validate_token_rejects_expired_signature(service):
    with freeze_time("2026-01-01 00:00:00"):
        token = service.generate_email_confirmation_token(1, "a@example.com")

    with freeze_time("2026-01-01 01:00:01"), pytest.raises(AuthenticationError):
        service.validate_token(token)


def test_validate_token_rejects_garbage_and_missing_claims(service):
    with pytest.raises(AuthenticationError):
        service.validate_token("not-a-token")

    partial = jwt.encode({"sub": "1", "email": "a@example.com"}, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        service.validate_token(partial)


def test_validate_token_rejects_unknown_kind(service):
    now = utcnow()
    forged = jwt.encode(
        {
            "sub": "1",
            "email": "a@example.com",
            "token_type": "magic_link",
            "iat": now,
            "exp": now + timedelta(minutes=5),
            "jti": "x",
        },
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(AuthenticationError):
        service.validate_token(forged)


# ---------------------------------------------------------------------------
# validate_stored_token
# ---------------------------------------------------------------------------


def test_validate_stored_token_accepts_the_stored_value(service):
    token = service.generate_password_reset_token(3, "c@example.com")

    claims = service.validate_stored_token(
        token, token, utcnow() + timedelta(minutes=5), TokenKind.PASSWORD_RESET
    )

    assert claims.sub == 3


def test_validate_stored_token_rejects_wrong_kind(service):
    token = service.generate_email_confirmation_token(3, "c@example.com")

    with pytest.raises(AuthorizationError) as exc:
        service.validate_stored_token(token, token, None, TokenKind.PASSWORD_RESET)
    assert exc.value.key == "auth.errors.invalid_token_type"


def test_validate_stored_token_rejects_superseded_token(service):
    old = service.generate_password_reset_token(3, "c@example.com")
    newer = service.generate_password_reset_token(3, "c@example.com")

    with pytest.raises(AuthorizationError) as exc:
        service.validate_stored_token(old, newer, None, TokenKind.PASSWORD_RESET)
    assert exc.value.key == "auth.errors.invalid_token"


def test_validate_stored_token_rejects_cleared_slot(service):
    token = service.generate_password_reset_token(3, "c@example.com")

    with pytest.raises(AuthorizationError):
        service.validate_stored_token(token, None, None, TokenKind.PASSWORD_RESET)


def test_validate_stored_token_honours_stored_expiry(service):
    token = service.generate_password_reset_token(3, "c@example.com")

    with pytest.raises(AuthorizationError) as exc:
        service.validate_stored_token(
            token, token, utcnow() - timedelta(seconds=1), TokenKind.PASSWORD_RESET
        )
    assert exc.value.key == "auth.errors.expired_token"


def test_missing_secret_is_rejected():
    with pytest.raises(ValueError):
        ConfirmationTokenService(secret="")
