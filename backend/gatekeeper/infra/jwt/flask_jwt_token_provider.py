"""Access tokens signed through Flask-JWT-Extended."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from flask_jwt_extended import create_access_token, decode_token

# Claims owned by Flask-JWT-Extended; callers may not override them.
RESERVED_CLAIMS = frozenset({"sub", "iat", "exp", "nbf", "jti", "type", "fresh"})


def _checked_claims(extra: dict[str, Any] | None) -> dict[str, Any]:
    claims = dict(extra or {})
    clashing = sorted(RESERVED_CLAIMS & claims.keys())
    if clashing:
        raise ValueError(f"Reserved claims cannot be overridden: {clashing}")
    return claims


class JWTTokenProvider:
    """
    :class:`~gatekeeper.services._shared.ports.TokenProvider` backed by the
    app's ``JWTManager``.

    Signing uses ``JWT_SECRET_KEY`` and ``JWT_ALGORITHM`` from the active app,
    so every call needs an application context. ``sub`` is sent as a string
    since PyJWT refuses other types.
    """

    def create_access_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        # expires_delta=None means JWT_ACCESS_TOKEN_EXPIRES
        return create_access_token(
            identity=str(identity),
            additional_claims=_checked_claims(additional_claims),
            expires_delta=expires_delta,
        )

    def decode(self, token: str) -> dict[str, Any]:
        return dict(decode_token(token))
