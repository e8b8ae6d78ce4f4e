"""Signed, single-use confirmation tokens (email confirmation, email change, reset).

Tokens are HS256 JWTs signed with ``CONFIRMATION_TOKEN_SECRET``, a key distinct
from the access-token key so one kind can never be replayed as the other. The
service owns no state: callers persist the returned string into the matching
user column and hand it back to :meth:`validate_stored_token` later.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import uuid4

import jwt

from gatekeeper.services._shared.base import BaseService
from gatekeeper.services._shared.errors import AuthenticationError, AuthorizationError
from gatekeeper.services.confirmation.dto import ConfirmationClaims, TokenKind

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "email", "token_type", "iat", "exp", "jti"]


class ConfirmationTokenService(BaseService):
    """
    Issue and validate confirmation tokens.

    :param secret: HMAC signing key.
    :param ttl_seconds: Token lifetime; also used for the stored expiry column.
    """

    def __init__(self, *, secret: str, ttl_seconds: int = 86_400) -> None:
        if not secret:
            raise ValueError("Confirmation token secret must be configured.")
        self._secret = secret
        self.ttl = timedelta(seconds=int(ttl_seconds))

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def expiry(self, now: datetime) -> datetime:
        """Absolute expiry for a token issued at ``now``."""
        return now + self.ttl

    def _issue(
        self,
        *,
        kind: TokenKind,
        user_id: int,
        email: str,
        new_email: str | None = None,
        now: datetime | None = None,
    ) -> str:
        issued_at = now or self.now()
        claims = ConfirmationClaims(
            sub=user_id,
            email=email,
            token_type=kind,
            new_email=new_email,
            iat=issued_at,
            exp=self.expiry(issued_at),
            jti=str(uuid4()),
        )
        return jwt.encode(claims.to_payload(), self._secret, algorithm=ALGORITHM)

    def generate_email_confirmation_token(
        self, user_id: int, email: str, *, now: datetime | None = None
    ) -> str:
        return self._issue(
            kind=TokenKind.EMAIL_CONFIRMATION, user_id=user_id, email=email, now=now
        )

    def generate_email_change_token(
        self, user_id: int, current_email: str, new_email: str, *, now: datetime | None = None
    ) -> str:
        """Token for an email change; ``new_email`` travels inside the signature."""
        return self._issue(
            kind=TokenKind.EMAIL_CHANGE,
            user_id=user_id,
            email=current_email,
            new_email=new_email,
            now=now,
        )

    def generate_password_reset_token(
        self, user_id: int, email: str, *, now: datetime | None = None
    ) -> str:
        return self._issue(kind=TokenKind.PASSWORD_RESET, user_id=user_id, email=email, now=now)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate_token(self, token: str) -> ConfirmationClaims:
        """
        Verify signature and expiry and return the claims.

        :raises AuthenticationError: ``auth.errors.invalid_token`` when the
            token is malformed, tampered with or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": _REQUIRED_CLAIMS},
            )
            return ConfirmationClaims.from_payload(payload)
        except (jwt.PyJWTError, KeyError, ValueError, TypeError) as exc:
            log.info("Confirmation token rejected: %s", type(exc).__name__)
            raise AuthenticationError("auth.errors.invalid_token") from exc

    def validate_stored_token(
        self,
        token: str,
        stored_token: str | None,
        stored_expiry: datetime | None,
        expected_kind: TokenKind,
    ) -> ConfirmationClaims:
        """
        Validate ``token`` and require it to still be the one on record.

        Checks run in order: signature/expiry, purpose, equality with the
        stored value, then the stored expiry. A superseded token fails the
        equality check even while its own signature is still valid.

        :raises AuthenticationError: From :meth:`validate_token`.
        :raises AuthorizationError: ``auth.errors.invalid_token_type``,
            ``auth.errors.invalid_token`` or ``auth.errors.expired_token``.
        """
        claims = self.validate_token(token)
        if claims.token_type is not expected_kind:
            raise AuthorizationError("auth.errors.invalid_token_type")
        if stored_token is None or stored_token != token:
            raise AuthorizationError("auth.errors.invalid_token")
        if stored_expiry is not None and self.now() > stored_expiry:
            raise AuthorizationError("auth.errors.expired_token")
        return claims
