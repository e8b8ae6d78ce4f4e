# gatekeeper/services/refresh/service.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from gatekeeper.services._shared.base import BaseService
from gatekeeper.services._shared.errors import AuthenticationError
from gatekeeper.services.auth.claims import AccessTokenIssuer
from gatekeeper.uow.base import UnitOfWork

log = logging.getLogger(__name__)

# 32 random bytes → 43 url-safe characters
TOKEN_BYTES = 32


class RefreshTokenService(BaseService):
    """
    Opaque, storage-backed refresh tokens.

    Lifecycle of a row: issued → valid while ``expires_at >= now`` → deleted
    by logout, logout-all or the periodic sweep. Using a token does not
    rotate it; it stays valid until it expires or is revoked. Users may hold
    any number of tokens at once (one per device).

    :param issuer: Access-token issuer used by :meth:`refresh_token`.
    :param ttl_seconds: Refresh-token lifetime.
    """

    def __init__(self, *, issuer: AccessTokenIssuer, ttl_seconds: int = 2_592_000) -> None:
        self.issuer = issuer
        self.ttl = timedelta(seconds=int(ttl_seconds))

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def generate_refresh_token(self, user_id: int) -> str:
        """Create and commit a new token for ``user_id``; prior tokens stay valid."""
        with self.rw_uow() as uow:
            return self.generate_refresh_token_in_transaction(uow, user_id)

    def generate_refresh_token_in_transaction(self, uow: UnitOfWork, user_id: int) -> str:
        """
        Stage a new token inside the caller's transaction.

        The row disappears if the caller rolls back, e.g. a registration whose
        confirmation email could not be sent.
        """
        token = secrets.token_urlsafe(TOKEN_BYTES)
        uow.refresh_tokens.create(user_id=user_id, token=token, expires_at=self.now() + self.ttl)
        return token

    # ------------------------------------------------------------------ #
    # Use
    # ------------------------------------------------------------------ #

    def refresh_token(self, user_id: int, token: str) -> str:
        """
        Exchange a stored refresh token for a fresh access token.

        Claims are rebuilt from the current user and role rows.

        :raises AuthenticationError: ``auth.errors.invalid_refresh_token`` when
            no row matches ``(token, user_id)``, or
            ``auth.errors.expired_refresh_token`` when the row has expired
            but has not been swept yet.
        """
        now = self.now()
        with self.ro_uow() as uow:
            stored = uow.refresh_tokens.find_by_token_and_user(token, user_id)
            if stored is None:
                raise AuthenticationError("auth.errors.invalid_refresh_token")
            if stored.is_expired(now):
                raise AuthenticationError("auth.errors.expired_refresh_token")
            return self.issuer.issue(user_id, uow)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def invalidate_refresh_token(self, user_id: int, token: str) -> None:
        """Delete one token. Absent tokens are ignored."""
        with self.rw_uow() as uow:
            uow.refresh_tokens.delete_by_token_and_user(token, user_id)

    def invalidate_all_user_tokens(self, user_id: int, *, uow: UnitOfWork | None = None) -> int:
        """
        Delete every token of ``user_id`` (logout from all devices).

        :param uow: Optional caller transaction, e.g. a password reset.
        :returns: Number of tokens removed.
        """
        if uow is not None:
            return uow.refresh_tokens.delete_all_for_user(user_id)
        with self.rw_uow() as rw:
            removed = rw.refresh_tokens.delete_all_for_user(user_id)
        log.info(
            "All refresh tokens revoked",
            extra={"user_id": user_id, "event": "logout_all", "deleted": removed},
        )
        return removed

    def clean_expired_tokens(self) -> int:
        """
        Bulk-delete rows whose expiry has passed.

        Meant for the periodic sweep, not for request handlers.

        :returns: Number of rows removed.
        """
        with self.rw_uow() as uow:
            removed = uow.refresh_tokens.delete_expired(self.now())
        log.info(
            "Expired refresh tokens purged",
            extra={"event": "refresh_token_sweep", "deleted": removed},
        )
        return removed
