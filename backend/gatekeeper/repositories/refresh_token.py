"""Refresh-token persistence."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select

from gatekeeper.models.refresh_token import RefreshToken
from gatekeeper.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Lookups always pair the token value with its owner so a token stolen from
    one account cannot be replayed under another user id.
    """

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "token": RefreshToken.token,
            "user_id": RefreshToken.user_id,
        }

    def create(self, *, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
        return self.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))

    def find_by_token_and_user(self, token: str, user_id: int) -> RefreshToken | None:
        stmt = select(RefreshToken).where(
            RefreshToken.token == token, RefreshToken.user_id == user_id
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def delete_by_token_and_user(self, token: str, user_id: int) -> int:
        return self.delete_where(token=token, user_id=user_id)

    def delete_all_for_user(self, user_id: int) -> int:
        return self.delete_where(user_id=user_id)

    def delete_expired(self, now: datetime) -> int:
        """Remove every row with ``expires_at < now``."""
        return self.delete_where(RefreshToken.expires_at < now)
