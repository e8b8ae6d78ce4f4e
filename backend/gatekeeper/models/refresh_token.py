"""Opaque refresh tokens, one row per device session."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime


class RefreshToken(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Long-lived session credential.

    A row is valid while it exists and ``expires_at >= now``; it must be
    presented together with the ``user_id`` it was issued for. Users may hold
    several rows at once (one per device).
    """

    __tablename__ = "refresh_tokens"

    token: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        UniqueConstraint("token", name="uq_refresh_tokens_token"),
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
