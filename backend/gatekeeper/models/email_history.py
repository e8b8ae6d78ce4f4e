"""Audit trail of confirmed email changes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.extensions import db

from .base import PKMixin, ReprMixin, UTCDateTime, utcnow


class UserEmailHistory(PKMixin, ReprMixin, db.Model):
    """One row per completed email change (append-only)."""

    __tablename__ = "users_email_history"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_email: Mapped[str] = mapped_column(String(254), nullable=False)
    new_email: Mapped[str] = mapped_column(String(254), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
