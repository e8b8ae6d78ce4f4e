"""Role catalog and the user-role link table."""

from __future__ import annotations

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatekeeper.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class Role(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Catalog entry such as ``admin``, ``manager`` or ``user``.

    The lowercase ``name`` doubles as the role identifier embedded in access
    token claims.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (UniqueConstraint("name", name="uq_roles_name"),)


class UserRole(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """Link row granting ``role`` to ``user``; one row per pair."""

    __tablename__ = "user_roles"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id: Mapped[int] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    role: Mapped[Role] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_id_role_id"),
    )
