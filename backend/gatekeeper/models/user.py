"""User model: identity, credentials and pending confirmation tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, String, Text, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column, validates
from werkzeug.security import check_password_hash, generate_password_hash

from gatekeeper.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Each confirmation flow owns one ``*_token`` column and its ``*_expiry``
    partner, so a user has at most one outstanding token of each kind. A
    presented token is honoured only while it equals the stored value and the
    expiry has not passed; issuing a new token supersedes the previous one.

    Fields
    ------
    username : str
        Public handle. Unique per system.
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Salted Werkzeug hash (write-only setter via ``password``).
    is_email_confirmed : bool
        Set once the email-confirmation token is redeemed.
    is_active : bool
        Inactive accounts cannot log in.
    pending_email : str | None
        Address awaiting confirmation during an email change.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_email_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    pending_email: Mapped[str | None] = mapped_column(String(254), nullable=True)

    email_confirmation_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_confirmation_token_expiry: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    email_change_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_change_token_expiry: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    password_reset_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    password_reset_token_expiry: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )

    # ------------------------------ credentials ------------------------------

    @property
    def password(self) -> Any:  # pragma: no cover - write-only
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """Store a salted Werkzeug hash of ``raw``; empty values are refused."""
        if not raw or not isinstance(raw, str):
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw)

    # ------------------------------ token slots ------------------------------

    def set_email_confirmation_token(self, token: str, expiry: datetime) -> None:
        self.email_confirmation_token = token
        self.email_confirmation_token_expiry = expiry

    def clear_email_confirmation_token(self) -> None:
        self.email_confirmation_token = None
        self.email_confirmation_token_expiry = None

    def set_password_reset_token(self, token: str, expiry: datetime) -> None:
        self.password_reset_token = token
        self.password_reset_token_expiry = expiry

    def clear_password_reset_token(self) -> None:
        self.password_reset_token = None
        self.password_reset_token_expiry = None

    def set_email_change_token(self, token: str, expiry: datetime, new_email: str) -> None:
        self.email_change_token = token
        self.email_change_token_expiry = expiry
        self.pending_email = new_email

    def clear_email_change_token(self) -> None:
        self.email_change_token = None
        self.email_change_token_expiry = None
        self.pending_email = None

    # ------------------------------ normalization ----------------------------

    @validates("email", "pending_email")
    def _normalize_email(self, key: str, value: str | None) -> str | None:
        # only shape is checked here; marshmallow validates full syntax
        if value is None and key == "pending_email":
            return None
        email = value.strip().lower() if isinstance(value, str) else ""
        if not email:
            raise ValueError("Email is required.")
        if "@" not in email:
            raise ValueError("Email format looks invalid.")
        return email

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        username = value.strip() if isinstance(value, str) else ""
        if not username:
            raise ValueError("Username is required.")
        return username
