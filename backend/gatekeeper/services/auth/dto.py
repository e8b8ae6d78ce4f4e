# gatekeeper/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from gatekeeper.models.user import User

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration (shape already validated upstream).

    :param username: Desired public handle.
    :type username: str
    :param email: Contact and login email.
    :type email: str
    :param password: Raw password (hashed before storage).
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Username to authenticate.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public projection of a user; never carries the hash or any token.
    """

    id: int
    username: str
    email: str
    is_email_confirmed: bool
    is_active: bool
    pending_email: str | None
    created_at: datetime | None
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, user: User, roles: list[str] | None = None) -> UserPublicOut:
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            is_email_confirmed=bool(user.is_email_confirmed),
            is_active=bool(user.is_active),
            pending_email=user.pending_email,
            created_at=user.created_at,
            roles=list(roles or []),
        )


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Outcome of a successful registration or login.

    :param user: Public profile of the authenticated user.
    :param access_token: Signed access JWT.
    :param refresh_token: Opaque refresh token (the HTTP layer puts it in a cookie).
    """

    user: UserPublicOut
    access_token: str
    refresh_token: str
