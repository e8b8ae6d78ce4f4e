# gatekeeper/services/identity/dto.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    """
    Input DTO for completing a password reset.

    :param token: Reset token received by email.
    :type token: str
    :param new_password: Raw replacement password.
    :type new_password: str
    """

    token: str
    new_password: str


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    """
    Input DTO for an authenticated password change.

    :param user_id: Authenticated user id.
    :type user_id: int
    :param current_password: Password the user signed in with.
    :type current_password: str
    :param new_password: Raw replacement password.
    :type new_password: str
    """

    user_id: int
    current_password: str
    new_password: str


@dataclass(frozen=True, slots=True)
class EmailChangeIn:
    """
    Input DTO to start an email change.

    :param user_id: Authenticated user id.
    :type user_id: int
    :param new_email: Requested address.
    :type new_email: str
    """

    user_id: int
    new_email: str


@dataclass(frozen=True, slots=True)
class UpdateUserIn:
    """
    Administrative profile update; ``None`` leaves a field unchanged.

    :param username: New public handle.
    :type username: str | None
    :param email: New address; the confirmation state is kept as is.
    :type email: str | None
    """

    username: str | None = None
    email: str | None = None
