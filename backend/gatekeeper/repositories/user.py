"""User repository: identity lookups and the email-change audit trail."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from gatekeeper.models.email_history import UserEmailHistory
from gatekeeper.models.user import User
from gatekeeper.repositories.base import BaseRepository


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER issues tokens or hashes passwords; the model and services do.
    """

    model = User

    def _filterable_fields(self):
        """Whitelist fields safe for equality filters."""
        return {
            "id": User.id,
            "email": User.email,
            "username": User.username,
            "password_reset_token": User.password_reset_token,
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == _normalize_email(email))
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by exact (trimmed) username."""
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str, *, exclude_id: int | None = None) -> bool:
        """Return ``True`` when another row already owns ``email``.

        :param email: Email address to normalise and search.
        :param exclude_id: User id ignored by the check (the caller itself).
        """
        stmt = select(User.id).where(User.email == _normalize_email(email))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.session.execute(stmt.limit(1)).first() is not None

    def exists_by_username(self, username: str, *, exclude_id: int | None = None) -> bool:
        stmt = select(User.id).where(User.username == username.strip())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.session.execute(stmt.limit(1)).first() is not None


class UserEmailHistoryRepository(BaseRepository[UserEmailHistory]):
    """Append-only access to ``users_email_history``."""

    model = UserEmailHistory

    def record(self, *, user_id: int, old_email: str, new_email: str) -> UserEmailHistory:
        return self.add(UserEmailHistory(user_id=user_id, old_email=old_email, new_email=new_email))

    def for_user(self, user_id: int) -> list[UserEmailHistory]:
        return self.list(user_id=user_id)

    def delete_for_user(self, user_id: int) -> int:
        return self.delete_where(user_id=user_id)
