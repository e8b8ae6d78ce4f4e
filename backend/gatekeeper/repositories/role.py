"""Role catalog and user-role membership persistence."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import cast

from sqlalchemy import select

from gatekeeper.models.role import Role, UserRole
from gatekeeper.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """Persistence-only repository for :class:`Role`."""

    model = Role

    def get_by_name(self, name: str) -> Role | None:
        stmt = select(Role).where(Role.name == name)
        return cast(Role | None, self.session.execute(stmt).scalars().first())

    def ensure(self, name: str, description: str | None) -> tuple[Role, bool]:
        """Return the role called ``name``, inserting it when missing.

        :returns: ``(role, created)``.
        """
        role = self.get_by_name(name)
        if role is not None:
            return role, False
        return self.add(Role(name=name, description=description)), True

    def exists_by_name(self, name: str, *, exclude_id: int | None = None) -> bool:
        stmt = select(Role.id).where(Role.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Role.id != exclude_id)
        return self.session.execute(stmt.limit(1)).first() is not None


class UserRoleRepository(BaseRepository[UserRole]):
    """Membership rows linking users to catalog roles."""

    model = UserRole

    def roles_for_user(self, user_id: int) -> Sequence[Role]:
        """Return the roles granted to ``user_id`` ordered by role name.

        An unknown user simply yields an empty list.
        """
        stmt = (
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def grant(self, user_id: int, role_id: int) -> UserRole:
        """Insert the membership row (flushes; the unique pair guards duplicates)."""
        return self.add(UserRole(user_id=user_id, role_id=role_id))

    def has_role(self, user_id: int, role_name: str) -> bool:
        stmt = (
            select(UserRole.id)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id, Role.name == role_name)
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def revoke(self, user_id: int, role_id: int) -> int:
        """Delete the pairing; returns the number of rows removed (0 or 1)."""
        return self.delete_where(user_id=user_id, role_id=role_id)

    def role_names_by_user(self, user_ids: Iterable[int]) -> dict[int, list[str]]:
        """Role names per user id, each list sorted; users without roles are absent."""
        ids = list(user_ids)
        if not ids:
            return {}
        stmt = (
            select(UserRole.user_id, Role.name)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id.in_(ids))
            .order_by(UserRole.user_id.asc(), Role.name.asc())
        )
        names: dict[int, list[str]] = defaultdict(list)
        for user_id, name in self.session.execute(stmt):
            names[user_id].append(name)
        return dict(names)

    def delete_for_user(self, user_id: int) -> int:
        return self.delete_where(user_id=user_id)

    def delete_for_role(self, role_id: int) -> int:
        return self.delete_where(role_id=role_id)
