# gatekeeper/services/roles/service.py
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError

from gatekeeper.models.role import Role
from gatekeeper.services._shared.base import BaseService
from gatekeeper.services._shared.errors import (
    InternalError,
    NotFoundError,
    ValidationError,
    violates,
)
from gatekeeper.services.roles.dto import DEFAULT_ROLE, RoleIn, RoleName, RoleOut, RoleUpdateIn
from gatekeeper.uow.base import UnitOfWork

log = logging.getLogger(__name__)

NAME_TAKEN = "roles.errors.name_already_exists"


def _to_out(role: Role) -> RoleOut:
    return RoleOut(id=role.id, name=role.name, description=role.description)


class UserRolesService(BaseService):
    """
    Role resolution: which roles a user holds right now.

    Results are read from storage on every call and never cached, so a role
    granted or revoked shows up in the next access token minted for the user.
    """

    def get_user_roles(self, user_id: int, *, uow: UnitOfWork | None = None) -> list[RoleOut]:
        """
        Return the roles granted to ``user_id``.

        :param user_id: User identifier.
        :param uow: Optional caller transaction; a read-only one is opened otherwise.
        :returns: Roles ordered by name; empty when the user has none or
            does not exist.
        """
        if uow is not None:
            return [_to_out(r) for r in uow.user_roles.roles_for_user(user_id)]
        with self.ro_uow() as ro:
            return [_to_out(r) for r in ro.user_roles.roles_for_user(user_id)]

    def assign_user_role_in_transaction(self, uow: UnitOfWork, user_id: int) -> RoleOut:
        """
        Grant the default ``user`` role inside the caller's transaction.

        :raises InternalError: If the role catalog was never seeded.
        """
        role = uow.roles.get_by_name(DEFAULT_ROLE.value)
        if role is None:
            log.error("Default role %r missing from catalog", DEFAULT_ROLE.value)
            raise InternalError("roles.errors.default_role_missing")
        uow.user_roles.grant(user_id=user_id, role_id=role.id)
        return _to_out(role)

    def has_role(self, user_id: int, role: RoleName | str) -> bool:
        """Membership test; never raises for unknown users or roles."""
        name = role.value if isinstance(role, RoleName) else str(role)
        with self.ro_uow() as uow:
            return uow.user_roles.has_role(user_id, name)

    def remove_role(self, user_id: int, role_id: int) -> None:
        """
        Revoke one role from a user.

        :raises NotFoundError: When the user does not hold that role.
        """
        with self.rw_uow() as uow:
            removed = uow.user_roles.revoke(user_id=user_id, role_id=role_id)
            if removed == 0:
                raise NotFoundError("UserRole", f"{user_id}:{role_id}")
        log.info("Role revoked", extra={"user_id": user_id, "event": "role_revoked"})

    def seed_roles(self, catalog: Iterable[tuple[str, str]]) -> list[str]:
        """
        Insert missing catalog roles; existing ones are left untouched.

        :param catalog: ``(name, description)`` pairs.
        :returns: Names of the roles created by this call.
        """
        created: list[str] = []
        with self.rw_uow() as uow:
            for name, description in catalog:
                _, was_created = uow.roles.ensure(name, description)
                if was_created:
                    created.append(name)
        return created


class RolesService(BaseService):
    """
    Catalog maintenance: list, create, rename and delete roles.

    Names are stored trimmed and lowercased because they are the identifiers
    carried in access-token claims.
    """

    @staticmethod
    def _load(uow: UnitOfWork, role_id: int) -> Role:
        role = uow.roles.get(role_id)
        if role is None:
            raise NotFoundError("Role", role_id)
        return role

    @staticmethod
    def _name_taken() -> ValidationError:
        return ValidationError.single("name", "already_exists", NAME_TAKEN)

    def list_roles(self) -> list[RoleOut]:
        with self.ro_uow() as uow:
            return [_to_out(r) for r in uow.roles.list()]

    def get_role(self, role_id: int) -> RoleOut:
        """:raises NotFoundError: Unknown role."""
        with self.ro_uow() as uow:
            return _to_out(self._load(uow, role_id))

    def create_role(self, dto: RoleIn) -> RoleOut:
        """
        Add a role to the catalog.

        :raises ValidationError: A role with that name exists.
        """
        name = dto.name.strip().lower()
        try:
            with self.rw_uow() as uow:
                if uow.roles.exists_by_name(name):
                    raise self._name_taken()
                out = _to_out(uow.roles.add(Role(name=name, description=dto.description)))
        except IntegrityError as exc:
            if violates(exc, "uq_roles_name", "roles.name"):
                raise self._name_taken() from exc
            raise
        log.info("Role created", extra={"event": "role_created", "role": name})
        return out

    def update_role(self, role_id: int, dto: RoleUpdateIn) -> RoleOut:
        """
        Rename a role or change its description.

        :raises NotFoundError: Unknown role.
        :raises ValidationError: Another role already has the new name.
        """
        name = dto.name.strip().lower() if dto.name is not None else None
        try:
            with self.rw_uow() as uow:
                role = self._load(uow, role_id)
                if name and uow.roles.exists_by_name(name, exclude_id=role.id):
                    raise self._name_taken()
                if name:
                    role.name = name
                if dto.description is not None:
                    role.description = dto.description
                uow.roles.flush()
                out = _to_out(role)
        except IntegrityError as exc:
            if violates(exc, "uq_roles_name", "roles.name"):
                raise self._name_taken() from exc
            raise
        log.info("Role updated", extra={"event": "role_updated", "role_id": role_id})
        return out

    def delete_role(self, role_id: int) -> None:
        """
        Remove a role and every grant of it.

        :raises NotFoundError: Unknown role.
        """
        with self.rw_uow() as uow:
            role = self._load(uow, role_id)
            revoked = uow.user_roles.delete_for_role(role.id)
            uow.roles.delete(role)
        log.info(
            "Role deleted",
            extra={"event": "role_deleted", "role_id": role_id, "revoked": revoked},
        )
