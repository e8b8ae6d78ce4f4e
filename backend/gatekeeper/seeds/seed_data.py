"""Idempotent reference data required by every environment."""

from __future__ import annotations

import logging
from typing import Final

from gatekeeper.services.roles.dto import RoleName
from gatekeeper.services.roles.service import UserRolesService

LOGGER = logging.getLogger(__name__)

ROLE_FIXTURES: Final[list[tuple[str, str]]] = [
    (RoleName.ADMIN.value, "Administrator with full access"),
    (RoleName.USER.value, "Regular user with limited access"),
    (RoleName.MANAGER.value, "User with management privileges"),
]


def seed_roles(user_roles: UserRolesService) -> dict[str, dict[str, int]]:
    """Ensure the role catalog exists.

    Registration depends on the ``user`` role, so this must run once per
    database before the first sign-up.

    :returns: Summary keyed by table with ``created``/``existing`` counters.
    """
    created = user_roles.seed_roles(ROLE_FIXTURES)
    existing = len(ROLE_FIXTURES) - len(created)
    LOGGER.info("Roles seeded: created=%s existing=%s", len(created), existing)
    return {"roles": {"created": len(created), "existing": existing}}
