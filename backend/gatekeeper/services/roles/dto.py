# gatekeeper/services/roles/dto.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RoleName(str, Enum):
    """Catalog role identifiers embedded in access-token claims."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


DEFAULT_ROLE = RoleName.USER


@dataclass(frozen=True, slots=True)
class RoleOut:
    """
    Output DTO for a catalog role.

    :param id: Role primary key.
    :type id: int
    :param name: Lowercase role identifier.
    :type name: str
    :param description: Human-readable summary.
    :type description: str | None
    """

    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class RoleIn:
    """
    Input DTO for a new catalog role.

    :param name: Role identifier; stored trimmed and lowercased.
    :type name: str
    :param description: Optional summary.
    :type description: str | None
    """

    name: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class RoleUpdateIn:
    """Partial update of a catalog role; ``None`` leaves a field unchanged."""

    name: str | None = None
    description: str | None = None
