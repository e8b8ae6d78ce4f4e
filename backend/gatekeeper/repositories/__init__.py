"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from gatekeeper.repositories.base import BaseRepository
from gatekeeper.repositories.refresh_token import RefreshTokenRepository
from gatekeeper.repositories.role import RoleRepository, UserRoleRepository
from gatekeeper.repositories.user import UserEmailHistoryRepository, UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "RoleRepository",
    "UserEmailHistoryRepository",
    "UserRepository",
    "UserRoleRepository",
]
