"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AccessTokenSchema,
    LoginSchema,
    LogoutSchema,
    PasswordResetConfirmSchema,
    PasswordResetRequestSchema,
    RefreshSchema,
    RegisterSchema,
    TokenQuerySchema,
)
from .user import (
    ChangePasswordSchema,
    EmailChangeSchema,
    RoleCreateSchema,
    RoleSchema,
    RoleUpdateSchema,
    UpdateUserSchema,
    UserSchema,
)

__all__ = [
    "AccessTokenSchema",
    "LoginSchema",
    "LogoutSchema",
    "PasswordResetConfirmSchema",
    "PasswordResetRequestSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenQuerySchema",
    "ChangePasswordSchema",
    "EmailChangeSchema",
    "RoleCreateSchema",
    "RoleSchema",
    "RoleUpdateSchema",
    "UpdateUserSchema",
    "UserSchema",
]
