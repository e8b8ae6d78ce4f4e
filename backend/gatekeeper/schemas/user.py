"""User and role resource schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from .auth import EMAIL_RULES, PASSWORD_RULES, USERNAME_RULES

ROLE_NAME_RULES = validate.Length(min=1, max=50)
ROLE_DESCRIPTION_RULES = validate.Length(max=255)


class UserSchema(Schema):
    """Public representation of a user; hashes and tokens never appear."""

    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    is_email_confirmed = fields.Boolean(required=True)
    is_active = fields.Boolean(required=True)
    pending_email = fields.Email(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
    roles = fields.List(fields.String())


class RoleSchema(Schema):
    id = fields.Integer(required=True)
    name = fields.String(required=True)
    description = fields.String(allow_none=True)


class RoleCreateSchema(Schema):
    """Payload for ``POST /roles``."""

    name = fields.String(required=True, validate=ROLE_NAME_RULES)
    description = fields.String(load_default=None, allow_none=True, validate=ROLE_DESCRIPTION_RULES)


class RoleUpdateSchema(Schema):
    name = fields.String(validate=ROLE_NAME_RULES)
    description = fields.String(allow_none=True, validate=ROLE_DESCRIPTION_RULES)


class UpdateUserSchema(Schema):
    """Payload for ``PUT /users/{id}``; omitted fields are left alone."""

    username = fields.String(validate=USERNAME_RULES)
    email = fields.Email(validate=EMAIL_RULES)


class ChangePasswordSchema(Schema):
    """Payload for ``POST /users/me/password``."""

    current_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True, validate=PASSWORD_RULES)


class EmailChangeSchema(Schema):
    """Payload for ``POST /users/me/email``."""

    new_email = fields.Email(required=True, validate=EMAIL_RULES)
