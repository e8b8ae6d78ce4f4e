"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

USERNAME_RULES = validate.Length(min=3, max=50)
EMAIL_RULES = validate.Length(max=254)
PASSWORD_RULES = [
    validate.Length(min=8, max=128),
    validate.Regexp(r".*\d", error="Password must contain at least one digit."),
]


class RegisterSchema(Schema):
    """Input payload for account registration."""

    username = fields.String(required=True, validate=USERNAME_RULES)
    email = fields.Email(required=True, validate=EMAIL_RULES)
    password = fields.String(required=True, load_only=True, validate=PASSWORD_RULES)


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshSchema(Schema):
    """Input payload for exchanging a refresh token.

    ``refresh_token`` may be omitted when the cookie carries it.
    """

    user_id = fields.Integer(required=True, strict=True)
    refresh_token = fields.String(load_default=None)


class LogoutSchema(Schema):
    """Optional body of ``/auth/logout``."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None)


class TokenQuerySchema(Schema):
    """``?token=`` query string of the confirmation links."""

    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))


class PasswordResetRequestSchema(Schema):
    email = fields.Email(required=True, validate=EMAIL_RULES)


class PasswordResetConfirmSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True, validate=PASSWORD_RULES)


class AccessTokenSchema(Schema):
    """Response payload containing an access token."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
