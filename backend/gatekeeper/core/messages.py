"""Message catalog for error keys, resolved per request locale."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

DEFAULT_LOCALE: Final[str] = "en"

_EN: Mapping[str, str] = {
    # generic
    "errors.internal": "An unexpected error occurred",
    "errors.validation": "Validation failed",
    "errors.not_found": "Resource not found",
    # auth
    "auth.errors.invalid_credentials": "Invalid username or password",
    "auth.errors.account_inactive": "This account has been deactivated",
    "auth.errors.email_not_confirmed": "Email address has not been confirmed",
    "auth.errors.invalid_token": "Invalid or expired token",
    "auth.errors.invalid_token_type": "Token was issued for a different purpose",
    "auth.errors.expired_token": "Token has expired",
    "auth.errors.missing_token": "Missing authorization token",
    "auth.errors.invalid_refresh_token": "Invalid refresh token",
    "auth.errors.expired_refresh_token": "Refresh token has expired",
    "auth.errors.email_already_confirmed": "Email address is already confirmed",
    "auth.errors.forbidden": "You do not have permission to perform this action",
    "auth.errors.insufficient_role": "Your role does not allow this action",
    # users
    "users.errors.user_already_exists": "A user with this email already exists",
    "users.errors.username_already_exists": "This username is already taken",
    "users.errors.email_already_exists": "This email address is already in use",
    "users.errors.invalid_current_password": "Current password is incorrect",
    "users.errors.new_email_same_as_current": "New email must differ from the current one",
    "user.errors.not_found": "User not found",
    # roles
    "role.errors.not_found": "Role not found",
    "roles.errors.name_already_exists": "A role with this name already exists",
    "roles.errors.default_role_missing": "Default role is not configured",
    "userrole.errors.not_found": "User does not have this role",
    # email
    "emails.errors.dispatch_failed": "Email could not be sent",
}

CATALOGS: Mapping[str, Mapping[str, str]] = {"en": _EN}


def resolve_locale(accept_language: str | None) -> str:
    """
    Pick the best supported locale from an ``Accept-Language`` header.

    :param accept_language: Raw header value, e.g. ``"es-ES,es;q=0.9,en;q=0.8"``.
    :returns: A key of :data:`CATALOGS`; :data:`DEFAULT_LOCALE` when nothing matches.
    """
    if not accept_language:
        return DEFAULT_LOCALE

    ranked: list[tuple[float, str]] = []
    for part in accept_language.split(","):
        tag, _, params = part.strip().partition(";")
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        primary = tag.strip().split("-")[0].lower()
        if primary:
            ranked.append((quality, primary))

    for _, lang in sorted(ranked, key=lambda item: item[0], reverse=True):
        if lang in CATALOGS:
            return lang
    return DEFAULT_LOCALE


def render_message(key: str, locale: str = DEFAULT_LOCALE) -> str:
    """
    Render a message key in ``locale``.

    Falls back to English, then to the generic ``errors.<suffix>`` entry,
    and finally to the key itself so clients always get a stable string.
    """
    for catalog in (CATALOGS.get(locale, {}), _EN):
        if key in catalog:
            return catalog[key]
    generic = "errors." + key.rsplit(".", 1)[-1]
    return _EN.get(generic, key)
