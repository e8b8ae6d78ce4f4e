"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. Each carries a stable, localizable message key (for example
``"auth.errors.invalid_credentials"``) that the API layer renders into the
caller's locale via :func:`gatekeeper.core.messages.render_message`.

The translation to HTTP responses (RFC 7807) is handled by
``gatekeeper/core/errors.py``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, fallback: str | None = None) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').
    fallback : str, optional
        Alternative marker for dialects that report columns instead of
        constraint names. SQLite says ``UNIQUE constraint failed: users.email``
        so ``"users.email"`` is the fallback for ``uq_users_email``.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else str(exc).lower()
    if constraint_name.lower() in message:
        return True
    return bool(fallback) and fallback.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Parameters
    ----------
    key : str
        Message key looked up in the locale tables.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    """

    default_key = "errors.internal"

    def __init__(self, key: str | None = None) -> None:
        self.key = key or self.default_key
        super().__init__(self.key)


@dataclass(frozen=True, slots=True)
class FieldIssue:
    """One violated rule on one field.

    ``message`` holds a message key; the API layer renders it per locale.
    """

    code: str
    message: str


class ValidationError(ServiceError):
    """
    Field-level validation failure reporting every violated field at once.

    :param errors: Mapping of field name to issues.
    :type errors: Mapping[str, Iterable[FieldIssue]]
    """

    default_key = "errors.validation"

    def __init__(self, errors: Mapping[str, Iterable[FieldIssue]]) -> None:
        super().__init__()
        self.errors: dict[str, list[FieldIssue]] = {
            field: list(issues) for field, issues in errors.items()
        }

    @classmethod
    def single(cls, field: str, code: str, message: str) -> ValidationError:
        """Build an error carrying one issue on one field."""
        return cls({field: [FieldIssue(code=code, message=message)]})

    @property
    def fields(self) -> list[str]:
        return list(self.errors)

    def __str__(self) -> str:  # pragma: no cover
        return f"Validation failed: {', '.join(self.errors)}"


class AuthenticationError(ServiceError):
    """Credentials or token could not be authenticated (401)."""

    default_key = "auth.errors.invalid_token"


class AuthorizationError(ServiceError):
    """Authenticated but not allowed, wrong token kind or stale token (403)."""

    default_key = "auth.errors.forbidden"


class InternalError(ServiceError):
    """Unexpected failure; details are logged, never shown to clients (500)."""

    default_key = "errors.internal"


class EmailDispatchError(InternalError):
    """The mail transport refused, failed or timed out."""

    default_key = "emails.errors.dispatch_failed"


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    default_key = "errors.not_found"

    def __init__(self, entity: str, key: str | int) -> None:
        super().__init__(f"{entity.lower()}.errors.not_found")
        self.entity = entity
        self.key_value = key

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key_value}"
