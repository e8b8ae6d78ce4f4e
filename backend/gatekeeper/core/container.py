"""Composition root: every service is built once here and shared.

Dependencies are passed explicitly through constructors; services never look
each other up at runtime. Request handlers reach the graph through
:func:`get_services`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app

from gatekeeper.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from gatekeeper.infra.mail.smtp_email_sender import SmtpEmailSender
from gatekeeper.services._shared.ports import EmailSender, InMemoryEmailSender, TokenProvider
from gatekeeper.services.auth.claims import AccessTokenIssuer
from gatekeeper.services.auth.service import AuthService
from gatekeeper.services.confirmation.service import ConfirmationTokenService
from gatekeeper.services.emails.service import EmailsService
from gatekeeper.services.identity.service import IdentityService
from gatekeeper.services.refresh.service import RefreshTokenService
from gatekeeper.services.roles.service import RolesService, UserRolesService

EXTENSION_KEY = "gatekeeper.services"


@dataclass(frozen=True, slots=True)
class Services:
    """The application's service graph."""

    token_provider: TokenProvider
    email_sender: EmailSender
    emails: EmailsService
    confirmation_tokens: ConfirmationTokenService
    user_roles: UserRolesService
    access_tokens: AccessTokenIssuer
    refresh_tokens: RefreshTokenService
    auth: AuthService
    identity: IdentityService
    roles: RolesService


def build_email_sender(config: Mapping[str, Any]) -> EmailSender:
    """Pick the transport named by ``EMAIL_BACKEND`` (``smtp`` or ``memory``)."""
    backend = str(config.get("EMAIL_BACKEND", "smtp")).lower()
    if backend == "memory":
        return InMemoryEmailSender()
    if backend != "smtp":
        raise ValueError(f"Unknown EMAIL_BACKEND: {backend!r}")
    return SmtpEmailSender(
        host=config["SMTP_HOST"],
        port=int(config["SMTP_PORT"]),
        sender=config["EMAIL_FROM"],
        username=config.get("SMTP_USERNAME", ""),
        password=config.get("SMTP_PASSWORD", ""),
        use_tls=bool(config.get("SMTP_USE_TLS", False)),
        timeout=float(config.get("SMTP_TIMEOUT", 30)),
    )


def build_services(
    config: Mapping[str, Any],
    *,
    email_sender: EmailSender | None = None,
    token_provider: TokenProvider | None = None,
) -> Services:
    """
    Construct the service graph from configuration.

    :param config: Flask config (or any mapping with the same keys).
    :param email_sender: Override for the mail transport.
    :param token_provider: Override for the access-token signer.
    """
    sender = email_sender or build_email_sender(config)
    provider = token_provider or JWTTokenProvider()

    emails = EmailsService(sender=sender, app_url=config["APP_URL"])
    confirmation_tokens = ConfirmationTokenService(
        secret=config["CONFIRMATION_TOKEN_SECRET"],
        ttl_seconds=config["CONFIRMATION_TOKEN_EXPIRES_IN"],
    )
    user_roles = UserRolesService()
    access_tokens = AccessTokenIssuer(
        token_provider=provider,
        user_roles=user_roles,
        ttl_seconds=config["ACCESS_TOKEN_EXPIRES_IN"],
    )
    refresh_tokens = RefreshTokenService(
        issuer=access_tokens,
        ttl_seconds=config["REFRESH_TOKEN_EXPIRES_IN"],
    )
    identity = IdentityService(
        confirmation_tokens=confirmation_tokens,
        refresh_tokens=refresh_tokens,
        user_roles=user_roles,
        emails=emails,
    )
    auth = AuthService(
        issuer=access_tokens,
        identity=identity,
        refresh_tokens=refresh_tokens,
        user_roles=user_roles,
    )
    return Services(
        token_provider=provider,
        email_sender=sender,
        emails=emails,
        confirmation_tokens=confirmation_tokens,
        user_roles=user_roles,
        access_tokens=access_tokens,
        refresh_tokens=refresh_tokens,
        auth=auth,
        identity=identity,
        roles=RolesService(),
    )


def init_app(app: Flask) -> Services:
    """Build the graph for ``app`` and store it on ``app.extensions``."""
    services = build_services(app.config)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    """Return the graph of the current application."""
    return current_app.extensions[EXTENSION_KEY]
