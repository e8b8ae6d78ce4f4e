"""Cross-origin policy and reverse-proxy trust for the API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from gatekeeper.core.logger import REQUEST_ID_HEADER


def allowed_origins(raw: str | None) -> list[str] | None:
    """Parse a comma separated ``CORS_ORIGINS`` value.

    Returns ``None`` when every origin is allowed (blank value or ``*``).
    """
    origins = [item.strip() for item in (raw or "").split(",")]
    origins = [item for item in origins if item]
    if not origins or "*" in origins:
        return None
    return origins


def init_app(app: Flask) -> None:
    """Register Flask-CORS on ``/api/*``.

    Credentials, and with them the refresh cookie, are only allowed for an
    explicit origin list; a wildcard policy never sends cookies cross-origin.
    """
    origins = allowed_origins(app.config.get("CORS_ORIGINS"))
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=origins is not None,
        expose_headers=[REQUEST_ID_HEADER],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )


def init_proxy(app: Flask) -> None:
    """Wrap the WSGI app in ``ProxyFix`` unless ``USE_PROXYFIX`` is off.

    The refresh cookie is ``Secure``, so the forwarded scheme has to survive.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
        app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1
    )
