"""Shared API helpers: authentication decorators, cookies and responses."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from gatekeeper.core.errors import Forbidden, request_locale
from gatekeeper.core.messages import render_message
from gatekeeper.services.auth.claims import AccessTokenClaims
from gatekeeper.services.roles.dto import RoleName

F = TypeVar("F", bound=Callable[..., Any])


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token.

    The verified claims are exposed through :func:`current_claims`.
    Missing, malformed and expired tokens are answered with 401 by the JWT
    callbacks registered in :mod:`gatekeeper.core.errors`.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        g.access_claims = AccessTokenClaims.from_jwt(get_jwt())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_claims() -> AccessTokenClaims:
    """Return the claims of the token verified by :func:`require_auth`."""

    return g.access_claims


def require_role(*roles: RoleName | str) -> Callable[[F], F]:
    """Allow the request only when the token carries one of ``roles``.

    Implies :func:`require_auth`. Roles are read from the token, so a grant
    or revocation takes effect with the next access token.
    """

    names = tuple(r.value if isinstance(r, RoleName) else str(r) for r in roles)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        @require_auth
        def wrapper(*args: Any, **kwargs: Any):
            if not current_claims().has_role(*names):
                raise Forbidden(render_message("auth.errors.insufficient_role", request_locale()))
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def empty_response(status: int = 204) -> Response:
    return Response(status=status)


# --------------------------- Refresh cookie ----------------------------- #


def refresh_cookie_name() -> str:
    return current_app.config.get("REFRESH_TOKEN_COOKIE_NAME", "refresh_token")


def set_refresh_cookie(response: Response, token: str) -> Response:
    """Attach the refresh token as an HttpOnly, Secure, SameSite=Strict cookie."""

    response.set_cookie(
        refresh_cookie_name(),
        token,
        max_age=int(current_app.config.get("REFRESH_TOKEN_EXPIRES_IN", 2_592_000)),
        path="/",
        secure=True,
        httponly=True,
        samesite="Strict",
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    response.delete_cookie(
        refresh_cookie_name(), path="/", secure=True, httponly=True, samesite="Strict"
    )
    return response


def presented_refresh_token(body: dict[str, Any]) -> str | None:
    """Refresh token from the JSON body, falling back to the cookie."""

    return body.get("refresh_token") or request.cookies.get(refresh_cookie_name())


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
