"""Authentication endpoints using the service layer."""

from __future__ import annotations

import logging

from flask import Blueprint, request

from gatekeeper.api.deps import (
    clear_refresh_cookie,
    current_claims,
    empty_response,
    json_response,
    presented_refresh_token,
    require_auth,
    set_refresh_cookie,
    timing,
)
from gatekeeper.core.container import get_services
from gatekeeper.schemas import (
    AccessTokenSchema,
    LoginSchema,
    LogoutSchema,
    PasswordResetConfirmSchema,
    PasswordResetRequestSchema,
    RefreshSchema,
    RegisterSchema,
    TokenQuerySchema,
    UserSchema,
)
from gatekeeper.services._shared.errors import (
    AuthenticationError,
    EmailDispatchError,
    NotFoundError,
)
from gatekeeper.services.auth.dto import AuthResultOut, LoginIn, RegisterIn
from gatekeeper.services.identity.dto import ResetPasswordIn

log = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
token_query_schema = TokenQuerySchema()
reset_request_schema = PasswordResetRequestSchema()
reset_confirm_schema = PasswordResetConfirmSchema()
user_schema = UserSchema()
token_schema = AccessTokenSchema()


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _session_response(result: AuthResultOut, *, status: int):
    body = {
        "data": {
            "user": user_schema.dump(result.user),
            **token_schema.dump({"access_token": result.access_token}),
        }
    }
    return set_refresh_cookie(json_response(body, status=status), result.refresh_token)


@bp.post("/register")
@timing
def register():
    """Register a new account, mail the confirmation link and sign it in."""

    payload = register_schema.load(_json_body())
    result = get_services().auth.register(RegisterIn(**payload))
    return _session_response(result, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access token plus refresh cookie."""

    payload = login_schema.load(_json_body())
    result = get_services().auth.login(LoginIn(**payload))
    return _session_response(result, status=200)


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a stored refresh token (body or cookie) for a new access token."""

    payload = refresh_schema.load(_json_body())
    token = presented_refresh_token(payload)
    if not token:
        raise AuthenticationError("auth.errors.invalid_refresh_token")
    access = get_services().refresh_tokens.refresh_token(payload["user_id"], token)
    return json_response({"data": token_schema.dump({"access_token": access})})


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the presented refresh token; other devices stay signed in."""

    payload = logout_schema.load(_json_body())
    token = presented_refresh_token(payload)
    if token:
        get_services().refresh_tokens.invalidate_refresh_token(current_claims().sub, token)
    return clear_refresh_cookie(empty_response())


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Revoke every refresh token of the caller."""

    get_services().refresh_tokens.invalidate_all_user_tokens(current_claims().sub)
    return clear_refresh_cookie(empty_response())


@bp.get("/confirm-email")
@timing
def confirm_email():
    """Redeem the link sent at registration."""

    args = token_query_schema.load(request.args)
    get_services().identity.confirm_email(args["token"])
    return empty_response()


@bp.post("/password-reset")
@timing
def request_password_reset():
    """Mail a reset link.

    Always 202, so the response never tells whether the address has an
    account. A refused dispatch is logged; no token is kept in that case.
    """

    payload = reset_request_schema.load(_json_body())
    try:
        get_services().identity.request_password_reset(payload["email"])
    except NotFoundError:
        log.info("Password reset requested for unknown address", extra={"event": "reset_request"})
    except EmailDispatchError:
        log.error(
            "Password reset email could not be sent",
            extra={"event": "reset_request"},
            exc_info=True,
        )
    return empty_response(202)


@bp.post("/confirm-password-reset")
@timing
def confirm_password_reset():
    """Set a new password using the emailed reset token."""

    payload = reset_confirm_schema.load(_json_body())
    get_services().identity.reset_password(ResetPasswordIn(**payload))
    return empty_response()


@bp.get("/confirm-email-change")
@timing
def confirm_email_change():
    """Apply a pending email change."""

    args = token_query_schema.load(request.args)
    get_services().identity.confirm_email_change(args["token"])
    return empty_response()
