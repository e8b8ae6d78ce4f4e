"""
Problem Details (RFC 7807) responses for every error the API can raise.

Service errors carry a message key that is rendered in the caller's locale
and echoed back as ``message_key``. Anything unexpected becomes a generic
500 whose body never includes internal details.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from gatekeeper.core.logger import ensure_request_id
from gatekeeper.core.messages import render_message, resolve_locale
from gatekeeper.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Checked in order; ``EmailDispatchError`` falls through to ``InternalError``.
SERVICE_STATUS: tuple[tuple[type[ServiceError], HTTPStatus, str], ...] = (
    (ValidationError, HTTPStatus.UNPROCESSABLE_ENTITY, "validation_error"),
    (AuthenticationError, HTTPStatus.UNAUTHORIZED, "unauthorized"),
    (AuthorizationError, HTTPStatus.FORBIDDEN, "forbidden"),
    (NotFoundError, HTTPStatus.NOT_FOUND, "not_found"),
    (InternalError, HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error"),
)

HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    429: "too_many_requests",
    500: "internal_server_error",
    503: "service_unavailable",
}


def request_locale() -> str:
    """Locale negotiated from ``Accept-Language`` of the current request."""
    return resolve_locale(request.headers.get("Accept-Language"))


def build_problem(
    status: int,
    code: str,
    detail: str,
    *,
    details: dict[str, Any] | None = None,
    message_key: str | None = None,
) -> dict[str, Any]:
    """
    Assemble a problem document.

    :param status: HTTP status code.
    :param code: Stable snake_case error code.
    :param detail: Client-safe, already localized message.
    :param details: Structured extras such as per-field errors.
    :param message_key: Catalog key ``detail`` was rendered from.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": detail,
        "instance": request.path if has_request_context() else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        problem["details"] = details
    if message_key:
        problem["message_key"] = message_key
    return problem


def problem_response(problem: dict[str, Any]) -> tuple[Response, int]:
    response = jsonify(problem)
    response.mimetype = PROBLEM_MIMETYPE
    return response, problem["status"]


def _log_problem(label: str, problem: dict[str, Any], *, exc: BaseException | None = None) -> None:
    status = problem["status"]
    if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        log.error(
            "%s: code=%s status=%s request_id=%s",
            label,
            problem["code"],
            status,
            problem["request_id"],
            exc_info=exc,
        )
    else:
        log.warning(
            "%s: code=%s status=%s detail=%s request_id=%s",
            label,
            problem["code"],
            status,
            problem["detail"],
            problem["request_id"],
        )


def service_error_problem(err: ServiceError, locale: str) -> tuple[int, dict[str, Any]]:
    """
    Translate a service-layer error into ``(status, problem)``.

    Server-side failures are rendered with the generic ``errors.internal``
    message and without ``message_key``.
    """
    status, code = next(
        ((status, code) for kind, status, code in SERVICE_STATUS if isinstance(err, kind)),
        (HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error"),
    )
    if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        return int(status), build_problem(status, code, render_message("errors.internal", locale))

    details = None
    if isinstance(err, ValidationError):
        details = {
            "errors": {
                field: [
                    {"code": issue.code, "message": render_message(issue.message, locale)}
                    for issue in issues
                ]
                for field, issues in err.errors.items()
            }
        }
    problem = build_problem(
        status,
        code,
        render_message(err.key, locale),
        details=details,
        message_key=err.key,
    )
    return int(status), problem


class APIError(Exception):
    """
    Error raised by the HTTP layer itself.

    Parameters
    ----------
    message : str
        Client-facing description, already localized.
    status_code : int, optional
        Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    """

    def __init__(self, message: str, status_code: int = 400, code: str = "bad_request") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code


class Forbidden(APIError):
    """403 when the caller lacks a required role."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


# ------------------------------ handlers -------------------------------- #


def _on_service_error(err: ServiceError):
    _, problem = service_error_problem(err, request_locale())
    _log_problem(f"ServiceError[{err.key}]", problem, exc=err)
    return problem_response(problem)


def _on_api_error(err: APIError):
    problem = build_problem(err.status_code, err.code, err.message)
    _log_problem("APIError", problem)
    return problem_response(problem)


def _on_http_exception(err: HTTPException):
    status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
    code = HTTP_CODES.get(status, "error")
    if status == HTTPStatus.NOT_FOUND:
        detail = f"Route '{request.path}' not found"
    else:
        detail = (err.description or code.replace("_", " ").capitalize()).strip()
    problem = build_problem(status, code, detail)
    _log_problem("HTTPException", problem)
    return problem_response(problem)


def _on_schema_error(err: MarshmallowValidationError):
    problem = build_problem(
        HTTPStatus.UNPROCESSABLE_ENTITY,
        "validation_error",
        render_message("errors.validation", request_locale()),
        details={"errors": err.messages},
    )
    _log_problem("ValidationError", problem)
    return problem_response(problem)


def _on_integrity_error(err: IntegrityError):
    # raw constraint names stay in the log
    problem = build_problem(HTTPStatus.CONFLICT, "conflict", "Resource conflict")
    log.error("IntegrityError: request_id=%s", problem["request_id"], exc_info=err)
    return problem_response(problem)


def _on_operational_error(err: OperationalError):
    problem = build_problem(
        HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable", "Service temporarily unavailable"
    )
    _log_problem("OperationalError", problem, exc=err)
    return problem_response(problem)


def _on_unexpected(err: Exception):
    problem = build_problem(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        "internal_server_error",
        render_message("errors.internal", request_locale()),
    )
    _log_problem("Unhandled exception", problem, exc=err)
    return problem_response(problem)


HANDLERS: tuple[tuple[type[BaseException], Any], ...] = (
    (ServiceError, _on_service_error),
    (APIError, _on_api_error),
    (HTTPException, _on_http_exception),
    (MarshmallowValidationError, _on_schema_error),
    (IntegrityError, _on_integrity_error),
    (OperationalError, _on_operational_error),
    (Exception, _on_unexpected),
)


def _jwt_rejection(key: str) -> tuple[Response, int]:
    problem = build_problem(
        HTTPStatus.UNAUTHORIZED,
        "unauthorized",
        render_message(key, request_locale()),
        message_key=key,
    )
    _log_problem("JWT rejected", problem)
    return problem_response(problem)


def _register_jwt_callbacks() -> None:
    """Answer Flask-JWT-Extended extraction failures with problem+json."""
    from gatekeeper.core.extensions import jwt

    jwt.unauthorized_loader(lambda _reason: _jwt_rejection("auth.errors.missing_token"))
    jwt.invalid_token_loader(lambda _reason: _jwt_rejection("auth.errors.invalid_token"))
    jwt.expired_token_loader(
        lambda _header, _payload: _jwt_rejection("auth.errors.expired_token")
    )


def init_app(app: Flask) -> None:
    """Register every problem+json handler on ``app``."""
    _register_jwt_callbacks()
    for exc_type, handler in HANDLERS:
        app.register_error_handler(exc_type, handler)
