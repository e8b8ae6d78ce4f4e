"""JSON logging on stdout with a per-request correlation id.

Every record carries ``request_id``. Inside a request it comes from the
``X-Request-ID`` or ``X-Correlation-ID`` header, or a fresh UUID4, and the
same value is echoed back on the response.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# ``extra=`` attributes promoted to top-level JSON keys.
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "event", "deleted")

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("apscheduler",)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting logic
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on records (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _incoming_request_id() -> str | None:
    return next(
        (request.headers[name] for name in CORRELATION_HEADERS if request.headers.get(name)),
        None,
    )


def ensure_request_id() -> str:
    """Return the id of the current request, assigning one on first use.

    Outside a request every call returns a new UUID4.
    """
    if not has_request_context():
        return str(uuid4())
    if "request_id" not in g:
        g.request_id = _incoming_request_id() or str(uuid4())
    return g.request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Send the root logger to stdout as JSON at ``level``."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _reset_request_id() -> None:  # pragma: no cover - integration glue
    # ``g`` outlives the request when an app context is already pushed
    g.pop("request_id", None)
    ensure_request_id()


def _echo_request_id(response: Response) -> Response:  # pragma: no cover - integration glue
    response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
    return response


def init_app(app: Flask) -> None:
    """Attach the id filter to ``app.logger`` and the request hooks."""
    app.logger.addFilter(RequestIdFilter())
    app.before_request(_reset_request_id)
    app.after_request(_echo_request_id)


__all__ = ["configure_logging", "init_app", "ensure_request_id"]
