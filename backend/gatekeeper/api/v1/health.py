"""Liveness check: ``GET /api/v1/health``."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gatekeeper.api.deps import json_response, timing
from gatekeeper.core.extensions import db

bp = Blueprint("health", __name__)


def _database_reachable() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("health.database_unreachable")
        return False
    return True


@bp.get("/health")
@timing
def health():
    """200 with ``status=ok`` when the database answers, else 503 ``degraded``."""
    reachable = _database_reachable()
    return json_response(
        {
            "status": "ok" if reachable else "degraded",
            "db": "ok" if reachable else "fail",
            "version": current_app.config.get("APP_VERSION", "dev"),
        },
        status=200 if reachable else 503,
    )
