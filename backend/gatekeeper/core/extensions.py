"""Extension singletons shared by the whole package.

They are created unbound at import time and attached to an app by
:func:`init_app`, so models and repositories can import ``db`` freely.
"""

from __future__ import annotations

from datetime import timedelta

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Constraint names are stable across SQLite batch migrations and PostgreSQL.
# Multi-column unique constraints (``user_roles``) are named explicitly.
NAMING_CONVENTION = {
    "pk": "pk_%(table_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
}

db: SQLAlchemy = SQLAlchemy(
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
    session_options={"autoflush": False},
)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()


def _configure_jwt(app: Flask) -> None:
    """Derive Flask-JWT-Extended settings from the access-token keys."""
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(
        seconds=int(app.config.get("ACCESS_TOKEN_EXPIRES_IN", 3600))
    )
    app.config.setdefault("JWT_TOKEN_LOCATION", ["headers"])
    app.config.setdefault("JWT_ALGORITHM", "HS256")


def init_app(app: Flask) -> None:
    """Bind ``db``, ``migrate`` and ``jwt`` to ``app``.

    Models are imported first so the metadata Alembic autogenerates from is
    complete.
    """
    from gatekeeper import models  # noqa: F401

    db.init_app(app)
    migrate.init_app(app, db)
    _configure_jwt(app)
    jwt.init_app(app)
