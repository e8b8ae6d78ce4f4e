"""Factory Boy base bound to the transactional test session.

The ``_factories_session`` fixture calls :func:`bind_session` before each test;
factories then flush into that session so rows share the test's SAVEPOINT.
"""

from __future__ import annotations

import factory
from sqlalchemy.orm import Session, scoped_session

_bound: Session | scoped_session | None = None


def bind_session(session: Session | scoped_session | None) -> None:
    global _bound
    _bound = session


def current_session() -> Session | scoped_session:
    if _bound is None:
        raise RuntimeError("No session bound for factories; request the 'session' fixture.")
    return _bound


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Abstract factory persisting with ``flush`` (never ``commit``)."""

    class Meta:
        abstract = True
        # resolved lazily on every create
        sqlalchemy_session_factory = current_session
        sqlalchemy_session_persistence = "flush"
