"""Shared plumbing for application services."""

from __future__ import annotations

from datetime import datetime

from gatekeeper.models.base import utcnow
from gatekeeper.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


class BaseService:
    """
    Parent of every service.

    Services are constructed once by the container and are stateless between
    calls. They reach the database only through the unit-of-work factories
    below, never through ``db.session`` directly.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Open a transaction that commits when the ``with`` block succeeds."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Open a scope in which writes raise.

        :param isolation: Isolation level; defaults to
            :attr:`DEFAULT_READ_ISOLATION`.
        :param enforce_db_readonly: Also ask the database for ``READ ONLY``.
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    @staticmethod
    def now() -> datetime:
        # single clock per call site; freezegun patches it in tests
        return utcnow()
