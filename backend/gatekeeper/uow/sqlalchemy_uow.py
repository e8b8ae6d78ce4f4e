"""
Units of work over the Flask-SQLAlchemy scoped session.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from gatekeeper.core.extensions import db
from gatekeeper.repositories import (
    RefreshTokenRepository,
    RoleRepository,
    UserEmailHistoryRepository,
    UserRepository,
    UserRoleRepository,
)
from gatekeeper.services._shared.errors import InternalError
from gatekeeper.uow.base import UnitOfWork

log = logging.getLogger(__name__)

# Leading SQL keywords refused inside a read-only scope.
WRITE_KEYWORDS = frozenset(
    {
        "insert",
        "update",
        "delete",
        "merge",
        "upsert",
        "replace",
        "create",
        "alter",
        "drop",
        "truncate",
        "grant",
        "revoke",
    }
)


class SQLAlchemyRepositoryContainer:
    """Every repository bound to one session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=session)
        self.email_history = UserEmailHistoryRepository(session=session)
        self.roles = RoleRepository(session=session)
        self.user_roles = UserRoleRepository(session=session)
        self.refresh_tokens = RefreshTokenRepository(session=session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write unit of work.

    Leaving the block cleanly commits; leaving it with an exception rolls back
    every staged write and re-raises. A failing commit is rolled back too and
    surfaces as :class:`InternalError`, except ``IntegrityError`` which is
    re-raised so callers can name the violated field.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # the session autobegins on first use
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        self.commit()

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            self.rollback()
            raise
        except SQLAlchemyError as exc:
            self.rollback()
            log.error("Commit failed", exc_info=True)
            raise InternalError("errors.internal") from exc

    def rollback(self) -> None:
        self.session.rollback()


class _WriteGuard:
    """
    Session and connection listeners that turn writes into ``RuntimeError``.

    ``before_flush`` catches ORM changes; ``before_cursor_execute`` catches
    textual or Core DML issued on the same connection.
    """

    def __init__(self, session: Session, connection: Connection) -> None:
        self.session = session
        self.connection = connection
        self.active = False

        # one function object per guard so nested scopes detach only their own
        def _on_flush(session, flush_context, instances) -> None:
            if session.new or session.dirty or session.deleted:
                raise RuntimeError(
                    "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
                )

        def _on_execute(conn, cursor, statement, parameters, context, executemany) -> None:
            keyword = statement.lstrip().split(None, 1)[0].lower() if statement else ""
            if keyword in WRITE_KEYWORDS:
                raise RuntimeError(
                    f"Read-only UnitOfWork: SQL statement blocked: {keyword.upper()}"
                )

        self._on_flush = _on_flush
        self._on_execute = _on_execute

    def install(self) -> None:
        if self.active:
            return
        event.listen(self.session, "before_flush", self._on_flush)
        event.listen(self.connection, "before_cursor_execute", self._on_execute)
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        with suppress(InvalidRequestError):
            event.remove(self.session, "before_flush", self._on_flush)
        with suppress(InvalidRequestError):
            event.remove(self.connection, "before_cursor_execute", self._on_execute)
        self.active = False


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only unit of work.

    When it can start its own transaction it also asks PostgreSQL or MySQL for
    ``READ ONLY`` and the requested isolation level, and always rolls back on
    exit. When the session is already inside a transaction (an outer unit of
    work, or the test fixture's SAVEPOINT) it attaches to it: the write guards
    still apply, but the outer transaction is left untouched.

    Parameters
    ----------
    isolation_level:
        Isolation level requested when owning the transaction, or ``None`` for
        the connection default.
    enforce_db_readonly:
        Issue ``SET TRANSACTION READ ONLY`` where supported.

    Notes
    -----
    SQLite has no ``SET TRANSACTION``; only the guards apply there.
    """

    SET_TRANSACTION_DIALECTS = frozenset({"postgresql", "mysql", "mariadb"})

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._owned: SessionTransaction | None = None
        self._guard: _WriteGuard | None = None

    def _begin_if_idle(self) -> SessionTransaction | None:
        try:
            txn = self.session.begin()
        except InvalidRequestError:
            return None
        txn.__enter__()
        return txn

    def _harden(self, connection: Connection) -> None:
        if connection.dialect.name not in self.SET_TRANSACTION_DIALECTS:
            return
        directives = []
        if self.isolation_level:
            directives.append(f"ISOLATION LEVEL {self.isolation_level.upper().strip()}")
        if self.enforce_db_readonly:
            directives.append("READ ONLY")
        try:
            for directive in directives:
                self.session.execute(text(f"SET TRANSACTION {directive}"))
        except SQLAlchemyError as exc:
            log.warning("SET TRANSACTION failed (%s); relying on write guards only.", exc)

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owned = self._begin_if_idle()
        connection = self.session.connection()
        if self._owned is not None:
            self._harden(connection)
        self._guard = _WriteGuard(self.session, connection)
        self._guard.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        owned, self._owned = self._owned, None
        try:
            if owned is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                owned.__exit__(exc_type, exc, tb)
        finally:
            if self._guard is not None:
                self._guard.remove()
                self._guard = None

    def commit(self) -> None:
        """
        :raises RuntimeError: Always; a read-only scope never commits.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
