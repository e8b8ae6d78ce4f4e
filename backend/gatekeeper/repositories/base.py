"""Persistence primitives shared by every repository.

Repositories stage and query rows on the unit of work's session. They never
commit or roll back; the service that opened the unit of work does.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, delete, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from gatekeeper.core.extensions import db

E = TypeVar("E")  # mapped entity


class BaseRepository(Generic[E]):
    """Typed access to one mapped class.

    Subclasses set ``model`` and may narrow the attributes accepted as
    ``field=value`` filters by overriding :meth:`_filterable_fields`. A filter
    outside that set raises instead of being ignored, so a typo can never
    widen a bulk delete.
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        """Injected session, or the Flask-scoped one when none was given."""
        return self._session if self._session is not None else cast(Session, db.session)

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]] | None:
        """Filterable attributes by public name; ``None`` allows any column."""
        return None

    def _where(self, filters: Mapping[str, Any]) -> list[Any]:
        allowed = self._filterable_fields()
        clauses: list[Any] = []
        for key, value in filters.items():
            column = getattr(self.model, key, None) if allowed is None else allowed.get(key)
            if not isinstance(column, InstrumentedAttribute):
                raise ValueError(f"Unknown filter field for {self.model.__name__}: {key!r}")
            clauses.append(column == value)
        return clauses

    def _by_id(self, entity_id: Any) -> Select[Any]:
        return select(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]

    # -------------------------------- reads --------------------------------

    def get(self, entity_id: Any) -> E | None:
        return cast(E | None, self.session.scalars(self._by_id(entity_id)).first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """Like :meth:`get`, holding a row lock until the transaction ends.

        SQLite has no row locks and ignores the clause.
        """
        stmt = self._by_id(entity_id).with_for_update()
        return cast(E | None, self.session.scalars(stmt).first())

    def find_one(self, **filters: Any) -> E | None:
        stmt = select(self.model).where(and_(*self._where(filters)))
        return cast(E | None, self.session.scalars(stmt).first())

    def list(self, **filters: Any) -> list[E]:
        """Rows matching ``filters`` in primary-key order."""
        stmt = select(self.model)
        if filters:
            stmt = stmt.where(and_(*self._where(filters)))
        stmt = stmt.order_by(self.model.id.asc())  # type: ignore[attr-defined]
        return list(self.session.scalars(stmt).all())

    # -------------------------------- writes -------------------------------

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.session.flush()
        return instance

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.session.flush()

    def delete_where(self, *clauses: Any, **filters: Any) -> int:
        """Issue one ``DELETE`` for the matching rows and return the row count.

        Rows are not loaded, and instances already in the session are not
        synchronized.

        :raises ValueError: Neither clauses nor filters were given.
        """
        conditions = [*clauses, *self._where(filters)]
        if not conditions:
            raise ValueError("delete_where requires at least one condition.")
        stmt = (
            delete(self.model)
            .where(and_(*conditions))
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def flush(self) -> None:
        self.session.flush()
