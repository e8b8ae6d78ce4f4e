"""Transaction boundaries for the service layer.

A read-write unit of work commits once on a clean exit. The read-only one
never commits and refuses any write attempted through it.
"""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = ["SQLAlchemyReadOnlyUnitOfWork", "SQLAlchemyUnitOfWork", "UnitOfWork"]
