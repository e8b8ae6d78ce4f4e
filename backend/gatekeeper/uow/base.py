"""
The unit-of-work interface services program against.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gatekeeper.repositories import (
        RefreshTokenRepository,
        RoleRepository,
        UserEmailHistoryRepository,
        UserRepository,
        UserRoleRepository,
    )


class UnitOfWork(ABC):
    """
    One transaction plus the repositories that write into it.

    Used as a context manager; what happens on exit (commit, rollback, or
    neither) is up to the implementation. Service methods that take a
    caller's unit of work (``*_in_transaction``) only stage writes on it and
    leave the outcome to whoever opened the ``with`` block.
    """

    users: UserRepository
    email_history: UserEmailHistoryRepository
    roles: RoleRepository
    user_roles: UserRoleRepository
    refresh_tokens: RefreshTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork:
        raise NotImplementedError

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None:
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
