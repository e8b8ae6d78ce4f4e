"""
gatekeeper.services._shared.ports
=================================

Collection of *ports* (hexagonal interfaces) the services depend on.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`, the abstraction for signing and
    decoding access tokens.

- :mod:`email_sender`:
    Defines :class:`~.EmailSender` plus the :class:`~.InMemoryEmailSender`
    outbox used in tests.

Design Notes
------------
Concrete adapters (Flask-JWT-Extended, SMTP) live under ``gatekeeper.infra``
and are wired in ``gatekeeper.core.container``.
"""

from __future__ import annotations

from .email_sender import EmailSender, InMemoryEmailSender, OutgoingEmail
from .token_provider import TokenProvider

__all__ = [
    "EmailSender",
    "InMemoryEmailSender",
    "OutgoingEmail",
    "TokenProvider",
]
