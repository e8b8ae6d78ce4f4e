from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from gatekeeper.services._shared.errors import EmailDispatchError


@dataclass(frozen=True, slots=True)
class OutgoingEmail:
    """Message accepted by a sender."""

    to: str
    subject: str
    html_body: str


class EmailSender(Protocol):
    """
    Port for delivering a rendered HTML email.

    Implementations MUST return only after the transport accepted the
    message, and MUST raise :class:`EmailDispatchError` on any failure
    (including timeouts) so callers can roll back their transaction.
    """

    def send_email(self, to: str, subject: str, html_body: str) -> None: ...


class InMemoryEmailSender(EmailSender):
    """
    Outbox double: records messages instead of sending them.

    Set ``fail`` to ``True`` to make every dispatch raise
    :class:`EmailDispatchError`.
    """

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.outbox: list[OutgoingEmail] = []
        self._lock = threading.Lock()

    def send_email(self, to: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise EmailDispatchError()
        with self._lock:
            self.outbox.append(OutgoingEmail(to=to, subject=subject, html_body=html_body))

    def last_to(self, to: str) -> OutgoingEmail | None:
        """Return the most recent message addressed to ``to``."""
        with self._lock:
            for message in reversed(self.outbox):
                if message.to == to:
                    return message
        return None

    def clear(self) -> None:
        with self._lock:
            self.outbox.clear()
        self.fail = False
