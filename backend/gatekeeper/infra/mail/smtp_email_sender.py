from __future__ import annotations

import logging
import smtplib
import socket
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from gatekeeper.services._shared.errors import EmailDispatchError
from gatekeeper.services._shared.ports.email_sender import EmailSender

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SmtpEmailSender(EmailSender):
    """
    EmailSender over SMTP.

    A new connection is opened per message and bounded by ``timeout``
    seconds, so a stalled relay fails the dispatch instead of hanging the
    caller's transaction.
    """

    host: str
    port: int
    sender: str
    username: str = ""
    password: str = ""
    use_tls: bool = False
    timeout: float = 30.0

    def _build(self, to: str, subject: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send_email(self, to: str, subject: str, html_body: str) -> None:
        msg = self._build(to, subject, html_body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError, socket.timeout) as exc:
            log.error("SMTP dispatch failed: host=%s port=%s error=%s", self.host, self.port, exc)
            raise EmailDispatchError() from exc
        log.info("Email dispatched", extra={"event": "email_sent"})
