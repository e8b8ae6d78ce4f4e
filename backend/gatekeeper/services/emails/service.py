# gatekeeper/services/emails/service.py
from __future__ import annotations

import logging
from urllib.parse import urlencode

from jinja2 import Environment, PackageLoader, select_autoescape

from gatekeeper.services._shared.ports.email_sender import EmailSender

log = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Confirm Your Email"
PASSWORD_RESET_SUBJECT = "Reset Your Password"
EMAIL_CHANGE_SUBJECT = "Confirm Email Change"

CONFIRM_EMAIL_PATH = "/api/v1/auth/confirm-email"
CONFIRM_PASSWORD_RESET_PATH = "/api/v1/auth/confirm-password-reset"
CONFIRM_EMAIL_CHANGE_PATH = "/api/v1/auth/confirm-email-change"


def default_environment() -> Environment:
    """Jinja2 environment reading ``gatekeeper/templates/emails``."""
    return Environment(
        loader=PackageLoader("gatekeeper", "templates/emails"),
        autoescape=select_autoescape(["html"]),
        keep_trailing_newline=True,
    )


class EmailsService:
    """
    Render account emails and hand them to the sender.

    Dispatch errors propagate unchanged (:class:`EmailDispatchError`) so the
    calling unit of work rolls back.

    :param sender: Transport adapter.
    :param app_url: Public base URL for links embedded in messages.
    :param env: Template environment; defaults to the packaged templates.
    """

    def __init__(
        self,
        *,
        sender: EmailSender,
        app_url: str,
        env: Environment | None = None,
    ) -> None:
        self.sender = sender
        self.app_url = app_url.rstrip("/")
        self.env = env or default_environment()

    def _link(self, path: str, token: str) -> str:
        return f"{self.app_url}{path}?{urlencode({'token': token})}"

    def _send(self, *, to: str, subject: str, template: str, **context: str) -> None:
        html = self.env.get_template(template).render(**context)
        self.sender.send_email(to, subject, html)
        log.info("Account email sent", extra={"event": template.removesuffix(".html")})

    def send_confirmation_email(self, *, to: str, username: str, token: str) -> None:
        self._send(
            to=to,
            subject=CONFIRMATION_SUBJECT,
            template="email_confirmation.html",
            username=username,
            link=self._link(CONFIRM_EMAIL_PATH, token),
        )

    def send_password_reset_email(self, *, to: str, username: str, token: str) -> None:
        self._send(
            to=to,
            subject=PASSWORD_RESET_SUBJECT,
            template="password_reset.html",
            username=username,
            link=self._link(CONFIRM_PASSWORD_RESET_PATH, token),
        )

    def send_email_change_email(
        self, *, to: str, username: str, new_email: str, token: str
    ) -> None:
        """Ask the owner of the current address to approve the move to ``new_email``."""
        self._send(
            to=to,
            subject=EMAIL_CHANGE_SUBJECT,
            template="email_change.html",
            username=username,
            new_email=new_email,
            link=self._link(CONFIRM_EMAIL_CHANGE_PATH, token),
        )
