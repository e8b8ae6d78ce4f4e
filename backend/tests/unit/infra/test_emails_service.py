"""Rendering of account emails."""

import pytest
from gatekeeper.services._shared.errors import EmailDispatchError
from gatekeeper.services._shared.ports import InMemoryEmailSender
from gatekeeper.services.emails.service import EmailsService


@pytest.fixture()
def sender():
    return InMemoryEmailSender()


@pytest.fixture()
def emails(sender):
    return EmailsService(sender=sender, app_url="https://accounts.example.com/")


def test_confirmation_link_points_at_confirm_endpoint(emails, sender):
    emails.send_confirmation_email(to="a@example.com", username="alice", token="abc.def+1")

    message = sender.last_to("a@example.com")
    assert message.subject == "Confirm Your Email"
    assert "Welcome, alice!" in message.html_body
    assert (
        "https://accounts.example.com/api/v1/auth/confirm-email?token=abc.def%2B1"
        in message.html_body
    )


def test_password_reset_link(emails, sender):
    emails.send_password_reset_email(to="a@example.com", username="alice", token="t1")

    message = sender.last_to("a@example.com")
    assert message.subject == "Reset Your Password"
    assert "/api/v1/auth/confirm-password-reset?token=t1" in message.html_body


def test_email_change_goes_to_current_address(emails, sender):
    emails.send_email_change_email(
        to="old@example.com", username="alice", new_email="new@example.com", token="t2"
    )

    message = sender.last_to("old@example.com")
    assert message.subject == "Confirm Email Change"
    assert "new@example.com" in message.html_body
    assert "/api/v1/auth/confirm-email-change?token=t2" in message.html_body
    assert sender.last_to("new@example.com") is None


def test_usernames_are_escaped(emails, sender):
    emails.send_confirmation_email(to="a@example.com", username="<b>x</b>", token="t")

    assert "&lt;b&gt;x&lt;/b&gt;" in sender.last_to("a@example.com").html_body


def test_dispatch_errors_propagate(emails, sender):
    sender.fail = True

    with pytest.raises(EmailDispatchError):
        emails.send_password_reset_email(to="a@example.com", username="alice", token="t")
