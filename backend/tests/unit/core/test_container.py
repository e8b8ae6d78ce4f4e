import pytest
from gatekeeper.core.container import build_email_sender
from gatekeeper.infra.mail.smtp_email_sender import SmtpEmailSender
from gatekeeper.services._shared.ports import InMemoryEmailSender


def test_memory_backend():
    assert isinstance(build_email_sender({"EMAIL_BACKEND": "memory"}), InMemoryEmailSender)


def test_smtp_backend_reads_settings():
    sender = build_email_sender(
        {
            "EMAIL_BACKEND": "SMTP",
            "SMTP_HOST": "mail.local",
            "SMTP_PORT": "2525",
            "EMAIL_FROM": "no-reply@example.com",
            "SMTP_TIMEOUT": 5,
        }
    )

    assert isinstance(sender, SmtpEmailSender)
    assert sender.port == 2525
    assert sender.timeout == 5.0
    assert sender.use_tls is False


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError, match="EMAIL_BACKEND"):
        build_email_sender({"EMAIL_BACKEND": "carrier-pigeon"})
