"""
Outbound email through an SMTP relay, with an in-memory outbox for local runs and tests.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional, Protocol

from config import get_settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> bool:
        ...


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str


@dataclass
class InMemoryMailer:
    """Keeps sent emails in `outbox` instead of delivering them."""

    outbox: List[OutgoingEmail] = field(default_factory=list)

    def send(self, to: str, subject: str, body: str) -> bool:
        self.outbox.append(OutgoingEmail(to=to, subject=subject, body=body))
        logger.info("Queued email to %s in memory: %s", to, subject)
        return True

    def reset(self) -> None:
        self.outbox.clear()


@dataclass
class SmtpMailer:
    host: str
    port: int
    sender: str
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    timeout: float = 10.0

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        smtp.starttls(context=ssl.create_default_context())
        return smtp

    def send(self, to: str, subject: str, body: str) -> bool:
        """Deliver a plain-text email. Failures are logged, not raised."""
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with self._connect() as smtp:
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Error sending email to %s", to)
            return False
        logger.info("Email sent to %s: %s", to, subject)
        return True


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer

    settings = get_settings()
    if settings.smtp_host:
        _mailer = SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_ssl=settings.smtp_use_ssl,
        )
    else:
        logger.warning("SMTP_HOST not set; emails are kept in memory")
        _mailer = InMemoryMailer()
    return _mailer
