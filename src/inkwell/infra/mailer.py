# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from inkwell.core.config import Settings

logger = logging.getLogger(__name__)


class MailError(Exception):
    pass


class Mailer(ABC):
    @abstractmethod
    def send(self, *, to: str, subject: str, html: str) -> None:
        """Deliver one HTML message. Raises ``MailError`` on failure."""


class LogMailer(Mailer):
    """Development mailer: writes the message to the log instead of sending it."""

    def send(self, *, to: str, subject: str, html: str) -> None:
        logger.info("Mail (not sent) to=%s subject=%r\n%s", to, subject, html)


class SmtpMailer(Mailer):
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        starttls: bool = True,
        sender: str,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.sender = sender
        self.timeout = timeout

    def send(self, *, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"SMTP delivery to {self.host}:{self.port} failed") from e


def mailer_from_settings(settings: Settings) -> Mailer:
    if not settings.smtp_host:
        return LogMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        starttls=settings.smtp_starttls,
        sender=settings.mail_from,
    )
