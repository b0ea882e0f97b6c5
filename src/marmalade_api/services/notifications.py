"""Outgoing notifications (password reset mail)."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from marmalade_api.config.settings import MarmaladeSettings, get_settings

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to_address: str, from_address: str, subject: str, body: str) -> None:
        ...


class LoggingNotifier:
    """Records messages in the log instead of delivering them."""

    async def send(self, to_address: str, from_address: str, subject: str, body: str) -> None:
        LOGGER.info("Mail to %s from %s: %s", to_address, from_address, subject)


class SmtpNotifier:
    def __init__(self, host: str, port: int = 25) -> None:
        self.host = host
        self.port = port

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port) as client:
            client.send_message(message)

    async def send(self, to_address: str, from_address: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["To"] = to_address
        message["From"] = from_address
        message["Subject"] = subject
        message.set_content(body)
        await asyncio.to_thread(self._deliver, message)
        LOGGER.info("Sent mail to %s via %s:%s", to_address, self.host, self.port)


def build_notifier(settings: Optional[MarmaladeSettings] = None) -> Notifier:
    settings = settings or get_settings()
    if settings.smtp_host:
        return SmtpNotifier(settings.smtp_host, settings.smtp_port)
    return LoggingNotifier()
