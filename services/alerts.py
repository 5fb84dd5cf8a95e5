"""Email notifications for readings above the alert threshold."""

from __future__ import annotations

import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from email.message import EmailMessage
from typing import Optional, Protocol

from models.records import AlertEvent

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class SmtpMailer:
    """Authenticated SMTP transport, one connection per message."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self._password)
            smtp.send_message(message)


class AlertDispatcher:
    """Composes threshold alerts and sends them on a background worker."""

    def __init__(
        self,
        mailer: Mailer,
        recipient: str,
        sender: str = "",
        workers: int = 1,
    ) -> None:
        self.mailer = mailer
        self.recipient = recipient
        self.sender = sender or recipient
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="weather-alert")

    def compose(self, city: str, temperature_celsius: Decimal) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = self.recipient
        message["Subject"] = f"Weather Alert for {city}"
        message.set_content(
            f"The temperature in {city} has exceeded the threshold: {temperature_celsius}°C"
        )
        return message

    def dispatch(self, city: str, temperature_celsius: Decimal) -> bool:
        """Send one alert; failures are logged and reported as ``False``."""
        message = self.compose(city, temperature_celsius)
        log_context = {
            "city": city,
            "temperature": str(temperature_celsius),
            "recipient": self.recipient,
        }
        try:
            self.mailer.send(message)
        except Exception as exc:  # noqa: BLE001 - transport errors vary by mailer
            logger.error(
                "Error sending alert email",
                extra={**log_context, "reason": str(exc)},
            )
            return False
        logger.info("Alert email sent", extra=log_context)
        return True

    def submit(self, event: AlertEvent) -> Optional[Future[bool]]:
        """Queue ``event`` for delivery without waiting on the transport."""
        try:
            return self.executor.submit(self.dispatch, event.city, event.temperature_celsius)
        except RuntimeError:
            logger.warning(
                "Alert dropped after dispatcher shutdown",
                extra={"city": event.city, "temperature": str(event.temperature_celsius)},
            )
            return None

    def shutdown(self) -> None:
        """Deliver queued alerts, then release the worker."""
        self.executor.shutdown(wait=True)
