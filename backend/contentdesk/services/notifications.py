"""Newsletter delivery behind a sink abstraction.

Only a logging sink ships; a real transport plugs in by implementing
``NotificationSink.send``.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from contentdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _redact_email(email: str) -> str:
    """Redact email address for safe logging (e.g., u***@example.com)."""
    try:
        local, domain = email.split("@")
        return f"{local[0]}***@{domain}" if local else f"***@{domain}"
    except (ValueError, IndexError):
        return "***"


@dataclass(frozen=True)
class DeliveryReceipt:
    accepted: int
    subject: str
    sent_at: datetime


class NotificationSink(ABC):
    """Abstract base class for newsletter transports."""

    @abstractmethod
    async def send(self, subject: str, body: str, recipients: Sequence[str]) -> DeliveryReceipt:
        """Deliver one message to every recipient."""


class LoggingNotificationSink(NotificationSink):
    """Logs the newsletter instead of delivering it."""

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    async def send(self, subject: str, body: str, recipients: Sequence[str]) -> DeliveryReceipt:
        logger.info(f"Newsletter would be sent to {len(recipients)} subscribers, subject='{subject}'")
        logger.debug(
            f"Newsletter body ({len(body)} chars) for: "
            f"{', '.join(_redact_email(r) for r in recipients) or 'nobody'}"
        )
        if self.delay_seconds > 0:
            # Stand-in for transport latency
            await asyncio.sleep(self.delay_seconds)
        return DeliveryReceipt(accepted=len(recipients), subject=subject, sent_at=utcnow())
