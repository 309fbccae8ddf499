"""Notification dispatch for due reminders.

Transports (email, push, SMS) are external collaborators behind the
NotificationDispatcher interface. The default LoggingDispatcher only logs,
so the scheduling layer can run without any provider configured.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from idmonitor.models.reminder_config import NotificationChannel
from idmonitor.services.errors import DispatchFailure

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Interface to the notification transports.

    Each method returns True on success. Returning False or raising are both
    treated as a failure of that channel only.
    """

    @abstractmethod
    def send_email(self, address: str, message: str) -> bool:
        pass

    @abstractmethod
    def send_push(self, user_id: UUID, message: str) -> bool:
        pass

    @abstractmethod
    def send_sms(self, user_id: UUID, message: str) -> bool:
        pass


class LoggingDispatcher(NotificationDispatcher):
    """Dispatcher that simulates delivery by logging."""

    def send_email(self, address: str, message: str) -> bool:
        logger.info("[SIMULATED] Email notification", extra={"recipient": address})
        return True

    def send_push(self, user_id: UUID, message: str) -> bool:
        logger.info("[SIMULATED] Push notification", extra={"user_id": str(user_id)})
        return True

    def send_sms(self, user_id: UUID, message: str) -> bool:
        logger.info("[SIMULATED] SMS notification", extra={"user_id": str(user_id)})
        return True


@dataclass
class ChannelOutcome:
    """Result of dispatching one reminder over one channel."""

    channel: NotificationChannel
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "channel": self.channel.value,
            "success": self.success,
            "error": self.error,
        }


def _send(
    dispatcher: NotificationDispatcher,
    channel: NotificationChannel,
    user_id: UUID,
    email: str | None,
    message: str,
) -> bool:
    if channel == NotificationChannel.EMAIL:
        if not email:
            raise DispatchFailure(channel.value, "user has no email address")
        return dispatcher.send_email(email, message)
    if channel == NotificationChannel.PUSH:
        return dispatcher.send_push(user_id, message)
    return dispatcher.send_sms(user_id, message)


def dispatch_to_channels(
    dispatcher: NotificationDispatcher,
    channels: list[NotificationChannel],
    user_id: UUID,
    email: str | None,
    message: str,
) -> list[ChannelOutcome]:
    """Send a message over every channel concurrently and collect all outcomes.

    A failing channel never prevents the others from being attempted.

    Returns:
        list[ChannelOutcome]: One outcome per channel, in channel order
    """
    if not channels:
        return []

    with ThreadPoolExecutor(max_workers=len(channels)) as pool:
        futures = [
            (channel, pool.submit(_send, dispatcher, channel, user_id, email, message))
            for channel in channels
        ]

        outcomes = []
        for channel, future in futures:
            try:
                if future.result():
                    outcomes.append(ChannelOutcome(channel=channel, success=True))
                else:
                    outcomes.append(
                        ChannelOutcome(
                            channel=channel,
                            success=False,
                            error="transport reported failure",
                        )
                    )
            except Exception as e:
                failure = e if isinstance(e, DispatchFailure) else DispatchFailure(
                    channel.value, str(e)
                )
                logger.warning(
                    f"Notification dispatch failed on {channel.value}",
                    extra={"user_id": str(user_id), "error": str(failure)},
                    exc_info=True,
                )
                outcomes.append(
                    ChannelOutcome(channel=channel, success=False, error=str(failure)[:500])
                )

    return outcomes
