#!/usr/bin/env python3
"""
Notification Channels

Sinks that accept a structured NotificationMessage and deliver it somewhere.
Every channel implements the same async ``deliver`` interface and raises
``DeliveryError`` on failure; callers decide what a failure means.

Usage:
    from notification.channels import NotificationChannelFactory

    channel = NotificationChannelFactory.get_channel('discord', webhook_url=url)
    await channel.deliver(message)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
import asyncio
import logging
import os
import urllib.parse

import requests

from notification.message_builder import NotificationMessage, NotificationMessageBuilder

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when a channel could not deliver a message."""
    pass


class RateLimitException(DeliveryError):
    """Raised when the remote end rejected the message with a rate limit."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


def _is_dry_run_mode() -> bool:
    """Check if notification channels should run in dry-run (log-only) mode."""
    return os.environ.get('NOTIFICATION_DRY_RUN', '').lower() in ('true', '1', 'yes')


def _mask_webhook_url(url: str) -> str:
    """Strip the webhook token for safe logging."""
    parsed = urllib.parse.urlparse(url)
    return f"{parsed.scheme}://{parsed.hostname}/…"


class NotificationChannel(ABC):
    """
    Abstract base class for all notification channels.

    Any channel can be handed to the notification service interchangeably.
    """

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return the channel type identifier."""
        pass

    @abstractmethod
    async def deliver(self, message: NotificationMessage) -> None:
        """
        Deliver one message.

        Raises:
            DeliveryError: If the message could not be delivered
        """
        pass

    def validate_config(self) -> bool:
        return True


class DiscordWebhookChannel(NotificationChannel):
    """Discord notification channel via webhook."""

    def __init__(self, webhook_url: Optional[str] = None, username: str = "UpdateManager", timeout: int = 30):
        self.webhook_url = webhook_url or os.environ.get('DISCORD_WEBHOOK_URL', '')
        self.username = username
        self.timeout = timeout

    @property
    def channel_type(self) -> str:
        return 'discord'

    def validate_config(self) -> bool:
        parsed = urllib.parse.urlparse(self.webhook_url or '')
        return parsed.scheme in ('http', 'https') and bool(parsed.hostname)

    def build_payloads(self, message: NotificationMessage) -> List[Dict[str, Any]]:
        payloads = NotificationMessageBuilder.to_discord_payloads(message)
        for payload in payloads:
            payload['username'] = self.username
        return payloads

    async def deliver(self, message: NotificationMessage) -> None:
        if not self.validate_config():
            raise DeliveryError("Discord webhook not configured - DISCORD_WEBHOOK_URL not set")

        payloads = self.build_payloads(message)
        # Posted in order; a failure stops the rest and raises
        for payload in payloads:
            await asyncio.to_thread(self._post, payload)
        logger.info(f"Discord message sent ({message.kind}, {len(payloads)} post(s))")

    def _post(self, payload: Dict[str, Any]) -> None:
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"Discord request to {_mask_webhook_url(self.webhook_url)} failed: {e}") from e

        if response.status_code == 429:
            retry_after = None
            try:
                retry_after = float(response.json().get('retry_after'))
            except (ValueError, TypeError, AttributeError):
                pass
            raise RateLimitException("Discord rate limit hit", retry_after=retry_after)

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise DeliveryError(f"Discord API error: {response.status_code} - {response.text}") from e


class LoggingChannel(NotificationChannel):
    """Writes messages to the log instead of sending them (dry-run mode)."""

    def __init__(self):
        self.delivered: List[NotificationMessage] = []

    @property
    def channel_type(self) -> str:
        return 'log'

    async def deliver(self, message: NotificationMessage) -> None:
        self.delivered.append(message)
        logger.info(f"[DRY_RUN] {message.kind}: {message.title} - {message.description}")


class NotificationChannelFactory:
    """
    Factory for creating notification channels.

    New channel types can be registered without modifying the factory.
    """

    _channels: Dict[str, type] = {
        'discord': DiscordWebhookChannel,
        'log': LoggingChannel,
    }

    @classmethod
    def get_channel(cls, channel_type: str, **kwargs: Any) -> NotificationChannel:
        """
        Get a notification channel instance by type.

        Raises:
            ValueError: If channel type is not registered
        """
        if _is_dry_run_mode():
            logger.info(f"NOTIFICATION_DRY_RUN set, using log channel instead of {channel_type}")
            return LoggingChannel()

        channel_class = cls._channels.get(channel_type.lower())
        if not channel_class:
            raise ValueError(f"Unknown channel type: {channel_type}. "
                             f"Available: {', '.join(cls._channels.keys())}")

        return channel_class(**kwargs)

    @classmethod
    def register_channel(cls, channel_type: str, channel_class: type):
        if not issubclass(channel_class, NotificationChannel):
            raise ValueError("Channel class must extend NotificationChannel")

        cls._channels[channel_type.lower()] = channel_class
        logger.info(f"Registered new channel type: {channel_type}")

    @classmethod
    def list_channels(cls) -> list:
        return list(cls._channels.keys())
