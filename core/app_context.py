from dataclasses import dataclass
from typing import Optional

from core.config_loader import AppConfig
from core.events import EventBus
from core.update_service import InMemoryUpdateService, UpdateChecker
from notification.channels import NotificationChannel, NotificationChannelFactory
from notification.commands import UpdateCommandHandler
from notification.service import UpdateNotificationService


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    One instance per process; the bus, the update service and the
    notification service are created together and share their lifetime.
    """
    config: AppConfig
    bus: EventBus
    update_service: InMemoryUpdateService
    notification_service: UpdateNotificationService

    @classmethod
    def build(
        cls,
        config: AppConfig,
        checker: Optional[UpdateChecker] = None,
        channel: Optional[NotificationChannel] = None
    ) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            checker: Async callable running real update checks (optional)
            channel: Overrides the channel selected from config

        Returns:
            Fully wired AppContext instance (not yet started)
        """
        bus = EventBus()
        update_service = InMemoryUpdateService(bus=bus, checker=checker)

        notification_service = UpdateNotificationService(
            config=config.notifications,
            channel=channel or cls._build_channel(config),
            update_service=update_service,
            host=config.host,
            update_check=config.update_check,
        )

        return cls(
            config=config,
            bus=bus,
            update_service=update_service,
            notification_service=notification_service,
        )

    @staticmethod
    def _build_channel(config: AppConfig) -> NotificationChannel:
        """Discord webhook when configured, otherwise log-only."""
        discord = config.discord
        if discord.enabled and discord.webhook_url:
            return NotificationChannelFactory.get_channel(
                'discord',
                webhook_url=discord.webhook_url,
                username=discord.username,
            )
        return NotificationChannelFactory.get_channel('log')

    def command_handler(self, authorizer) -> UpdateCommandHandler:
        return UpdateCommandHandler(self.notification_service, authorizer)
