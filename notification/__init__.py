"""
Notification Module

Batches plugin update events into consolidated notifications, runs restart
reminder cycles and delivers everything through a pluggable channel.

Usage:
    from notification import UpdateNotificationService, NotificationChannelFactory

    channel = NotificationChannelFactory.get_channel('discord', webhook_url=url)
    service = UpdateNotificationService(config.notifications, channel, update_service)

    async with service.running(bus):
        await bus.emit('entity-updated', 'PluginA', 'v1.0.0', 'v1.1.0')
"""

from notification.channels import (
    NotificationChannel,
    DiscordWebhookChannel,
    LoggingChannel,
    NotificationChannelFactory,
    DeliveryError,
    RateLimitException,
)

from notification.message_builder import (
    EmbedField,
    MessageSettings,
    NotificationMessage,
    NotificationMessageBuilder,
    time_since,
)

from notification.store import (
    UpdateEvent,
    UpdateEventStore,
)

from notification.timers import (
    TimerToken,
    schedule_timer,
)

from notification.batching import BatchScheduler

from notification.reminders import (
    ReminderSchedule,
    ReminderScheduler,
)

from notification.service import UpdateNotificationService

from notification.commands import (
    UpdateCommandHandler,
    format_status_lines,
    split_message,
)

__all__ = [
    # Channels
    'NotificationChannel',
    'DiscordWebhookChannel',
    'LoggingChannel',
    'NotificationChannelFactory',
    'DeliveryError',
    'RateLimitException',
    # Messages
    'EmbedField',
    'MessageSettings',
    'NotificationMessage',
    'NotificationMessageBuilder',
    'time_since',
    # State and timers
    'UpdateEvent',
    'UpdateEventStore',
    'TimerToken',
    'schedule_timer',
    'BatchScheduler',
    'ReminderSchedule',
    'ReminderScheduler',
    # Service
    'UpdateNotificationService',
    'UpdateCommandHandler',
    'format_status_lines',
    'split_message',
]
