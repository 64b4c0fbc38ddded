#!/usr/bin/env python3
"""
Update Notification Service

Ties the event store, the debounced batch window and the reminder cycles
together and delivers the resulting messages through a NotificationChannel.

Flow:
    entity-updated -> store upsert -> batch window re-armed
                   -> (reminders enabled) reminder cycle restarted
    batch fires    -> one single/batch message for all un-notified events
                   -> events marked notified
    restart-required -> immediate restart message unless already announced

All state lives on one event loop; handlers run to completion one at a time,
so nothing here is locked.

Usage:
    service = UpdateNotificationService(config.notifications, channel, update_service)
    async with service.running(bus):
        ...
"""

import logging
from contextlib import ExitStack, asynccontextmanager
from typing import AsyncIterator, List, Optional

from core.config_loader import HostConfig, NotificationConfig, UpdateCheckConfig
from core.events import ENTITY_UPDATED, RESTART_REQUIRED, SELF_UPDATE_AVAILABLE, EventBus
from core.intervals import parse_check_interval, parse_reminder_interval
from core.update_service import UpdateCheckService, UpdateCheckSettings, UpdateStatus
from notification.batching import BatchScheduler
from notification.channels import NotificationChannel, RateLimitException
from notification.message_builder import MessageSettings, NotificationMessage, NotificationMessageBuilder
from notification.reminders import ReminderScheduler
from notification.store import UpdateEvent, UpdateEventStore

logger = logging.getLogger(__name__)


class UpdateNotificationService:
    """
    Notification batching and reminder engine.

    Args:
        config: Notification settings
        channel: Sink every message is delivered to
        update_service: Update checker used for status and manual checks
        host: Identity of the hosting process (self-update alerts)
        update_check: Settings forwarded to the update checker on start
    """

    def __init__(
        self,
        config: NotificationConfig,
        channel: NotificationChannel,
        update_service: Optional[UpdateCheckService] = None,
        host: Optional[HostConfig] = None,
        update_check: Optional[UpdateCheckConfig] = None
    ):
        self.config = config
        self.channel = channel
        self.update_service = update_service
        self.host = host or HostConfig()
        self.update_check = update_check or UpdateCheckConfig()

        self.builder = NotificationMessageBuilder(MessageSettings(
            update_color=config.update_color,
            restart_color=config.restart_color,
            admin_role_id=config.admin_role_id,
            host_label=config.host_label,
            footer_text=config.footer_text,
            host_name=self.host.name,
            host_version=self.host.version,
            repository_url=self.host.repository_url,
        ))

        self.store = UpdateEventStore()
        self.batch = BatchScheduler(self.flush_batch, delay_ms=config.batch_delay_ms)
        self.reminders = ReminderScheduler(self._send_reminder)

        self._subscriptions: Optional[ExitStack] = None

    # ============ Lifecycle ============

    @property
    def started(self) -> bool:
        return self._subscriptions is not None

    def start(self, bus: EventBus) -> None:
        """Subscribe to the bus and hand our settings to the update checker."""
        if self._subscriptions is not None:
            raise RuntimeError("Notification service already started")

        stack = ExitStack()
        stack.enter_context(bus.subscribe(ENTITY_UPDATED, self.on_entity_updated))
        stack.enter_context(bus.subscribe(RESTART_REQUIRED, self.on_restart_required))
        stack.enter_context(bus.subscribe(SELF_UPDATE_AVAILABLE, self.on_self_update_available))
        self._subscriptions = stack

        if self.update_service is not None:
            self.update_service.configure(UpdateCheckSettings(
                enabled=True,
                check_interval_ms=parse_check_interval(self.update_check.update_check_interval),
                initial_delay_ms=self.update_check.initial_delay_ms,
                batch_delay_ms=self.config.batch_delay_ms,
                stagger_delay_ms=self.update_check.stagger_delay_ms,
            ))
            self.update_service.register_source(
                self.host.name,
                self.host.version,
                repository_owner=self.host.repository_owner,
                repository_name=self.host.repository_name,
                is_host=True,
            )

        logger.info(
            f"Update notification service started "
            f"(checks every {self.update_check.update_check_interval}, batch delay {self.config.batch_delay_ms}ms)"
        )

    async def stop(self) -> None:
        """
        Unsubscribe and cancel the batch timer and every reminder timer.

        A flush or reminder already being delivered is cancelled as well and
        awaited, so nothing from this service runs after stop returns.
        """
        if self._subscriptions is not None:
            self._subscriptions.close()
            self._subscriptions = None
        await self.batch.shutdown()
        await self.reminders.shutdown()
        if self.update_service is not None:
            self.update_service.stop()
        logger.info("Update notification service stopped")

    @asynccontextmanager
    async def running(self, bus: EventBus) -> AsyncIterator["UpdateNotificationService"]:
        self.start(bus)
        try:
            yield self
        finally:
            await self.stop()

    # ============ Event intake ============

    def record_update(
        self,
        entity_id: str,
        previous_version: str,
        new_version: str,
        backup_path: Optional[str] = None
    ) -> UpdateEvent:
        """Store the update, re-arm the batch window and restart reminders."""
        event = self.store.upsert(entity_id, previous_version, new_version, backup_path)
        self.batch.arm(self.config.batch_delay_ms)

        reminder_settings = self.config.reminder_settings
        if reminder_settings.enabled:
            self.reminders.start(
                entity_id,
                parse_reminder_interval(reminder_settings.interval),
                reminder_settings.max_reminders,
            )
        return event

    def on_entity_updated(
        self,
        entity_id: str,
        previous_version: str,
        new_version: str,
        backup_path: Optional[str] = None
    ) -> Optional[UpdateEvent]:
        if not self.config.enable_update_notifications:
            return None
        return self.record_update(entity_id, previous_version, new_version, backup_path)

    async def on_restart_required(self, entity_id: str) -> bool:
        """
        Send a restart notice unless the batch already announced this update.

        Only the entity's latest event is consulted.

        Returns:
            True if a restart message was sent
        """
        if not self.config.enable_restart_reminders:
            return False

        event = self.store.get(entity_id)
        if event is not None and event.notified:
            logger.info(f"Restart for {entity_id} already announced, skipping")
            return False

        return await self.deliver(self.builder.restart_required(entity_id))

    async def on_self_update_available(self, latest_version: str) -> bool:
        logger.warning(f"{self.host.name} has an update available: {self.host.version} -> {latest_version}")
        return await self.deliver(self.builder.self_update_available(latest_version))

    # ============ Delivery ============

    async def deliver(self, message: NotificationMessage) -> bool:
        """
        Send one message. Failures are logged and never raised or retried.

        Returns:
            True if the channel accepted the message
        """
        try:
            await self.channel.deliver(message)
            return True
        except RateLimitException as e:
            logger.error(f"Rate limited while sending {message.kind} message (retry after {e.retry_after}s), dropping it")
        except Exception as e:
            logger.error(f"Failed to send {message.kind} message: {e}")
        return False

    async def flush_batch(self) -> None:
        """Announce every un-notified update as one message."""
        pending = self.store.unnotified_updates()
        if not pending:
            return

        if len(pending) == 1:
            message = self.builder.single_update(pending[0])
        else:
            message = self.builder.batch_update(pending)

        await self.deliver(message)

        # Marked after the attempt whether or not it was delivered. An event
        # replaced while the message was in flight stays un-notified.
        self.store.mark_notified(
            event.entity_id for event in pending if self.store.get(event.entity_id) is event
        )
        logger.info(f"Announced {len(pending)} update(s)")

    async def _send_reminder(self, entity_id: str, count: int, max_reminders: int) -> None:
        await self.deliver(self.builder.reminder(entity_id, count, max_reminders))

    # ============ Queries and manual triggers ============

    def get_status(self) -> UpdateStatus:
        """Current update-checker state. Does not read the event store."""
        if self.update_service is None:
            return UpdateStatus()
        return self.update_service.get_update_status()

    def list_pending(self) -> List[UpdateEvent]:
        """Every recorded update, oldest first."""
        return sorted(self.store.pending_updates(), key=lambda event: event.occurred_at)

    async def announce_pending(self) -> bool:
        """Deliver the list of updates still waiting for a restart."""
        pending = self.list_pending()
        if not pending:
            return False
        return await self.deliver(self.builder.pending_updates(pending))

    async def announce_status(self) -> bool:
        """Deliver the update-checker status report to the channel."""
        return await self.deliver(self.builder.status_report(self.get_status()))

    async def trigger_check_all(self) -> None:
        if self.update_service is None:
            raise RuntimeError("No update service configured")
        logger.info("🔄 Manually checking for updates...")
        await self.update_service.check_all()

    async def trigger_check_one(self, entity_id: str) -> None:
        if self.update_service is None:
            raise RuntimeError("No update service configured")
        logger.info(f"🔄 Manually checking {entity_id} for updates...")
        await self.update_service.check_one(entity_id)
