#!/usr/bin/env python3
"""
Tests for the update notification service.

Tests cover:
1. Batching of update events into single or batch messages
2. Restart notices and their suppression after a batch announcement
3. Reminder cycles started by updates
4. Lifecycle (subscriptions and timers released on stop)
5. Queries and manual triggers

Usage:
    python -m pytest tests/unit/notification/test_service.py -v
"""

import asyncio
import unittest
from unittest.mock import patch

import pytest

from core.config_loader import HostConfig, NotificationConfig, ReminderSettings
from core.events import ENTITY_UPDATED, RESTART_REQUIRED, SELF_UPDATE_AVAILABLE, EventBus
from core.update_service import InMemoryUpdateService
from notification.service import UpdateNotificationService
from tests import wait_for_timers
from tests.mocks.update_service_mocks import FailingChannel, RecordingChannel, RecordingChecker, field_map

BATCH_DELAY_MS = 30


def make_config(**overrides):
    values = {"batch_delay_ms": BATCH_DELAY_MS}
    values.update(overrides)
    return NotificationConfig(**values)


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):

    config_overrides = {}

    async def asyncSetUp(self):
        self.bus = EventBus()
        self.channel = RecordingChannel()
        self.update_service = InMemoryUpdateService(bus=self.bus, checker=RecordingChecker())
        self.service = UpdateNotificationService(
            make_config(**self.config_overrides),
            self.channel,
            update_service=self.update_service,
            host=HostConfig(name="UpdateManager", version="v1.0.0"),
        )
        self.service.start(self.bus)

    async def asyncTearDown(self):
        await self.service.stop()

    async def updated(self, entity_id, previous="1.0.0", new="1.1.0", backup_path="/backups"):
        await self.bus.emit(ENTITY_UPDATED, entity_id, previous, new, backup_path)


@pytest.mark.timing
class TestBatching(ServiceTestCase):
    """Update events are coalesced by the debounce window."""

    async def test_close_updates_become_one_batch_message(self):
        await self.updated("A")
        await asyncio.sleep(0.01)
        await self.updated("B", "2.0.0", "2.1.0")

        await wait_for_timers()

        self.assertEqual(self.channel.kinds(), ["batch_update"])
        fields = field_map(self.channel.messages[0])
        self.assertEqual(fields["A"], "1.0.0 → 1.1.0")
        self.assertEqual(fields["B"], "2.0.0 → 2.1.0")
        self.assertEqual(self.service.store.unnotified_updates(), [])

    async def test_spaced_updates_become_single_messages(self):
        await self.updated("A")
        await wait_for_timers()
        await self.updated("B")
        await wait_for_timers()

        self.assertEqual(self.channel.kinds(), ["single_update", "single_update"])
        self.assertEqual(field_map(self.channel.messages[0])["Plugin"], "A")
        self.assertEqual(field_map(self.channel.messages[1])["Plugin"], "B")

    async def test_repeated_update_within_window_keeps_latest_versions(self):
        await self.updated("A", "1.0.0", "1.1.0")
        await self.updated("A", "1.1.0", "1.2.0")

        await wait_for_timers()

        self.assertEqual(self.channel.kinds(), ["single_update"])
        self.assertEqual(field_map(self.channel.messages[0])["Version"], "1.1.0 → 1.2.0")

    async def test_update_after_announcement_is_announced_again(self):
        await self.updated("A", "1.0.0", "1.1.0")
        await wait_for_timers()
        await self.updated("A", "1.1.0", "1.2.0")

        self.assertFalse(self.service.store.get("A").notified)
        await wait_for_timers()

        self.assertEqual(len(self.channel.of_kind("single_update")), 2)
        self.assertEqual(field_map(self.channel.messages[-1])["Version"], "1.1.0 → 1.2.0")

    async def test_update_notifications_disabled(self):
        await self.service.stop()
        self.service = UpdateNotificationService(
            make_config(enable_update_notifications=False), self.channel
        )
        self.service.start(self.bus)

        await self.updated("A")
        await wait_for_timers()

        self.assertEqual(self.channel.messages, [])
        self.assertNotIn("A", self.service.store)

    async def test_failed_delivery_still_marks_notified(self):
        channel = FailingChannel()
        service = UpdateNotificationService(make_config(), channel)
        service.record_update("A", "1.0.0", "1.1.0")

        with self.assertLogs("notification.service", level="ERROR"):
            await wait_for_timers()

        self.assertEqual(channel.kinds(), ["single_update"])
        self.assertTrue(service.store.get("A").notified)
        await service.stop()

    async def test_event_replaced_during_delivery_stays_unnotified(self):
        gate = asyncio.Event()

        class GatedChannel(RecordingChannel):
            async def deliver(self, message):
                await gate.wait()
                await super().deliver(message)

        channel = GatedChannel()
        service = UpdateNotificationService(make_config(), channel)
        service.record_update("A", "1.0.0", "1.1.0")
        await wait_for_timers(0.06)

        # first flush is blocked in delivery
        service.record_update("A", "1.1.0", "1.2.0")
        gate.set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        self.assertFalse(service.store.get("A").notified)
        await wait_for_timers()

        self.assertEqual(len(channel.messages), 2)
        self.assertEqual(field_map(channel.messages[-1])["Version"], "1.1.0 → 1.2.0")
        self.assertTrue(service.store.get("A").notified)
        await service.stop()


@pytest.mark.timing
class TestRestartRequired(ServiceTestCase):

    async def test_restart_before_announcement_is_sent(self):
        await self.updated("A")
        await self.bus.emit(RESTART_REQUIRED, "A")

        self.assertEqual(self.channel.kinds(), ["restart_required"])
        self.assertEqual(self.channel.messages[0].color, 0xFFA500)

    async def test_restart_after_announcement_is_suppressed(self):
        await self.updated("A")
        await wait_for_timers()

        sent = await self.service.on_restart_required("A")

        self.assertFalse(sent)
        self.assertEqual(self.channel.kinds(), ["single_update"])

    async def test_restart_for_unknown_entity_is_sent(self):
        self.assertTrue(await self.service.on_restart_required("Ghost"))
        self.assertEqual(field_map(self.channel.messages[0])["Plugin"], "Ghost")

    async def test_restart_disabled(self):
        self.service.config.enable_restart_reminders = False
        self.assertFalse(await self.service.on_restart_required("A"))
        self.assertEqual(self.channel.messages, [])


@pytest.mark.timing
class TestReminders(ServiceTestCase):

    config_overrides = {
        "reminder_settings": ReminderSettings(enabled=True, interval="1h", max_reminders=3),
        "batch_delay_ms": 1000,
    }

    async def test_three_reminders_then_silence(self):
        with patch("notification.service.parse_reminder_interval", return_value=10):
            await self.updated("A")
            await wait_for_timers(0.2)

        reminders = self.channel.of_kind("reminder")
        self.assertEqual([field_map(m)["Reminder"] for m in reminders], ["1/3", "2/3", "3/3"])
        self.assertNotIn("A", self.service.reminders)

    async def test_new_update_restarts_cycle(self):
        with patch("notification.service.parse_reminder_interval", return_value=1000):
            await self.updated("A")
            self.service.reminders.start("A", 1000, 3)
            await self.updated("A", "1.1.0", "1.2.0")

        self.assertEqual(self.service.reminders.fire_count("A"), 0)
        self.assertEqual(len(self.service.reminders), 1)

    async def test_reminders_disabled_by_default(self):
        service = UpdateNotificationService(make_config(), RecordingChannel())
        service.record_update("A", "1.0.0", "1.1.0")
        self.assertNotIn("A", service.reminders)
        await service.stop()


@pytest.mark.timing
class TestLifecycle(ServiceTestCase):

    async def test_start_registers_host_and_configures_checker(self):
        self.assertTrue(self.service.started)
        self.assertEqual(self.update_service.settings.check_interval_ms, 30 * 60 * 1000)
        self.assertEqual(self.update_service.settings.batch_delay_ms, BATCH_DELAY_MS)
        names = [e.name for e in self.update_service.get_update_status().entities]
        self.assertIn("UpdateManager", names)

    async def test_start_twice_fails(self):
        with self.assertRaises(RuntimeError):
            self.service.start(self.bus)

    async def test_stop_releases_subscriptions_and_timers(self):
        self.service.config.reminder_settings = ReminderSettings(enabled=True)
        await self.updated("A")
        self.assertTrue(self.service.batch.is_armed)
        self.assertIn("A", self.service.reminders)

        await self.service.stop()

        self.assertFalse(self.service.started)
        self.assertFalse(self.service.batch.is_armed)
        self.assertEqual(len(self.service.reminders), 0)
        for event in (ENTITY_UPDATED, RESTART_REQUIRED, SELF_UPDATE_AVAILABLE):
            self.assertEqual(self.bus.subscriber_count(event), 0)

        await wait_for_timers()
        await self.updated("B")
        self.assertEqual(self.channel.messages, [])

    async def test_stop_cancels_flush_blocked_in_delivery(self):
        started = asyncio.Event()

        class StuckChannel(RecordingChannel):
            async def deliver(self, message):
                started.set()
                await asyncio.sleep(10)
                await super().deliver(message)

        channel = StuckChannel()
        service = UpdateNotificationService(make_config(), channel)
        service.start(EventBus())
        service.record_update("A", "1.0.0", "1.1.0")
        await asyncio.wait_for(started.wait(), timeout=1)
        (flush,) = service.batch.in_flight

        await service.stop()

        self.assertTrue(flush.task.done())
        self.assertEqual(service.batch.in_flight, [])
        self.assertEqual(channel.messages, [])
        self.assertFalse(service.store.get("A").notified)

    async def test_running_context(self):
        bus = EventBus()
        service = UpdateNotificationService(make_config(), RecordingChannel())
        async with service.running(bus):
            self.assertEqual(bus.subscriber_count(ENTITY_UPDATED), 1)
        self.assertEqual(bus.subscriber_count(ENTITY_UPDATED), 0)

    async def test_self_update_alert(self):
        await self.update_service.report_status("UpdateManager", latest_version="v2.0.0")

        self.assertEqual(self.channel.kinds(), ["self_update"])
        self.assertEqual(field_map(self.channel.messages[0])["Latest Version"], "v2.0.0")


class TestQueries(ServiceTestCase):

    async def test_status_comes_from_update_service(self):
        await self.update_service.report_status("AutoKick", current_version="1.0", latest_version="1.1")
        status = self.service.get_status()
        self.assertEqual(status.updates_available, 1)

    async def test_status_without_update_service(self):
        service = UpdateNotificationService(make_config(), RecordingChannel())
        self.assertEqual(service.get_status().total_entities, 0)

    async def test_announce_pending(self):
        self.assertFalse(await self.service.announce_pending())

        self.service.record_update("B", "1", "2")
        self.service.record_update("A", "1", "2")
        self.assertTrue(await self.service.announce_pending())

        message = self.channel.of_kind("pending_updates")[0]
        self.assertEqual([f.name for f in message.fields], ["B", "A"])

    async def test_announce_status(self):
        await self.update_service.report_status("AutoKick", current_version="1.0", latest_version="1.1")

        self.assertTrue(await self.service.announce_status())

        message = self.channel.of_kind("status_report")[0]
        self.assertIn("Updates Available: 1", message.description)
        self.assertEqual(field_map(message)["AutoKick"], "1.0 🔄 Update Available (1.1)")

    async def test_announce_status_delivery_failure(self):
        service = UpdateNotificationService(make_config(), FailingChannel())
        with self.assertLogs("notification.service", level="ERROR"):
            self.assertFalse(await service.announce_status())

    async def test_manual_checks_delegate(self):
        await self.service.trigger_check_all()
        await self.service.trigger_check_one("UpdateManager")
        self.assertEqual(self.update_service.checker.calls, [None, "UpdateManager"])

    async def test_manual_check_without_update_service(self):
        service = UpdateNotificationService(make_config(), RecordingChannel())
        with self.assertRaises(RuntimeError):
            await service.trigger_check_all()


if __name__ == '__main__':
    unittest.main()
