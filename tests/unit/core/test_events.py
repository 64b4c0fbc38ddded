import unittest

from core.events import EventBus, ENTITY_UPDATED, RESTART_REQUIRED


class TestEventBus(unittest.IsolatedAsyncioTestCase):

    async def test_emit_calls_sync_and_async_handlers_in_order(self):
        bus = EventBus()
        calls = []

        def sync_handler(name):
            calls.append(("sync", name))

        async def async_handler(name):
            calls.append(("async", name))

        bus.subscribe(RESTART_REQUIRED, sync_handler)
        bus.subscribe(RESTART_REQUIRED, async_handler)

        delivered = await bus.emit(RESTART_REQUIRED, "PluginA")

        self.assertEqual(delivered, 2)
        self.assertEqual(calls, [("sync", "PluginA"), ("async", "PluginA")])

    async def test_disposed_subscription_no_longer_receives(self):
        bus = EventBus()
        calls = []
        subscription = bus.subscribe(ENTITY_UPDATED, lambda *args: calls.append(args))

        subscription.dispose()
        subscription.dispose()  # second dispose is a no-op

        self.assertFalse(subscription.active)
        self.assertEqual(await bus.emit(ENTITY_UPDATED, "A", "1", "2"), 0)
        self.assertEqual(calls, [])
        self.assertEqual(bus.subscriber_count(ENTITY_UPDATED), 0)

    async def test_with_block_disposes_on_error(self):
        bus = EventBus()

        with self.assertRaises(ValueError):
            with bus.subscribe(ENTITY_UPDATED, lambda *args: None):
                self.assertEqual(bus.subscriber_count(ENTITY_UPDATED), 1)
                raise ValueError("boom")

        self.assertEqual(bus.subscriber_count(ENTITY_UPDATED), 0)

    async def test_same_handler_twice_is_two_bindings(self):
        bus = EventBus()
        calls = []

        def handler(name):
            calls.append(name)

        first = bus.subscribe(RESTART_REQUIRED, handler)
        bus.subscribe(RESTART_REQUIRED, handler)
        first.dispose()

        await bus.emit(RESTART_REQUIRED, "A")
        self.assertEqual(calls, ["A"])

    async def test_failing_handler_is_isolated(self):
        bus = EventBus()
        calls = []

        def broken(name):
            raise RuntimeError("handler bug")

        bus.subscribe(RESTART_REQUIRED, broken)
        bus.subscribe(RESTART_REQUIRED, calls.append)

        with self.assertLogs("core.events", level="ERROR"):
            delivered = await bus.emit(RESTART_REQUIRED, "A")

        self.assertEqual(delivered, 1)
        self.assertEqual(calls, ["A"])


if __name__ == '__main__':
    unittest.main()
