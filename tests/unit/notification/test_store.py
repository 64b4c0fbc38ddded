import unittest
from datetime import datetime, timezone

from notification.store import UpdateEventStore


class TestUpdateEventStore(unittest.TestCase):

    def setUp(self):
        self.store = UpdateEventStore()

    def test_upsert_creates_unnotified_event(self):
        event = self.store.upsert("AutoKick", "1.0.0", "1.1.0", backup_path="/backups/AutoKick")

        self.assertIn("AutoKick", self.store)
        self.assertFalse(event.notified)
        self.assertTrue(event.backup_created)
        self.assertEqual(self.store.unnotified_updates(), [event])

    def test_missing_backup_path(self):
        event = self.store.upsert("AutoKick", "1.0.0", "1.1.0")
        self.assertFalse(event.backup_created)

    def test_replacement_resets_notified(self):
        self.store.upsert("AutoKick", "1.0.0", "1.1.0")
        self.store.mark_notified(["AutoKick"])
        self.assertEqual(self.store.unnotified_updates(), [])

        replacement = self.store.upsert("AutoKick", "1.1.0", "1.2.0")

        self.assertEqual(len(self.store), 1)
        self.assertFalse(replacement.notified)
        self.assertIs(self.store.get("AutoKick"), replacement)
        self.assertEqual(replacement.previous_version, "1.1.0")

    def test_pending_includes_notified_events(self):
        self.store.upsert("A", "1", "2")
        self.store.upsert("B", "1", "2")
        self.store.mark_notified(["A"])

        self.assertEqual({e.entity_id for e in self.store.pending_updates()}, {"A", "B"})
        self.assertEqual([e.entity_id for e in self.store.unnotified_updates()], ["B"])

    def test_mark_notified_ignores_unknown_ids(self):
        self.store.mark_notified(["ghost"])
        self.assertEqual(len(self.store), 0)

    def test_explicit_occurred_at(self):
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        event = self.store.upsert("A", "1", "2", occurred_at=when)
        self.assertEqual(event.occurred_at, when)

    def test_clear(self):
        self.store.upsert("A", "1", "2")
        self.store.clear()
        self.assertIsNone(self.store.get("A"))
        self.assertEqual(len(self.store), 0)


if __name__ == '__main__':
    unittest.main()
