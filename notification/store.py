#!/usr/bin/env python3
"""
Update Event Store

Holds the latest update event per entity and whether it has been announced.
At most one event per entity is live; recording a new one replaces the old
one and resets its notified flag.

Events are kept for the life of the process (no eviction).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class UpdateEvent:
    """The most recent update seen for an entity."""
    entity_id: str
    previous_version: str
    new_version: str
    backup_path: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notified: bool = False

    @property
    def backup_created(self) -> bool:
        return bool(self.backup_path)


class UpdateEventStore:
    """In-memory map of entity id -> UpdateEvent."""

    def __init__(self):
        self._events: Dict[str, UpdateEvent] = {}

    def upsert(
        self,
        entity_id: str,
        previous_version: str,
        new_version: str,
        backup_path: Optional[str] = None,
        occurred_at: Optional[datetime] = None
    ) -> UpdateEvent:
        """Replace the entity's event with a fresh, un-notified one."""
        event = UpdateEvent(
            entity_id=entity_id,
            previous_version=previous_version,
            new_version=new_version,
            backup_path=backup_path,
            occurred_at=occurred_at or datetime.now(timezone.utc),
            notified=False,
        )
        replaced = entity_id in self._events
        self._events[entity_id] = event
        if replaced:
            logger.info(f"Replaced pending update for {entity_id}: {previous_version} -> {new_version}")
        else:
            logger.info(f"Recorded update for {entity_id}: {previous_version} -> {new_version}")
        return event

    def get(self, entity_id: str) -> Optional[UpdateEvent]:
        return self._events.get(entity_id)

    def pending_updates(self) -> List[UpdateEvent]:
        """All events, announced or not."""
        return list(self._events.values())

    def unnotified_updates(self) -> List[UpdateEvent]:
        return [event for event in self._events.values() if not event.notified]

    def mark_notified(self, entity_ids: Iterable[str]) -> None:
        for entity_id in entity_ids:
            event = self._events.get(entity_id)
            if event is not None:
                event.notified = True

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._events
