#!/usr/bin/env python3
"""
Restart Reminder Scheduler

Per-entity recurring reminders, independent of the batch window. A cycle
keeps nagging about the pending restart even after the update itself has been
announced, until ``max_reminders`` reminders were sent or the cycle is
stopped.

Per entity:
    Idle -> Armed -> (fired, count < max) -> Armed -> ... -> (fired, count == max) -> Idle
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Set

from notification.timers import TimerToken, abort_timers, schedule_timer

logger = logging.getLogger(__name__)

# (entity_id, reminder number, max reminders)
ReminderCallback = Callable[[str, int, int], Awaitable[None]]


@dataclass
class ReminderSchedule:
    entity_id: str
    interval_ms: int
    max_reminders: int
    token: TimerToken
    fire_count: int = 0


class ReminderScheduler:
    """Owns every active reminder cycle, keyed by entity id."""

    def __init__(self, on_reminder: ReminderCallback):
        self._on_reminder = on_reminder
        self._schedules: Dict[str, ReminderSchedule] = {}
        self._in_flight: Set[TimerToken] = set()

    def start(self, entity_id: str, interval_ms: int, max_reminders: int) -> ReminderSchedule:
        """Begin (or restart) the cycle for an entity with a zero count."""
        self.stop(entity_id)
        token = schedule_timer(interval_ms, self._fire, name=f"reminder:{entity_id}")
        schedule = ReminderSchedule(
            entity_id=entity_id,
            interval_ms=interval_ms,
            max_reminders=max_reminders,
            token=token,
        )
        self._schedules[entity_id] = schedule
        logger.info(f"Reminder cycle started for {entity_id} (every {interval_ms}ms, max {max_reminders})")
        return schedule

    def stop(self, entity_id: str) -> bool:
        schedule = self._schedules.pop(entity_id, None)
        if schedule is None:
            return False
        schedule.token.cancel()
        logger.debug(f"Reminder cycle stopped for {entity_id}")
        return True

    def stop_all(self) -> None:
        for schedule in self._schedules.values():
            schedule.token.cancel()
        if self._schedules:
            logger.info(f"Stopped {len(self._schedules)} reminder cycle(s)")
        self._schedules.clear()

    async def shutdown(self) -> None:
        """Stop every cycle and cancel reminders still being delivered."""
        tokens = [schedule.token for schedule in self._schedules.values()]
        tokens.extend(self._in_flight)
        self._schedules.clear()
        self._in_flight.clear()
        cancelled = await abort_timers(tokens)
        if cancelled:
            logger.info(f"Cancelled {cancelled} reminder timer(s)")

    def fire_count(self, entity_id: str) -> Optional[int]:
        schedule = self._schedules.get(entity_id)
        return schedule.fire_count if schedule else None

    def active_entities(self) -> List[str]:
        return list(self._schedules)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._schedules

    def __len__(self) -> int:
        return len(self._schedules)

    def _current(self, token: TimerToken) -> Optional[ReminderSchedule]:
        for schedule in self._schedules.values():
            if schedule.token is token:
                return schedule
        return None

    async def _fire(self, token: TimerToken) -> None:
        schedule = self._current(token)
        if schedule is None:
            return
        entity_id = schedule.entity_id

        if schedule.fire_count >= schedule.max_reminders:
            logger.info(f"Max reminders reached for {entity_id}")
            self._release(schedule)
            return

        schedule.fire_count += 1
        count = schedule.fire_count

        self._in_flight.add(token)
        try:
            await self._on_reminder(entity_id, count, schedule.max_reminders)
        except Exception as e:
            logger.error(f"Reminder for {entity_id} failed, stopping cycle: {e}", exc_info=True)
            self._release(schedule)
            return
        finally:
            self._in_flight.discard(token)

        # Stopped or restarted while the reminder was being delivered
        if token.cancelled or self._schedules.get(entity_id) is not schedule:
            return

        if count < schedule.max_reminders:
            schedule.token = schedule_timer(schedule.interval_ms, self._fire, name=f"reminder:{entity_id}")
        else:
            logger.info(f"Reminder cycle for {entity_id} finished ({count}/{schedule.max_reminders})")
            self._release(schedule)

    def _release(self, schedule: ReminderSchedule) -> None:
        if self._schedules.get(schedule.entity_id) is schedule:
            del self._schedules[schedule.entity_id]
