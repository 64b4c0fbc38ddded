#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from core.update_service import EntityStatus
from notification.message_builder import time_since
from notification.store import UpdateEvent


class UpdateEventSummary(BaseModel):
    """A recorded update and whether it was announced."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "entity_id": "AutoKick",
                "previous_version": "v1.2.0",
                "new_version": "v1.3.0",
                "backup_created": True,
                "occurred_at": "2026-02-01T12:00:00+00:00",
                "notified": True,
                "age": "1h 5m ago"
            }
        }
    )

    entity_id: str
    previous_version: str
    new_version: str
    backup_created: bool
    occurred_at: datetime
    notified: bool
    age: str

    @classmethod
    def from_event(cls, event: UpdateEvent) -> "UpdateEventSummary":
        return cls(
            entity_id=event.entity_id,
            previous_version=event.previous_version,
            new_version=event.new_version,
            backup_created=event.backup_created,
            occurred_at=event.occurred_at,
            notified=event.notified,
            age=time_since(event),
        )


class PendingUpdatesResponse(BaseModel):
    success: bool = True
    count: int
    updates: List[UpdateEventSummary]


class StatusResponse(BaseModel):
    success: bool = True
    total_entities: int
    updates_available: int
    last_check: Optional[datetime] = None
    entities: List[EntityStatus]


class EventAcceptedResponse(BaseModel):
    success: bool = True
    event: str
    handlers: int


class ActionResponse(BaseModel):
    success: bool
    message: str
