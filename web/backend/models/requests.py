#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional


class EntityUpdatedRequest(BaseModel):
    """An entity finished updating and now waits for a restart."""
    entity_id: str = Field(..., min_length=1, description="Plugin name")
    previous_version: str = Field(..., description="Version before the update")
    new_version: str = Field(..., description="Version after the update")
    backup_path: Optional[str] = Field(None, description="Backup location, if one was created")


class RestartRequiredRequest(BaseModel):
    """The host signalled that an entity needs a restart."""
    entity_id: str = Field(..., min_length=1, description="Plugin name")


class StatusReportRequest(BaseModel):
    """Result of an update check for one source, reported by the host."""
    name: str = Field(..., min_length=1, description="Plugin name")
    current_version: Optional[str] = None
    latest_version: Optional[str] = None
    needs_update: Optional[bool] = Field(
        None,
        description="Derived from latest_version when omitted"
    )
    error: Optional[str] = None
