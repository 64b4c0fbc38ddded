#!/usr/bin/env python3
"""
Event intake endpoints - the host posts plugin lifecycle events here.
"""

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from core.events import ENTITY_UPDATED, RESTART_REQUIRED
from ..dependencies import get_app_context
from ..models.requests import EntityUpdatedRequest, RestartRequiredRequest
from ..models.responses import EventAcceptedResponse

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("/entity-updated", response_model=EventAcceptedResponse)
async def entity_updated(
    request: EntityUpdatedRequest,
    context: AppContext = Depends(get_app_context)
):
    """
    Report that a plugin was updated.

    Updates arriving close together are announced as one batch message.
    """
    handlers = await context.bus.emit(
        ENTITY_UPDATED,
        request.entity_id,
        request.previous_version,
        request.new_version,
        request.backup_path,
    )
    return EventAcceptedResponse(event=ENTITY_UPDATED, handlers=handlers)


@router.post("/restart-required", response_model=EventAcceptedResponse)
async def restart_required(
    request: RestartRequiredRequest,
    context: AppContext = Depends(get_app_context)
):
    """
    Report that a plugin needs a restart.

    Suppressed when the plugin's update was already announced.
    """
    handlers = await context.bus.emit(RESTART_REQUIRED, request.entity_id)
    return EventAcceptedResponse(event=RESTART_REQUIRED, handlers=handlers)
