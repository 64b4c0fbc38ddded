#!/usr/bin/env python3
"""
Update endpoints - status, pending restarts and manual checks.
"""

from fastapi import APIRouter, Depends

from core.update_service import (
    InMemoryUpdateService,
    UnknownSourceError,
    UpdateCheckError,
)
from notification.service import UpdateNotificationService
from ..dependencies import get_notification_service, get_update_service
from ..exceptions import EntityNotFoundException, UpdateCheckFailedException
from ..models.requests import StatusReportRequest
from ..models.responses import (
    ActionResponse,
    PendingUpdatesResponse,
    StatusResponse,
    UpdateEventSummary,
)

router = APIRouter(prefix="/api/updates", tags=["updates"])


@router.get("/status", response_model=StatusResponse)
def get_status(
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    Get the state of every tracked plugin as last reported by the checker.
    """
    status = service.get_status()
    return StatusResponse(
        total_entities=status.total_entities,
        updates_available=status.updates_available,
        last_check=status.last_check,
        entities=status.entities,
    )


@router.post("/status/announce", response_model=ActionResponse)
async def announce_status(
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    Post the status report to the notification channel.
    """
    sent = await service.announce_status()
    return ActionResponse(
        success=sent,
        message="Status report posted" if sent else "Failed to post status report"
    )


@router.get("/pending", response_model=PendingUpdatesResponse)
def get_pending(
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    List every recorded update, oldest first.
    """
    updates = [UpdateEventSummary.from_event(event) for event in service.list_pending()]
    return PendingUpdatesResponse(count=len(updates), updates=updates)


@router.post("/pending/announce", response_model=ActionResponse)
async def announce_pending(
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    Post the pending-restart list to the notification channel.
    """
    if not service.list_pending():
        return ActionResponse(success=False, message="No pending updates")
    sent = await service.announce_pending()
    return ActionResponse(
        success=sent,
        message="Pending updates posted" if sent else "Failed to post pending updates"
    )


@router.post("/report", response_model=ActionResponse)
async def report_status(
    request: StatusReportRequest,
    update_service: InMemoryUpdateService = Depends(get_update_service)
):
    """
    Record the result of an update check for one plugin.
    """
    source = await update_service.report_status(
        request.name,
        current_version=request.current_version,
        latest_version=request.latest_version,
        needs_update=request.needs_update,
        error=request.error,
    )
    state = "update available" if source.needs_update else "error" if source.error else "up to date"
    return ActionResponse(success=True, message=f"{source.name}: {state}")


@router.post("/check", response_model=ActionResponse)
async def check_all(
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    Run an update check for every plugin now.
    """
    try:
        await service.trigger_check_all()
    except UpdateCheckError as e:
        raise UpdateCheckFailedException(f"Update check failed: {e}") from e
    return ActionResponse(success=True, message="Update check completed")


@router.post("/check/{entity_id}", response_model=ActionResponse)
async def check_one(
    entity_id: str,
    service: UpdateNotificationService = Depends(get_notification_service)
):
    """
    Run an update check for a single plugin now.
    """
    try:
        await service.trigger_check_one(entity_id)
    except UnknownSourceError as e:
        raise EntityNotFoundException(str(e)) from e
    except UpdateCheckError as e:
        raise UpdateCheckFailedException(f"Update check for {entity_id} failed: {e}") from e
    return ActionResponse(success=True, message=f"{entity_id} update check completed")
