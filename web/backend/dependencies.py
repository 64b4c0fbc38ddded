#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

from fastapi import Request

from core.app_context import AppContext
from core.update_service import InMemoryUpdateService
from notification.service import UpdateNotificationService


def get_app_context(request: Request) -> AppContext:
    """
    FastAPI dependency returning the context created at startup.

    Usage:
        @router.get("/endpoint")
        def my_endpoint(context: AppContext = Depends(get_app_context)):
            ...
    """
    return request.app.state.context


def get_notification_service(request: Request) -> UpdateNotificationService:
    return get_app_context(request).notification_service


def get_update_service(request: Request) -> InMemoryUpdateService:
    return get_app_context(request).update_service
