#!/usr/bin/env python3
"""
Update Notifier - FastAPI Application

HTTP boundary for the host process: it posts plugin events and check results
here and queries the current update state.

Usage:
    python main.py

Then open:
    - http://localhost:8080/docs - API Documentation (Swagger UI)
    - http://localhost:8080/health - Health check
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from core.app_context import AppContext
from core.config_loader import load_config
from .exceptions import (
    ServiceException,
    service_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .routers import (
    events_router,
    updates_router
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None, config_path: str = "config.yaml") -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        context: Pre-built context (tests); built from config on startup when omitted
        config_path: Config file used when no context is given
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_context = context or AppContext.build(load_config(config_path))
        app.state.context = app_context
        async with app_context.notification_service.running(app_context.bus):
            yield

    app = FastAPI(
        title="Update Notifier API",
        description="Plugin update batching, restart reminders and update status",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Register exception handlers
    app.add_exception_handler(ServiceException, service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(events_router)
    app.include_router(updates_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "update-notifier"}

    return app


app = create_app()
