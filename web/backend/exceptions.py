#!/usr/bin/env python3
"""
Error types raised by the routers and the handlers that render them.

Every error response has the same body: ``success``, ``error`` and ``type``.
"""

import logging
from typing import Any
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceException(Exception):
    """Base exception for service layer errors."""
    status_code = 500


class EntityNotFoundException(ServiceException):
    """A check was requested for a plugin the update service does not track."""
    status_code = 404


class UpdateCheckFailedException(ServiceException):
    """The update checker failed or none is wired in."""
    status_code = 502


def error_response(status_code: int, error: Any, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "type": error_type}
    )


async def service_exception_handler(
    request: Request,
    exc: ServiceException
) -> JSONResponse:
    """
    Render a ServiceException with the status code its class declares.

    Args:
        request: The FastAPI request.
        exc: The service exception.
    """
    logger.error(f"{request.method} {request.url.path} failed with {exc.status_code}: {exc}")
    return error_response(exc.status_code, str(exc), exc.__class__.__name__)


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    return error_response(exc.status_code, exc.detail, "HTTPException")


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Anything unexpected becomes an opaque 500; details go to the log only."""
    logger.exception(f"Unexpected error in {request.method} {request.url.path}")
    return error_response(500, "Internal server error", "InternalError")
