"""API route handlers."""

from .events import router as events_router
from .updates import router as updates_router
