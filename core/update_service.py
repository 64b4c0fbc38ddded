#!/usr/bin/env python3
"""
Update-check service boundary.

The notifier never compares versions itself. It talks to an
``UpdateCheckService`` instance passed in at construction, which owns the
registry of tracked sources and runs the actual checks.

``InMemoryUpdateService`` is a per-instance registry: the host reports source
statuses into it and check triggers are delegated to an injected async
checker callable.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from core.events import EventBus, SELF_UPDATE_AVAILABLE

logger = logging.getLogger(__name__)

# Called with a source name, or None for "check everything"
UpdateChecker = Callable[[Optional[str]], Awaitable[None]]


class UpdateCheckError(Exception):
    """Base error raised by update-check services."""
    pass


class UpdateCheckUnavailable(UpdateCheckError):
    """Raised when no checker is wired into the service."""
    pass


class UnknownSourceError(UpdateCheckError):
    """Raised when a check is requested for a source that was never registered."""
    pass


class EntityStatus(BaseModel):
    name: str
    current_version: str
    latest_version: Optional[str] = None
    needs_update: bool = False
    error: Optional[str] = None

    @property
    def state(self) -> str:
        if self.needs_update:
            return "update-available"
        if self.error:
            return "error"
        return "up-to-date"


class UpdateStatus(BaseModel):
    total_entities: int = 0
    updates_available: int = 0
    last_check: Optional[datetime] = None
    entities: List[EntityStatus] = []


class UpdateCheckSettings(BaseModel):
    enabled: bool = True
    check_interval_ms: int
    initial_delay_ms: int = 15000
    batch_delay_ms: int = 5000
    stagger_delay_ms: int = 5 * 60 * 1000


@dataclass
class UpdateSource:
    """A tracked source and its last reported state."""
    name: str
    current_version: str
    repository_owner: Optional[str] = None
    repository_name: Optional[str] = None
    path: Optional[str] = None
    latest_version: Optional[str] = None
    needs_update: bool = False
    error: Optional[str] = None


class UpdateCheckService(ABC):
    """Interface the notifier uses to reach the update checker."""

    @abstractmethod
    def register_source(
        self,
        name: str,
        version: str,
        repository_owner: Optional[str] = None,
        repository_name: Optional[str] = None,
        path: Optional[str] = None,
        is_host: bool = False
    ) -> None:
        pass

    @abstractmethod
    def configure(self, settings: UpdateCheckSettings) -> None:
        pass

    @abstractmethod
    async def check_all(self) -> None:
        pass

    @abstractmethod
    async def check_one(self, name: str) -> None:
        pass

    @abstractmethod
    def get_update_status(self) -> UpdateStatus:
        pass

    def stop(self) -> None:
        """Release any resources held by the service."""
        pass


class InMemoryUpdateService(UpdateCheckService):
    """
    Registry of update sources kept in memory for the life of the process.

    Args:
        bus: Bus used to publish self-update-available events
        checker: Async callable that performs the real check
    """

    def __init__(self, bus: Optional[EventBus] = None, checker: Optional[UpdateChecker] = None):
        self.bus = bus
        self.checker = checker
        self.settings: Optional[UpdateCheckSettings] = None
        self.last_check: Optional[datetime] = None
        self._sources: Dict[str, UpdateSource] = {}
        self._host_source: Optional[str] = None
        self._announced_self_update: Optional[str] = None
        self._stopped = False

    def register_source(
        self,
        name: str,
        version: str,
        repository_owner: Optional[str] = None,
        repository_name: Optional[str] = None,
        path: Optional[str] = None,
        is_host: bool = False
    ) -> None:
        existing = self._sources.get(name)
        if existing:
            existing.current_version = version
            existing.repository_owner = repository_owner or existing.repository_owner
            existing.repository_name = repository_name or existing.repository_name
            existing.path = path or existing.path
        else:
            self._sources[name] = UpdateSource(
                name=name,
                current_version=version,
                repository_owner=repository_owner,
                repository_name=repository_name,
                path=path,
            )
        if is_host:
            self._host_source = name
        logger.info(f"Registered update source {name} ({version})")

    def configure(self, settings: UpdateCheckSettings) -> None:
        self.settings = settings
        logger.info(f"Update checks every {settings.check_interval_ms // 1000}s")

    async def check_all(self) -> None:
        await self._run_checker(None)

    async def check_one(self, name: str) -> None:
        if name not in self._sources:
            raise UnknownSourceError(f"Unknown source: {name}")
        await self._run_checker(name)

    async def _run_checker(self, name: Optional[str]) -> None:
        if self.checker is None:
            raise UpdateCheckUnavailable("No update checker configured")
        logger.info(f"Running update check for {name or 'all sources'}")
        await self.checker(name)
        self.last_check = datetime.now(timezone.utc)

    async def report_status(
        self,
        name: str,
        current_version: Optional[str] = None,
        latest_version: Optional[str] = None,
        needs_update: Optional[bool] = None,
        error: Optional[str] = None
    ) -> UpdateSource:
        """
        Record the outcome of a check for one source.

        Unknown sources are registered on the fly. When ``needs_update`` is not
        given it is derived from whether a differing latest version was reported.
        """
        source = self._sources.get(name)
        if source is None:
            source = UpdateSource(name=name, current_version=current_version or "unknown")
            self._sources[name] = source
        elif current_version:
            source.current_version = current_version

        source.latest_version = latest_version
        source.error = error
        if needs_update is None:
            needs_update = latest_version is not None and latest_version != source.current_version
        source.needs_update = needs_update
        self.last_check = datetime.now(timezone.utc)

        if name == self._host_source and needs_update and latest_version:
            await self._announce_self_update(latest_version)

        return source

    async def _announce_self_update(self, latest_version: str) -> None:
        if self._announced_self_update == latest_version:
            return
        self._announced_self_update = latest_version
        if self.bus is not None and not self._stopped:
            await self.bus.emit(SELF_UPDATE_AVAILABLE, latest_version)

    def get_update_status(self) -> UpdateStatus:
        entities = [
            EntityStatus(
                name=source.name,
                current_version=source.current_version,
                latest_version=source.latest_version,
                needs_update=source.needs_update,
                error=source.error,
            )
            for source in sorted(self._sources.values(), key=lambda s: s.name.lower())
        ]
        return UpdateStatus(
            total_entities=len(entities),
            updates_available=sum(1 for e in entities if e.needs_update),
            last_check=self.last_check,
            entities=entities,
        )

    def stop(self) -> None:
        self._stopped = True
        logger.info("Update service stopped")
