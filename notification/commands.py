#!/usr/bin/env python3
"""
Admin chat commands for the update notifier.

The host passes already-parsed command invocations in; this module checks the
caller against an injected authorizer, runs the command against the
notification service and returns the reply lines for the caller. Failures
come back as reply text, never as exceptions.

Commands:
    !updatecheck                 check every source now
    !updatestatus                status of every tracked source
    !updateplugins <name|all>    check one source, or all of them
    !updatepending               post the pending-restart list to the channel
"""

import logging
from typing import Callable, Iterator, List, Optional

from core.update_service import UpdateStatus
from notification.service import UpdateNotificationService

logger = logging.getLogger(__name__)

PERMISSION_DENIED = "You need admin permissions to use this command."
DEFAULT_MAX_LENGTH = 200


def format_status_lines(status: UpdateStatus) -> List[str]:
    """Plain-text status report, one line per source."""
    last_check = status.last_check.strftime("%Y-%m-%d %H:%M:%S") if status.last_check else "Never"
    lines = [
        "=== UPDATE MANAGER STATUS ===",
        f"Total Plugins: {status.total_entities}",
        f"Updates Available: {status.updates_available}",
        f"Last Check: {last_check}",
        "",
        "=== PLUGIN STATUS ===",
    ]
    for entity in status.entities:
        if entity.needs_update:
            state = "🔄 Update Available"
        elif entity.error:
            state = f"❌ Error: {entity.error}"
        else:
            state = "✅ Up to Date"
        lines.append(f"{entity.name}: {entity.current_version} {state}")
    return lines


def split_message(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> Iterator[str]:
    """
    Split text into chunks no longer than ``max_length``.

    Lines are kept together where possible; a line that is too long on its
    own is split on word boundaries.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be positive, got {max_length}")

    if len(text) <= max_length:
        yield text
        return

    current = ""
    for line in text.split("\n"):
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) <= max_length:
            current = candidate
            continue

        if current.strip():
            yield current.strip()
        current = ""

        if len(line) <= max_length:
            current = line
            continue

        for word in line.split(" "):
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_length:
                current = candidate
            else:
                if current.strip():
                    yield current.strip()
                while len(word) > max_length:
                    yield word[:max_length]
                    word = word[max_length:]
                current = word

    if current.strip():
        yield current.strip()


class UpdateCommandHandler:
    """
    Args:
        service: Notification service the commands act on
        authorizer: Returns True when the caller may run admin commands
        max_length: Longest reply the caller's transport accepts
    """

    def __init__(
        self,
        service: UpdateNotificationService,
        authorizer: Optional[Callable[[str], bool]] = None,
        max_length: int = DEFAULT_MAX_LENGTH
    ):
        if max_length < 1:
            raise ValueError(f"max_length must be positive, got {max_length}")
        self.service = service
        self.authorizer = authorizer or (lambda caller_id: False)
        self.max_length = max_length

    async def handle(self, command: str, caller_id: str, args: Optional[List[str]] = None) -> List[str]:
        """
        Run one command.

        Returns:
            Reply messages for the caller, each within ``max_length``
        """
        args = args or []
        command = command.lower().lstrip("!")

        if not self.authorizer(caller_id):
            logger.warning(f"Rejected !{command} from {caller_id}")
            return [PERMISSION_DENIED]

        if command == "updatecheck":
            return await self.update_check()
        if command == "updatestatus":
            return self.update_status()
        if command == "updateplugins":
            return await self.update_plugins(args)
        if command == "updatepending":
            return await self.update_pending()
        return [f"Unknown command: !{command}"]

    async def update_check(self) -> List[str]:
        replies = ["🔄 Manually checking for updates..."]
        try:
            await self.service.trigger_check_all()
            replies.append("✅ Update check completed")
        except Exception as e:
            logger.error(f"Manual update check failed: {e}")
            replies.append(f"❌ Update check failed: {e}")
        return replies

    def update_status(self) -> List[str]:
        try:
            status = self.service.get_status()
        except Exception as e:
            logger.error(f"Failed to get update status: {e}")
            return [f"❌ Failed to get status: {e}"]
        return list(split_message("\n".join(format_status_lines(status)), self.max_length))

    async def update_plugins(self, args: List[str]) -> List[str]:
        if not args:
            return ["Usage: !updateplugins <plugin-name> or !updateplugins all"]

        target = args[0]
        try:
            if target.lower() == "all":
                replies = ["🔄 Updating all plugins..."]
                await self.service.trigger_check_all()
                replies.append("✅ All plugins update check completed")
            else:
                replies = [f"🔄 Checking updates for {target}..."]
                await self.service.trigger_check_one(target)
                replies.append(f"✅ {target} update check completed")
        except Exception as e:
            logger.error(f"Update of {target} failed: {e}")
            replies.append(f"❌ Update failed: {e}")
        return replies

    async def update_pending(self) -> List[str]:
        pending = self.service.list_pending()
        if not pending:
            return ["No plugins are waiting for a restart."]
        sent = await self.service.announce_pending()
        if sent:
            return [f"📋 Posted {len(pending)} pending update(s) to the notification channel."]
        return ["❌ Failed to post the pending update list."]
