from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Sequence
from pydantic import BaseModel, field_validator

from core.update_service import UpdateStatus
from notification.store import UpdateEvent

REMINDER_COLOR = 0xFFA500
SELF_UPDATE_COLOR = 0xFF6B6B
STATUS_COLOR = 0x0099FF

# Discord embed limits
MAX_EMBED_FIELDS = 25
MAX_EMBED_TOTAL_LENGTH = 6000
MAX_TITLE_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 4096
MAX_FIELD_NAME_LENGTH = 256
MAX_FIELD_VALUE_LENGTH = 1024
MAX_FOOTER_LENGTH = 2048


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = True


class NotificationMessage(BaseModel):
    kind: str
    title: str
    description: str
    color: int
    fields: List[EmbedField] = []
    footer_text: str
    timestamp: datetime
    mention_prefix: Optional[str] = None


class MessageSettings(BaseModel):
    """The subset of configuration that affects message text and colors."""
    update_color: int = 0x00FF00
    restart_color: int = 0xFFA500
    admin_role_id: Optional[str] = None
    host_label: str = "server"
    footer_text: str = "UpdateManager"
    host_name: str = "UpdateManager"
    host_version: str = "v1.0.0"
    repository_url: Optional[str] = None

    @field_validator('admin_role_id', mode='before')
    @classmethod
    def _coerce_role_id(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def time_since(event: UpdateEvent, now: Optional[datetime] = None) -> str:
    """Human readable age of an event, e.g. "2h 5m ago"."""
    elapsed = _now(now) - event.occurred_at
    minutes = max(0, int(elapsed.total_seconds() // 60))
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m ago"
    return f"{minutes}m ago"


class NotificationMessageBuilder:
    """
    Builds the structured message for every notification the service sends.

    Builders only read their arguments; no event or store state is changed.
    """

    def __init__(self, settings: Optional[MessageSettings] = None):
        self.settings = settings or MessageSettings()

    @property
    def role_ping(self) -> str:
        role_id = self.settings.admin_role_id
        if role_id and role_id != 'default':
            return f"<@&{role_id}>"
        return ""

    def _mention(self, text: str) -> Optional[str]:
        ping = self.role_ping
        return f"{ping} {text}" if ping else None

    def single_update(self, event: UpdateEvent, now: Optional[datetime] = None) -> NotificationMessage:
        host = self.settings.host_label
        return NotificationMessage(
            kind="single_update",
            title="🔄 Plugin Update Completed",
            description=f"{event.entity_id} has been successfully updated and requires a {host} restart to apply changes.",
            color=self.settings.update_color,
            fields=[
                EmbedField(name="Plugin", value=event.entity_id),
                EmbedField(name="Version", value=f"{event.previous_version} → {event.new_version}"),
                EmbedField(name="Status", value="Update Complete"),
                EmbedField(name="Backup", value="✅ Created" if event.backup_created else "❌ Failed"),
                EmbedField(name="Action Required", value=f"⚠️ Restart {host}"),
                EmbedField(name="Priority", value="Medium"),
                EmbedField(name="Timestamp", value=_format_time(event.occurred_at), inline=False),
            ],
            footer_text=self.settings.footer_text,
            timestamp=_now(now),
            mention_prefix=self._mention("🔄 Plugin update completed - restart required!"),
        )

    def batch_update(self, events: Sequence[UpdateEvent], now: Optional[datetime] = None) -> NotificationMessage:
        now = _now(now)
        host = self.settings.host_label
        fields = [
            EmbedField(name=event.entity_id, value=f"{event.previous_version} → {event.new_version}")
            for event in events
        ]
        fields.extend([
            EmbedField(name="Total Updates", value=str(len(events))),
            EmbedField(name="Action Required", value=f"⚠️ Restart {host}"),
            EmbedField(name="Priority", value="Medium"),
            EmbedField(name="Timestamp", value=_format_time(now), inline=False),
        ])
        return NotificationMessage(
            kind="batch_update",
            title="🔄 Batch Plugin Updates Completed",
            description=f"{len(events)} plugins have been updated and require a {host} restart to apply changes.",
            color=self.settings.update_color,
            fields=fields,
            footer_text=f"{self.settings.footer_text} - Batch Update",
            timestamp=now,
            mention_prefix=self._mention(f"🔄 {len(events)} plugin updates completed - restart required!"),
        )

    def restart_required(self, entity_id: str, now: Optional[datetime] = None) -> NotificationMessage:
        now = _now(now)
        host = self.settings.host_label
        return NotificationMessage(
            kind="restart_required",
            title="⚠️ Restart Required",
            description=f"{entity_id} has been updated and requires a {host} restart to apply changes.",
            color=self.settings.restart_color,
            fields=[
                EmbedField(name="Plugin", value=entity_id),
                EmbedField(name="Action Required", value=f"Restart {host}"),
                EmbedField(name="Priority", value="Medium"),
                EmbedField(name="Timestamp", value=_format_time(now), inline=False),
            ],
            footer_text=self.settings.footer_text,
            timestamp=now,
            mention_prefix=self._mention(f"⚠️ {host} restart required for {entity_id}!"),
        )

    def reminder(
        self,
        entity_id: str,
        count: int,
        max_reminders: int,
        now: Optional[datetime] = None
    ) -> NotificationMessage:
        now = _now(now)
        host = self.settings.host_label
        return NotificationMessage(
            kind="reminder",
            title="⏰ Restart Reminder",
            description=f"{entity_id} still requires a {host} restart to apply updates.",
            color=REMINDER_COLOR,
            fields=[
                EmbedField(name="Plugin", value=entity_id),
                EmbedField(name="Action Required", value=f"Restart {host}"),
                EmbedField(name="Reminder", value=f"{count}/{max_reminders}"),
                EmbedField(name="Priority", value="Medium"),
                EmbedField(name="Timestamp", value=_format_time(now), inline=False),
            ],
            footer_text=f"{self.settings.footer_text} - Restart Reminder",
            timestamp=now,
            mention_prefix=self._mention(f"⏰ Reminder: {entity_id} still needs restart!"),
        )

    def self_update_available(self, latest_version: str, now: Optional[datetime] = None) -> NotificationMessage:
        now = _now(now)
        name = self.settings.host_name
        host = self.settings.host_label
        fields = [
            EmbedField(name="Current Version", value=self.settings.host_version),
            EmbedField(name="Latest Version", value=latest_version),
            EmbedField(name="Status", value="⚠️ Update Required"),
        ]
        if self.settings.repository_url:
            repo_name = self.settings.repository_url.rstrip('/').rsplit('/', 1)[-1]
            fields.append(EmbedField(name="Repository", value=f"[{repo_name}]({self.settings.repository_url})"))
        fields.extend([
            EmbedField(name="Action Required", value="Manual Update + Restart"),
            EmbedField(name="Priority", value="🔴 HIGH"),
            EmbedField(
                name="Note",
                value=f"This plugin cannot auto-update itself. Please update manually and restart {host}.",
                inline=False
            ),
            EmbedField(name="Timestamp", value=_format_time(now), inline=False),
        ])
        return NotificationMessage(
            kind="self_update",
            title=f"🔧 {name} Update Available",
            description=f"**{name} itself has an update available!** It manages all other plugin update notifications.",
            color=SELF_UPDATE_COLOR,
            fields=fields,
            footer_text=f"{self.settings.footer_text} - Self-Update Alert",
            timestamp=now,
            mention_prefix=self._mention(f"🔧 CRITICAL: {name} needs updating!"),
        )

    def status_report(self, status: UpdateStatus, now: Optional[datetime] = None) -> NotificationMessage:
        now = _now(now)
        fields = []
        for entity in status.entities:
            if entity.needs_update:
                state = f"🔄 Update Available ({entity.latest_version})" if entity.latest_version else "🔄 Update Available"
            elif entity.error:
                state = f"❌ Error: {entity.error}"
            else:
                state = "✅ Up to Date"
            fields.append(EmbedField(name=entity.name, value=f"{entity.current_version} {state}"))

        last_check = _format_time(status.last_check) if status.last_check else "Never"
        return NotificationMessage(
            kind="status_report",
            title="📊 Update Status",
            description=(
                f"Total Plugins: {status.total_entities}\n"
                f"Updates Available: {status.updates_available}\n"
                f"Last Check: {last_check}"
            ),
            color=self.settings.update_color if status.updates_available == 0 else STATUS_COLOR,
            fields=fields,
            footer_text=f"{self.settings.footer_text} - Status",
            timestamp=now,
        )

    def pending_updates(self, events: Sequence[UpdateEvent], now: Optional[datetime] = None) -> NotificationMessage:
        now = _now(now)
        return NotificationMessage(
            kind="pending_updates",
            title="📋 Plugins Requiring Updates",
            description=f"The following plugins have been updated and require a {self.settings.host_label} restart:",
            color=self.settings.restart_color,
            fields=[
                EmbedField(
                    name=event.entity_id,
                    value=f"{event.previous_version} → {event.new_version} ({time_since(event, now)})"
                )
                for event in events
            ],
            footer_text=f"{self.settings.footer_text} - Pending Updates",
            timestamp=now,
            mention_prefix=self._mention("📋 Current plugins requiring updates:"),
        )

    @staticmethod
    def to_discord_payloads(message: NotificationMessage) -> List[Dict[str, Any]]:
        """
        Convert a message to Discord webhook payloads, one embed each.

        An embed holds at most 25 fields and 6000 characters. Fields past
        that go into "(continued)" embeds posted after the first, so no
        field is ever dropped. The role mention rides on the first payload.
        """
        title = message.title[:MAX_TITLE_LENGTH]
        description = message.description[:MAX_DESCRIPTION_LENGTH]
        footer = message.footer_text[:MAX_FOOTER_LENGTH]
        continued_title = f"{title} (continued)"[:MAX_TITLE_LENGTH]

        chunks: List[List[Dict[str, Any]]] = [[]]
        size = len(title) + len(description) + len(footer)
        for field in message.fields:
            entry = {
                "name": field.name[:MAX_FIELD_NAME_LENGTH],
                "value": field.value[:MAX_FIELD_VALUE_LENGTH],
                "inline": field.inline,
            }
            entry_size = len(entry["name"]) + len(entry["value"])
            current = chunks[-1]
            if current and (len(current) >= MAX_EMBED_FIELDS or size + entry_size > MAX_EMBED_TOTAL_LENGTH):
                chunks.append([])
                size = len(continued_title) + len(footer)
            chunks[-1].append(entry)
            size += entry_size

        payloads = []
        for index, fields in enumerate(chunks):
            embed: Dict[str, Any] = {
                "title": title if index == 0 else continued_title,
                "color": message.color,
                "fields": fields,
                "footer": {"text": footer},
                "timestamp": message.timestamp.isoformat(),
            }
            if index == 0:
                embed["description"] = description
            payload: Dict[str, Any] = {"embeds": [embed]}
            if index == 0 and message.mention_prefix:
                payload["content"] = message.mention_prefix
            payloads.append(payload)
        return payloads
