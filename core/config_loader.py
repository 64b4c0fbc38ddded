import yaml
import os
from typing import Optional, Union
from pydantic import BaseModel, Field, field_validator

from core.intervals import DEFAULT_CHECK_INTERVAL, DEFAULT_REMINDER_INTERVAL


def _parse_color(value: Union[int, str]) -> int:
    """Accept 0x00ff00, "00ff00", "#00ff00" or "0x00ff00"."""
    if isinstance(value, int):
        return value
    text = str(value).strip().lstrip('#')
    if text.lower().startswith('0x'):
        text = text[2:]
    return int(text, 16)


class ReminderSettings(BaseModel):
    """Restart reminder cycle settings."""
    enabled: bool = False
    interval: str = DEFAULT_REMINDER_INTERVAL  # 1h, 6h, 12h, 1d
    max_reminders: int = Field(default=3, ge=0)


class NotificationConfig(BaseModel):
    """
    Configuration for update notifications.

    Controls batching, restart notices and the reminder cycle.
    """
    enable_update_notifications: bool = True
    enable_restart_reminders: bool = True

    # Debounce window for coalescing update events
    batch_delay_ms: int = Field(default=5000, ge=0)

    # Embed colors
    update_color: int = 0x00FF00
    restart_color: int = 0xFFA500

    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)

    # Role pinged in front of every message ("" or "default" = no ping)
    admin_role_id: Optional[str] = None

    # How the restarted process is called in message text
    host_label: str = "server"
    footer_text: str = "UpdateManager"

    @field_validator('update_color', 'restart_color', mode='before')
    @classmethod
    def _coerce_color(cls, value):
        return _parse_color(value)

    @field_validator('admin_role_id', mode='before')
    @classmethod
    def _coerce_role_id(cls, value):
        # Role ids are numeric and often written unquoted in YAML
        if value is None or isinstance(value, str):
            return value
        return str(value)


class UpdateCheckConfig(BaseModel):
    """Settings forwarded to the update-check service."""
    update_check_interval: str = DEFAULT_CHECK_INTERVAL  # 5m, 30m, 1h, 6h, 12h, 1d
    initial_delay_ms: int = 15000
    stagger_delay_ms: int = 5 * 60 * 1000


class HostConfig(BaseModel):
    """Identity of the process hosting the notifier (used for self-update alerts)."""
    name: str = "UpdateManager"
    version: str = "v1.0.0"
    repository_owner: Optional[str] = None
    repository_name: Optional[str] = None

    @property
    def repository_url(self) -> Optional[str]:
        if not self.repository_owner or not self.repository_name:
            return None
        return f"https://github.com/{self.repository_owner}/{self.repository_name}"


class DiscordConfig(BaseModel):
    enabled: bool = False
    webhook_url: Optional[str] = None
    username: str = "UpdateManager"


class WebConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class AppConfig(BaseModel):
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    update_check: UpdateCheckConfig = Field(default_factory=UpdateCheckConfig)
    host: HostConfig = Field(default_factory=HostConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from another dir), try the project root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    # Allow env var override for the Discord webhook
    env_webhook_url = os.environ.get("DISCORD_WEBHOOK_URL")
    if env_webhook_url:
        if not data.get('discord'):
            data['discord'] = {}
        data['discord']['webhook_url'] = env_webhook_url
        data['discord'].setdefault('enabled', True)

    # Allow env var override for the admin role ping
    env_role_id = os.environ.get("DISCORD_ADMIN_ROLE_ID")
    if env_role_id:
        if not data.get('notifications'):
            data['notifications'] = {}
        data['notifications']['admin_role_id'] = env_role_id

    # Web server overrides
    if 'WEB_HOST' in os.environ:
        if not data.get('web'):
            data['web'] = {}
        data['web']['host'] = os.environ['WEB_HOST']

    if 'WEB_PORT' in os.environ:
        if not data.get('web'):
            data['web'] = {}
        data['web']['port'] = int(os.environ['WEB_PORT'])

    return AppConfig(**data)
