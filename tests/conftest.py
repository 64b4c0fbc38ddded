"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "timing: marks tests that depend on real timer delays (deselect with '-m \"not timing\"')"
    )


@pytest.fixture(autouse=True)
def isolated_notification_env(monkeypatch):
    """Keep host environment settings from leaking into channel selection."""
    for key in ("NOTIFICATION_DRY_RUN", "DISCORD_WEBHOOK_URL", "DISCORD_ADMIN_ROLE_ID", "WEB_HOST", "WEB_PORT"):
        monkeypatch.delenv(key, raising=False)
    yield
