#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests can be run with standard Python tools:

    # Run all tests
    python -m pytest tests/ -v

    # Using unittest
    python -m unittest discover tests -v

Timer-driven tests use millisecond delays; TIMER_SLACK_SECONDS is how long a
test waits for a timer that should already have fired.
"""

import asyncio

TIMER_SLACK_SECONDS = 0.15


async def wait_for_timers(seconds: float = TIMER_SLACK_SECONDS) -> None:
    """Let pending timers fire and their callbacks finish."""
    await asyncio.sleep(seconds)
