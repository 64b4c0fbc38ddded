"""
Symbolic interval tokens ("30m", "6h", ...) mapped to milliseconds.

Two fixed tables exist: one for how often update checks run and one for how
often restart reminders repeat. Unknown tokens never fail; they resolve to the
table's fallback token.
"""

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

CHECK_INTERVALS: Dict[str, int] = {
    '5m': 5 * MINUTE_MS,
    '30m': 30 * MINUTE_MS,
    '1h': HOUR_MS,
    '6h': 6 * HOUR_MS,
    '12h': 12 * HOUR_MS,
    '1d': DAY_MS,
}

REMINDER_INTERVALS: Dict[str, int] = {
    '1h': HOUR_MS,
    '6h': 6 * HOUR_MS,
    '12h': 12 * HOUR_MS,
    '1d': DAY_MS,
}

DEFAULT_CHECK_INTERVAL = '30m'
DEFAULT_REMINDER_INTERVAL = '6h'


def parse_interval(token: Optional[str], table: Dict[str, int], fallback_token: str) -> int:
    """
    Resolve an interval token against a table.

    Args:
        token: Symbolic token such as "30m" (may be empty or None)
        table: Mapping of tokens to milliseconds
        fallback_token: Token used when ``token`` is not in the table

    Returns:
        Duration in milliseconds
    """
    key = token.strip().lower() if isinstance(token, str) else ''
    if key in table:
        return table[key]

    logger.warning(f"Unknown interval '{token}', falling back to {fallback_token}")
    return table[fallback_token]


def parse_check_interval(token: Optional[str]) -> int:
    return parse_interval(token, CHECK_INTERVALS, DEFAULT_CHECK_INTERVAL)


def parse_reminder_interval(token: Optional[str]) -> int:
    return parse_interval(token, REMINDER_INTERVALS, DEFAULT_REMINDER_INTERVAL)
