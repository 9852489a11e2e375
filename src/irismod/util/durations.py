"""
Duration strings used by moderation commands and auto-moderation rules.

Durations are written as ``<number><unit>`` with unit one of ``s``, ``m``,
``h`` or ``d`` (``30s``, ``10m``, ``2h``, ``7d``). Platform calls take the
value in milliseconds.
"""

from __future__ import annotations

import math
import re

DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")

UNIT_MILLISECONDS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

DAY_MILLISECONDS = UNIT_MILLISECONDS["d"]
PERMANENT_DURATION = "Permanent"


def is_valid_duration(duration: object) -> bool:
    """Return True if ``duration`` is a string matching the duration grammar."""
    return isinstance(duration, str) and DURATION_PATTERN.match(duration.strip().lower()) is not None


def parse_duration(duration: str) -> int:
    """
    Convert a duration string into milliseconds.

    Args:
        duration: Duration such as ``"10m"``. Units are case-insensitive.

    Returns:
        int: Duration in milliseconds.

    Raises:
        ValueError: If the string does not match ``^\\d+[smhd]$``.
    """
    match = DURATION_PATTERN.match(duration.strip().lower()) if isinstance(duration, str) else None
    if match is None:
        raise ValueError(f"Invalid duration {duration!r}; expected formats like 30s, 10m, 1h, 1d")
    value, unit = match.groups()
    return int(value) * UNIT_MILLISECONDS[unit]


def retention_days(duration: str | None) -> int:
    """
    Map a ban duration onto the platform's message-retention window.

    The window is the duration rounded up to whole days and is only applied
    when it lands in 1..7; anything else means no message deletion.
    """
    if not duration:
        return 0
    days = math.ceil(parse_duration(duration) / DAY_MILLISECONDS)
    return days if 1 <= days <= 7 else 0


def format_duration(milliseconds: int) -> str:
    """Render milliseconds as a short human-readable label."""
    if not milliseconds:
        return PERMANENT_DURATION

    seconds = milliseconds // 1000
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"
