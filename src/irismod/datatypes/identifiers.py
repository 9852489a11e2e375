"""
Type-safe wrappers for Discord snowflake identifiers.

Actors (guild members) and tenants (guilds) are both addressed by 64-bit
snowflakes. Wrapping them keeps the two from being swapped at call sites
while still comparing equal to the raw int or string form.
"""

from __future__ import annotations

import re
from typing import Union

MENTION_CHARS = re.compile(r"[<@!&>]")
SNOWFLAKE_PATTERN = re.compile(r"^\d{17,19}$")


class Snowflake:
    """
    Base wrapper around a snowflake ID stored as a decimal string.

    Example:
        >>> ActorID(123456789012345678).to_int()
        123456789012345678
        >>> ActorID("<@!123456789012345678>") == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(MENTION_CHARS.sub("", value).strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def to_int(self) -> int:
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class ActorID(Snowflake):
    """Snowflake of a guild member (the actor or target of a command)."""

    __slots__ = ()


class TenantID(Snowflake):
    """Snowflake of a guild (the tenant commands are scoped to)."""

    __slots__ = ()


def clean_reference(ref: str) -> str:
    """Strip mention syntax (``<@!123>``) from a target reference."""
    return MENTION_CHARS.sub("", ref).strip()


def is_snowflake(ref: str) -> bool:
    """Return True if ``ref`` (after stripping mention syntax) looks like a snowflake."""
    return bool(SNOWFLAKE_PATTERN.match(clean_reference(ref)))
