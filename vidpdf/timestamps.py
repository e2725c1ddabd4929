"""Parse and format ``minutes:seconds`` time stamps."""

from __future__ import annotations

import re
from collections.abc import Iterable

MAX_TIMESTAMPS = 100

_TIMESTAMP = re.compile(r"\s*([+-]?\d+):\s*([+-]?\d+)")


class TimestampError(ValueError):
    """Raised for malformed time stamps or too many of them."""


def parse_timestamp(text: str) -> int:
    """Return the number of seconds in a ``minutes:seconds`` string."""
    match = _TIMESTAMP.match(text)
    if match is None:
        raise TimestampError(f"Invalid time format: {text}")
    minutes, seconds = (int(group) for group in match.groups())
    return minutes * 60 + seconds


def parse_timestamps(tokens: Iterable[str]) -> list[int]:
    """Parse each token; at most MAX_TIMESTAMPS are allowed."""
    result: list[int] = []
    for token in tokens:
        if len(result) >= MAX_TIMESTAMPS:
            raise TimestampError(f"Too many time stamps (max {MAX_TIMESTAMPS}).")
        result.append(parse_timestamp(token))
    return result


def format_timestamp(seconds: int) -> str:
    """Format *seconds* as ``m:ss``."""
    sign = -1 if seconds < 0 else 1
    minutes, secs = divmod(abs(seconds), 60)
    return f"{sign * minutes}:{sign * secs:02d}"