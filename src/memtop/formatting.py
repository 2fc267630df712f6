"""Formatting utilities for consistent output across CLI and TUI."""

import math
import re

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_SCALE = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def format_bytes(num_bytes: float) -> str:
    """Format a byte count with the largest unit that keeps the value under 1024.

    Negative input clamps to zero. Bytes are shown without decimals, scaled
    units with one decimal place. PB is the top unit and is unbounded.

    Examples:
        512 -> "512 B", 1024 -> "1.0 KB", 1572864 -> "1.5 MB"
    """
    value = max(float(num_bytes), 0.0)
    idx = 0
    while value >= 1024 and idx < len(_BYTE_UNITS) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{value:.0f} {_BYTE_UNITS[idx]}"
    return f"{value:.1f} {_BYTE_UNITS[idx]}"


def format_bytes_rate(bytes_per_sec: float) -> str:
    """Format bandwidth as bytes with a /s suffix."""
    return f"{format_bytes(bytes_per_sec)}/s"


def format_uptime(seconds: float) -> str:
    """Format server uptime as "HHh MMm SSs", prefixed with "Dd " past a day.

    Non-positive input renders as "0s".
    """
    if seconds <= 0:
        return "0s"
    total = round(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    if days > 0:
        return f"{days}d {hours:02d}h {minutes:02d}m {secs:02d}s"
    return f"{hours:02d}h {minutes:02d}m {secs:02d}s"


def format_interval(seconds: float) -> str:
    """Format a refresh interval compactly: "500ms", "2s", "1.5s", "1m30s"."""
    if seconds < 1:
        return f"{seconds * 1000:g}ms"
    if seconds < 60:
        return f"{seconds:g}s"
    minutes, secs = divmod(seconds, 60)
    return f"{int(minutes)}m{secs:g}s"


def parse_duration(text: str) -> float:
    """Parse a duration like "2s", "500ms", "1m30s" or a bare number of seconds.

    Raises:
        ValueError: If the text isn't a duration or isn't positive
    """
    text = text.strip().lower()
    try:
        seconds = float(text)
    except ValueError:
        parts = _DURATION_PART.findall(text)
        if not parts or "".join(num + unit for num, unit in parts) != text:
            raise ValueError(f"Invalid duration: {text!r}") from None
        seconds = sum(float(num) * _DURATION_SCALE[unit] for num, unit in parts)

    if not 0 < seconds < math.inf:
        raise ValueError(f"Duration must be positive and finite, got {text!r}")
    return seconds


def bool_to_word(flag: bool) -> str:
    """Render a flag as "yes" or "no"."""
    return "yes" if flag else "no"
