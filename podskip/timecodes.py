"""Time code parsing and formatting."""

import math
import re

TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")


def is_valid_timestamp(value: str) -> bool:
    """Check for M:SS, MM:SS, H:MM:SS or HH:MM:SS."""
    return bool(TIME_PATTERN.match(value.strip()))


def parse_timestamp(value: str | float | int) -> float:
    """Parse a time code to seconds.

    Numbers pass through unchanged. Unparseable strings give 0.0.
    """
    if isinstance(value, (int, float)):
        return float(value)
    if not value:
        return 0.0

    parts = value.strip().split(":")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return 0.0

    if len(numbers) == 2:
        return float(numbers[0] * 60 + numbers[1])
    if len(numbers) == 3:
        return float(numbers[0] * 3600 + numbers[1] * 60 + numbers[2])
    return 0.0


def format_timestamp(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS from one hour up."""
    if not seconds or math.isnan(seconds):
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
