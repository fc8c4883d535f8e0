"""Contest duration helpers"""
import math
from datetime import datetime


def duration_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between start and end, half a minute rounds up"""
    return math.floor((end_time - start_time).total_seconds() / 60 + 0.5)


def format_duration(minutes: int) -> str:
    """
    Format a minute count as a human readable duration.

    Zero components are omitted: 120 -> "2h", 90 -> "1h 30m", 45 -> "45m".
    A zero duration is rendered as "0m".
    """
    hours, mins = divmod(max(minutes, 0), 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if mins:
        parts.append(f"{mins}m")

    return " ".join(parts) if parts else "0m"
