"""Sector <-> MM:SS:FF timestamp arithmetic (75 sectors per second)."""

import re

SECTORS_PER_SECOND = 75
SECONDS_PER_MINUTE = 60
SECTORS_PER_MINUTE = SECTORS_PER_SECOND * SECONDS_PER_MINUTE  # 4500

_TIMESTAMP_PATTERN = re.compile(r'^(\d+):(\d{1,2}):(\d{1,2})$')


def sectors_to_timestamp(sectors: int) -> str:
    """
    Convert a sector count to a CUE timestamp.

    Args:
        sectors: Non-negative sector count

    Returns:
        Timestamp in MM:SS:FF format, each field zero-padded to 2 digits

    Raises:
        ValueError: If sectors is negative

    Example:
        >>> sectors_to_timestamp(100)
        '00:01:25'
    """
    if sectors < 0:
        raise ValueError(f"Sector count cannot be negative: {sectors}")

    minutes = sectors // SECTORS_PER_MINUTE
    seconds = (sectors % SECTORS_PER_MINUTE) // SECTORS_PER_SECOND
    frames = sectors % SECTORS_PER_SECOND
    return f"{minutes:02d}:{seconds:02d}:{frames:02d}"


def timestamp_to_sectors(timestamp: str) -> int:
    """
    Convert a CUE timestamp to a sector count.

    Args:
        timestamp: MM:SS:FF string (SS 0-59, FF 0-74)

    Returns:
        Sector count

    Raises:
        ValueError: If the timestamp is malformed or out of range
    """
    match = _TIMESTAMP_PATTERN.match(timestamp.strip())
    if not match:
        raise ValueError(f"Invalid timestamp format: {timestamp}")

    minutes, seconds, frames = (int(group) for group in match.groups())
    if seconds >= SECONDS_PER_MINUTE:
        raise ValueError(f"Seconds out of range in timestamp: {timestamp}")
    if frames >= SECTORS_PER_SECOND:
        raise ValueError(f"Frames out of range in timestamp: {timestamp}")

    return minutes * SECTORS_PER_MINUTE + seconds * SECTORS_PER_SECOND + frames
