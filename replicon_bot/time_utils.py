"""
Time utility functions for converting between clock formats.

Extras use 24-hour military time ("1600") while Replicon expects
12-hour text ("4:00pm").
"""

import re


class TimeFormatError(ValueError):
    """Exception raised when a time string cannot be converted."""
    pass


MILITARY_PATTERN = re.compile(r'^(\d{2})(\d{2})$')
STANDARD_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*(am|pm)$', re.IGNORECASE)
CLOCK_24H_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')


def is_military_time(value: str) -> bool:
    """
    Check whether a string is valid military time (HHMM).

    Examples:
        >>> is_military_time("1600")
        True
        >>> is_military_time("2460")
        False
    """
    match = MILITARY_PATTERN.match(value.strip())
    if not match:
        return False
    hour, minute = int(match.group(1)), int(match.group(2))
    return hour <= 23 and minute <= 59


def is_24h_clock(value: str) -> bool:
    """
    Check whether a string matches the 24-hour H:MM / HH:MM pattern.

    Examples:
        >>> is_24h_clock("07:00")
        True
        >>> is_24h_clock("7:00am")
        False
    """
    return bool(CLOCK_24H_PATTERN.match(value))


def military_to_standard(military_time: str) -> str:
    """
    Convert military time to 12-hour text.

    Args:
        military_time: Time as HHMM (e.g., "1600")

    Returns:
        Time as h:mmam/pm (e.g., "4:00pm")

    Raises:
        TimeFormatError: If the value is not valid military time

    Examples:
        >>> military_to_standard("1600")
        '4:00pm'
        >>> military_to_standard("0000")
        '12:00am'
        >>> military_to_standard("1200")
        '12:00pm'
    """
    value = military_time.strip()
    if not is_military_time(value):
        raise TimeFormatError(f"Invalid military time: '{military_time}' (expected HHMM)")

    hour = int(value[:2])
    minute = value[2:]

    if hour == 0:
        return f"12:{minute}am"
    elif hour < 12:
        return f"{hour}:{minute}am"
    elif hour == 12:
        return f"12:{minute}pm"
    else:
        return f"{hour - 12}:{minute}pm"


def standard_to_military(standard_time: str) -> str:
    """
    Convert 12-hour text to military time.

    Args:
        standard_time: Time as h:mmam/pm (e.g., "4:00pm")

    Returns:
        Time as HHMM (e.g., "1600")

    Raises:
        TimeFormatError: If the value is not valid 12-hour text

    Examples:
        >>> standard_to_military("4:00pm")
        '1600'
        >>> standard_to_military("12:30am")
        '0030'
    """
    match = STANDARD_PATTERN.match(standard_time.strip())
    if not match:
        raise TimeFormatError(f"Invalid 12-hour time: '{standard_time}' (expected h:mmam/pm)")

    hour = int(match.group(1))
    minute = match.group(2)
    period = match.group(3).lower()

    if not (1 <= hour <= 12) or int(minute) > 59:
        raise TimeFormatError(f"Invalid 12-hour time: '{standard_time}'")

    if period == 'pm' and hour != 12:
        hour += 12
    elif period == 'am' and hour == 12:
        hour = 0

    return f"{hour:02d}{minute}"
