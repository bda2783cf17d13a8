"""Clock-time parsing and formatting for timetables and queries."""

# Timetables express after-midnight service up to this hour
MAX_TIMETABLE_HOUR = 29


def parse_clock_time(time_str: str, max_hour: int | None = None) -> tuple[int, int]:
    """Parse an "HH:MM" string into hours and minutes.

    Hours may exceed 23 to express service after midnight on the same
    logical day. For example, "25:10" means 1:10 AM the next morning.

    Args:
        time_str: Time string in H:MM or HH:MM format.
        max_hour: Optional upper bound on the hour component.

    Returns:
        Tuple of (hours, minutes).

    Raises:
        ValueError: If the time string is invalid.
    """
    parts = time_str.strip().split(":")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ValueError(f"Invalid time format: {time_str!r}")
    if len(parts[0]) > 2 or len(parts[1]) != 2:
        raise ValueError(f"Invalid time format: {time_str!r}")

    hours = int(parts[0])
    minutes = int(parts[1])
    if minutes > 59 or (max_hour is not None and hours > max_hour):
        raise ValueError(f"Invalid time format: {time_str!r}")

    return hours, minutes


def clock_time_to_minutes(time_str: str, max_hour: int | None = None) -> int:
    """Convert an "HH:MM" string to minutes since midnight."""
    hours, minutes = parse_clock_time(time_str, max_hour)
    return hours * 60 + minutes


def is_timetable_time(cell: str) -> bool:
    """Check whether a timetable cell holds a usable time."""
    try:
        parse_clock_time(cell, MAX_TIMETABLE_HOUR)
    except ValueError:
        return False
    return True


def minutes_to_clock_time(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM" (hours may exceed 23)."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_clock_time(minutes: int) -> str:
    """Format minutes since midnight for human display.

    Converts 24-hour format to 12-hour with AM/PM.
    Times >= 24:00 are shown with "(+1)" suffix to indicate next day.

    Returns:
        Human-readable time like "8:30 AM" or "1:30 AM (+1)".
    """
    hours, mins = divmod(minutes, 60)

    next_day = ""
    if hours >= 24:
        hours -= 24
        next_day = " (+1)"

    period = "AM"
    display_hour = hours
    if hours == 0:
        display_hour = 12
    elif hours == 12:
        period = "PM"
    elif hours > 12:
        display_hour = hours - 12
        period = "PM"

    return f"{display_hour}:{mins:02d} {period}{next_day}"
