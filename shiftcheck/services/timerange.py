"""Time-of-day arithmetic for shift windows."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta


def parse_time_of_day(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string."""
    return datetime.strptime(value, "%H:%M").time()


def resolve_range(day: date, start_time: str, end_time: str) -> tuple[datetime, datetime]:
    """Anchor an ``HH:MM`` window on *day* and return (start, end) instants.

    A window whose end is not after its start is an overnight shift: the
    end moves to the following calendar day.
    """
    start = datetime.combine(day, parse_time_of_day(start_time))
    end = datetime.combine(day, parse_time_of_day(end_time))
    if end <= start:
        end += timedelta(days=1)
    return start, end


def calculate_duration(start_time: str, end_time: str) -> float:
    """Hours between two times of day, wrapping past midnight, to one decimal."""
    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    hours = (end.hour - start.hour) + (end.minute - start.minute) / 60
    if hours < 0:
        hours += 24
    return round(hours, 1)
