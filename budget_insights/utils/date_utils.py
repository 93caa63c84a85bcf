"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta
from typing import Tuple


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end) datetime window covering one calendar day"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def is_weekend(day: date) -> bool:
    """Saturday or Sunday"""
    return day.weekday() >= 5


def month_bounds(day: date) -> Tuple[date, date]:
    """First and last day of the month containing day"""
    first = day.replace(day=1)
    return first, first_of_next_month(day) - timedelta(days=1)


def first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)
