"""Date manipulation utilities"""

import calendar
import math
from datetime import date
from typing import Tuple

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def add_months(from_date: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def month_key(day: date) -> Tuple[int, int]:
    return day.year, day.month


def week_of_month_key(day: date) -> Tuple[int, int, int]:
    """Bucket a date into (year, month, week-of-month 1..5)"""
    return day.year, day.month, math.ceil(day.day / 7)


def days_between(start: date, end: date) -> int:
    return (end - start).days
