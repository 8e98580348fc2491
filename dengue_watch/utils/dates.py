"""
Calendar helpers shared by the early warning check, forecasts and dashboards.

All datetimes are naive and interpreted in server local time.
"""
from datetime import datetime, timedelta
from typing import Tuple

from dateutil.relativedelta import relativedelta


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """
    Returns the inclusive range of a calendar month.

    The end is 23:59:59 of the last day of the month.
    """
    start = datetime(year, month, 1)
    end = start + relativedelta(months=1) - timedelta(seconds=1)
    return start, end


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Moves (year, month) by a number of months, rolling the year over as needed."""
    shifted = datetime(year, month, 1) + relativedelta(months=months)
    return shifted.year, shifted.month


def month_start(moment: datetime, months_back: int = 0) -> datetime:
    """First instant of the month `months_back` months before `moment`."""
    return datetime(moment.year, moment.month, 1) - relativedelta(months=months_back)


def year_bounds(year: int) -> Tuple[datetime, datetime]:
    """Jan 1 00:00:00 to Dec 31 23:59:59 of `year`."""
    return datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59)


def start_of_week_monday(moment: datetime) -> datetime:
    """Midnight of the Monday starting the week that contains `moment`."""
    monday = moment - timedelta(days=moment.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def add_days(moment: datetime, days: int) -> datetime:
    return moment + timedelta(days=days)


def format_short_date(moment: datetime) -> str:
    """'Jan 6' style label."""
    return f"{moment.strftime('%b')} {moment.day}"


def format_week_label(start: datetime) -> str:
    """Label for the 7-day bucket starting at `start`, e.g. 'Jan 6–Jan 12'."""
    return f"{format_short_date(start)}–{format_short_date(add_days(start, 6))}"
