"""Sprint cadence and calendar helpers.

Sprint 1 starts on the first sprint start date and every sprint lasts a
whole number of weeks. A sprint finishes on the last business day (Mon-Fri)
before the next sprint starts.
"""

import datetime
from typing import List, Union

import numpy as np
import pandas as pd

DateLike = Union[str, datetime.date, pd.Timestamp]


def to_date(value: DateLike) -> datetime.date:
    """Normalise an ISO string, date, datetime or Timestamp to a date."""
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    return pd.Timestamp(value).date()


def add_days(value: DateLike, days: int) -> datetime.date:
    """Add calendar days to a date."""
    return (pd.Timestamp(to_date(value)) + pd.Timedelta(days=days)).date()


def add_weeks(value: DateLike, weeks: int) -> datetime.date:
    """Add whole weeks to a date."""
    return add_days(value, weeks * 7)


def is_weekend(value: DateLike) -> bool:
    """True for Saturdays and Sundays."""
    return to_date(value).weekday() >= 5


def preceding_business_day(value: DateLike) -> datetime.date:
    """Return the date itself on a weekday, otherwise the Friday before it."""
    d = to_date(value)
    weekday = d.weekday()
    if weekday == 6:
        return add_days(d, -2)
    if weekday == 5:
        return add_days(d, -1)
    return d


def sprint_start_date(
    first_sprint_start_date: DateLike, sprint_number: int, cadence_weeks: int
) -> datetime.date:
    """Start date of `sprint_number`, counting the first sprint as 1."""
    return add_weeks(first_sprint_start_date, (sprint_number - 1) * cadence_weeks)


def sprint_finish_date(start_date: DateLike, cadence_weeks: int) -> datetime.date:
    """Last business day before the sprint after `start_date` begins."""
    next_sprint_start = add_weeks(start_date, cadence_weeks)
    return preceding_business_day(add_days(next_sprint_start, -1))


def sprint_finish_date_for(
    first_sprint_start_date: DateLike, sprint_number: int, cadence_weeks: int
) -> datetime.date:
    """Finish date of `sprint_number` relative to the first sprint start."""
    start = sprint_start_date(first_sprint_start_date, sprint_number, cadence_weeks)
    return sprint_finish_date(start, cadence_weeks)


def count_working_days(start_date: DateLike, end_date: DateLike) -> int:
    """Count weekdays between two dates, both ends inclusive."""
    start = to_date(start_date)
    end = to_date(end_date)
    if end < start:
        return 0
    # busday_count excludes the end date
    return int(np.busday_count(start, add_days(end, 1)))


def working_days_in_range(start_date: DateLike, end_date: DateLike) -> List[datetime.date]:
    """All weekdays between two dates, both ends inclusive."""
    start = to_date(start_date)
    end = to_date(end_date)
    if end < start:
        return []
    return [ts.date() for ts in pd.bdate_range(start, end)]


def format_date_compact(value: DateLike) -> str:
    """Short chart label without the year, e.g. `Jan 5`."""
    d = to_date(value)
    return f"{d.strftime('%b')} {d.day}"
