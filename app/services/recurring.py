# app/services/recurring.py
#
# Recurrence Helpers
# Date arithmetic for recurring transaction templates.

from datetime import datetime
from typing import List, Optional

from dateutil.relativedelta import relativedelta

_FREQUENCY_STEP = {
    "daily": lambda n: relativedelta(days=n),
    "weekly": lambda n: relativedelta(weeks=n),
    "monthly": lambda n: relativedelta(months=n),
    "yearly": lambda n: relativedelta(years=n),
}


def next_due_date(current: datetime, frequency: str, interval: int = 1) -> datetime:
    """
    Return the occurrence after `current` for the given frequency.

    Month and year steps clamp to the end of shorter months
    (Jan 31 + 1 month -> Feb 28/29).
    """
    if frequency not in _FREQUENCY_STEP:
        raise ValueError(f"Unknown recurring frequency: {frequency!r}")
    if interval < 1:
        raise ValueError("Recurring interval must be at least 1")
    return current + _FREQUENCY_STEP[frequency](interval)


def due_dates(
    start: datetime,
    frequency: str,
    interval: int,
    as_of: datetime,
    end_date: Optional[datetime] = None,
) -> List[datetime]:
    """
    All due dates from `start` up to and including `as_of` (and `end_date`, if set).
    """
    dates: List[datetime] = []
    current = start
    # Monthly steps are computed from the start date, so that a template
    # due on the 31st returns to the 31st after a short month.
    step = 0
    while current <= as_of and (end_date is None or current <= end_date):
        dates.append(current)
        step += 1
        current = next_due_date(start, frequency, interval * step)
    return dates
