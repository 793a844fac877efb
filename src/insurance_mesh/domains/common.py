"""Identifier minting and date helpers shared by the domain services."""

import calendar
import itertools
import threading
from datetime import date, datetime
from typing import Callable

Clock = Callable[[], datetime]


class IdGenerator:
    """Monotonic identifier source, e.g. ``POL-10001``, ``CLM-10002``.

    One counter is shared across prefixes so identifiers minted by the same
    generator never repeat, whichever prefix they carry.
    """

    def __init__(self, start: int = 10001) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self, prefix: str) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{prefix}-{value:05d}"


def system_clock() -> datetime:
    return datetime.now()


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def add_years(day: date, years: int) -> date:
    return add_months(day, 12 * years)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")
