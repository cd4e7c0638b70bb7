"""
Calendar Periods

Day bounds, calendar months and trend windows. All bounds are
inclusive: a day runs from 00:00:00 to 23:59:59.999999.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


def to_naive_utc(value: datetime) -> datetime:
    """Aware instants become naive UTC; naive ones are taken as already UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_day(value: Union[date, datetime]) -> date:
    """The UTC calendar day of a moment."""
    if isinstance(value, datetime):
        return to_naive_utc(value).date()
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Midnight at the start of the value's calendar day."""
    value = as_day(value)
    return datetime.combine(value, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """The last representable instant of the value's calendar day."""
    value = as_day(value)
    return datetime.combine(value, time.max)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def iter_days(start: date, end: date):
    """Yield every calendar day from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class MonthPeriod(BaseModel):
    """A calendar month, the unit budgets and rollovers are computed in."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    @classmethod
    def of(cls, value: Union[date, datetime]) -> "MonthPeriod":
        return cls(year=value.year, month=value.month)

    @classmethod
    def parse(cls, value: str) -> "MonthPeriod":
        """Parse 'YYYY-MM'."""
        try:
            year_str, month_str = value.strip().split("-")
            return cls(year=int(year_str), month=int(month_str))
        except ValueError as e:
            raise ValueError(f"Expected a month as YYYY-MM, got {value!r}") from e

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return last_day_of_month(self.year, self.month)

    def previous(self) -> "MonthPeriod":
        if self.month == 1:
            return MonthPeriod(year=self.year - 1, month=12)
        return MonthPeriod(year=self.year, month=self.month - 1)

    def next(self) -> "MonthPeriod":
        if self.month == 12:
            return MonthPeriod(year=self.year + 1, month=1)
        return MonthPeriod(year=self.year, month=self.month + 1)

    def contains(self, moment: Union[date, datetime]) -> bool:
        return moment.year == self.year and moment.month == self.month

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class TrendPreset(str, Enum):
    """The three asset-trend ranges offered by the app."""
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"


class TrendWindow(BaseModel):
    """
    Inclusive calendar range a trend series is evaluated over.

    An inverted window (end before start) covers no days.
    """
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @classmethod
    def preset(cls, preset: Union[TrendPreset, str], today: date) -> "TrendWindow":
        """
        Build one of the app's preset windows ending today.

        30d and 90d reach back that many days (one point per day,
        including today). 1y reaches back twelve months.
        """
        preset = TrendPreset(preset)
        if preset is TrendPreset.LAST_30_DAYS:
            return cls(start=today - timedelta(days=30), end=today)
        if preset is TrendPreset.LAST_90_DAYS:
            return cls(start=today - timedelta(days=90), end=today)

        year, month = today.year - 1, today.month
        day = min(today.day, calendar.monthrange(year, month)[1])
        return cls(start=date(year, month, day), end=today)

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days
