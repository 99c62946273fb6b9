from __future__ import annotations

import pandas as pd
from typing import List, Optional


def to_timestamp(d) -> pd.Timestamp:
    """Normalize any date-like input to a midnight pd.Timestamp."""
    return pd.Timestamp(d).normalize()


def yearfrac(start: pd.Timestamp, end: pd.Timestamp, convention: str) -> float:
    """
    Year fraction between two dates under a day count convention.

    Supported:
    - ACT/365, ACT/365F
    - ACT/360
    - 30/360, 30/360US (US bond basis)
    """
    start = pd.Timestamp(start)
    end = pd.Timestamp(end)

    convention = convention.upper().replace(" ", "")
    if end < start:
        raise ValueError(f"end < start: {start=} {end=}")

    if convention in ("ACT/365", "ACT/365F"):
        return (end - start).days / 365.0

    if convention == "ACT/360":
        return (end - start).days / 360.0

    if convention in ("30/360", "30/360US"):
        y1, m1, d1 = start.year, start.month, start.day
        y2, m2, d2 = end.year, end.month, end.day

        # 30/360 US convention
        if d1 == 31:
            d1 = 30
        if d2 == 31 and d1 == 30:
            d2 = 30

        return ((y2 - y1) * 360 + (m2 - m1) * 30 + (d2 - d1)) / 360.0

    raise ValueError(f"Unsupported day count convention: {convention}")


# ---- calendars ----

CALENDARS = ("NULL", "WEEKENDS")


def _calendar_name(calendar: Optional[str]) -> str:
    name = "NULL" if calendar is None else calendar.upper()
    if name not in CALENDARS:
        raise ValueError(f"Unsupported calendar: {calendar}")
    return name


def is_business_day(date: pd.Timestamp, calendar: Optional[str] = None) -> bool:
    """
    NULL: every day is a business day.
    WEEKENDS: Saturdays and Sundays are holidays, nothing else.
    """
    if _calendar_name(calendar) == "NULL":
        return True
    return pd.Timestamp(date).weekday() < 5


def adjust(date: pd.Timestamp, convention: str = "FOLLOWING", calendar: Optional[str] = None) -> pd.Timestamp:
    """
    Roll a date onto a business day.

    Conventions: UNADJUSTED, FOLLOWING, MODIFIEDFOLLOWING, PRECEDING.
    """
    date = to_timestamp(date)
    convention = convention.upper().replace(" ", "").replace("_", "")

    if convention == "UNADJUSTED":
        return date

    if convention in ("FOLLOWING", "MODIFIEDFOLLOWING"):
        d = date
        while not is_business_day(d, calendar):
            d = d + pd.Timedelta(days=1)
        if convention == "MODIFIEDFOLLOWING" and d.month != date.month:
            return adjust(date, "PRECEDING", calendar)
        return d

    if convention == "PRECEDING":
        d = date
        while not is_business_day(d, calendar):
            d = d - pd.Timedelta(days=1)
        return d

    raise ValueError(f"Unsupported business day convention: {convention}")


def advance(
    date: pd.Timestamp,
    n: int,
    unit: str,
    calendar: Optional[str] = None,
    convention: str = "FOLLOWING",
) -> pd.Timestamp:
    """
    Move a date by n units, unit in D (business days), W, M, Y.

    Day moves count business days on the calendar; the other units move on the
    calendar grid and then roll with the given convention.
    """
    date = to_timestamp(date)
    unit = unit.upper()[:1]
    n = int(n)

    if unit == "D":
        if n == 0:
            return adjust(date, convention, calendar)
        step = 1 if n > 0 else -1
        d = date
        remaining = abs(n)
        while remaining > 0:
            d = d + pd.Timedelta(days=step)
            if is_business_day(d, calendar):
                remaining -= 1
        return d

    if unit == "W":
        d = date + pd.Timedelta(weeks=n)
    elif unit == "M":
        d = date + pd.DateOffset(months=n)
    elif unit == "Y":
        d = date + pd.DateOffset(years=n)
    else:
        raise ValueError(f"Unsupported time unit: {unit}")

    return adjust(d, convention, calendar)


def schedule_dates(
    start: pd.Timestamp,
    end: pd.Timestamp,
    months: int,
    calendar: Optional[str] = None,
    convention: str = "UNADJUSTED",
) -> List[pd.Timestamp]:
    """
    Regular schedule generated backward from end, starting with start.

    A short stub, if any, sits at the front. Dates after start are rolled with
    the convention; start itself is returned as given.
    """
    start = to_timestamp(start)
    end = to_timestamp(end)

    if months <= 0:
        raise ValueError("months must be positive")
    if end <= start:
        raise ValueError("End must be after start.")

    unadjusted: List[pd.Timestamp] = []
    k = 0
    d = end
    while d > start:
        unadjusted.append(d)
        k += 1
        d = end - pd.DateOffset(months=months * k)

    dates = [start]
    for d in reversed(unadjusted):
        rolled = adjust(d, convention, calendar)
        if rolled > dates[-1]:
            dates.append(rolled)
    return dates


def settlement_date(val_date: pd.Timestamp, lag_days: int = 2, calendar: Optional[str] = None) -> pd.Timestamp:
    """Valuation date moved forward by lag_days business days."""
    return advance(val_date, lag_days, "D", calendar)
