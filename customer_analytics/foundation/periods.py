"""Analysis periods, comparison presets and range filtering.

An analysis compares a *current* window against a *previous* one. This
module defines the period descriptor, resolves the standard comparison
presets relative to a "today" instant, and narrows a customer set down to
the transactions falling inside a window.

Quick Start
-----------
>>> from datetime import datetime
>>> pair = resolve_preset(PeriodPreset.LAST_30_DAYS, datetime(2024, 3, 31))
>>> pair.current.start_date
datetime.datetime(2024, 3, 1, 0, 0)
>>> pair.previous.end_date
datetime.datetime(2024, 2, 29, 0, 0)
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Sequence

from customer_analytics.foundation.customers import Customer

logger = logging.getLogger(__name__)


def format_period_label(start: datetime, end: datetime) -> str:
    """Render ``start``/``end`` as ``"Mar 1, 2024 - Mar 31, 2024"``."""

    return f"{start:%b} {start.day}, {start.year} - {end:%b} {end.day}, {end.year}"


@dataclass(frozen=True)
class AnalysisPeriod:
    """A closed time window ``[start_date, end_date]``.

    Attributes
    ----------
    start_date:
        Inclusive start of the window.
    end_date:
        Inclusive end of the window. Also used as the RFM reference date.
    label:
        Human readable label; derived from the dates when omitted.
    """

    start_date: datetime
    end_date: datetime
    label: str = ""

    def __post_init__(self) -> None:
        """Validate period bounds."""
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date must not be after end_date: "
                f"start={self.start_date.isoformat()}, end={self.end_date.isoformat()}"
            )
        if not self.label:
            object.__setattr__(
                self, "label", format_period_label(self.start_date, self.end_date)
            )

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date


@dataclass(frozen=True)
class PeriodPair:
    """The current and previous windows of a comparison."""

    current: AnalysisPeriod
    previous: AnalysisPeriod


class PeriodPreset(str, Enum):
    """Standard comparison presets."""

    LAST_30_DAYS = "last30"
    LAST_90_DAYS = "last90"
    THIS_MONTH = "this_month"
    THIS_QUARTER = "this_quarter"
    THIS_YEAR = "this_year"
    YEAR_OVER_YEAR = "yoy"


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def _sub_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` back by whole months, clamping the day of month."""

    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _start_of_month(moment: datetime) -> datetime:
    return _start_of_day(moment.replace(day=1))


def _end_of_month(moment: datetime) -> datetime:
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    return _end_of_day(moment.replace(day=last_day))


def _start_of_quarter(moment: datetime) -> datetime:
    first_month = 3 * ((moment.month - 1) // 3) + 1
    return _start_of_day(moment.replace(month=first_month, day=1))


def _end_of_quarter(moment: datetime) -> datetime:
    last_month = 3 * ((moment.month - 1) // 3) + 3
    return _end_of_month(moment.replace(month=last_month, day=1))


def _start_of_year(moment: datetime) -> datetime:
    return _start_of_day(moment.replace(month=1, day=1))


def _end_of_year(moment: datetime) -> datetime:
    return _end_of_day(moment.replace(month=12, day=31))


def resolve_preset(preset: PeriodPreset | str, today: datetime) -> PeriodPair:
    """Resolve a comparison preset into concrete current/previous windows.

    Parameters
    ----------
    preset:
        One of :class:`PeriodPreset` (or its string value).
    today:
        The instant the comparison is anchored to. "To date" windows end
        exactly at this instant.

    Returns
    -------
    PeriodPair
        Current and previous analysis periods.

    Raises
    ------
    ValueError
        If ``preset`` is not a known preset value.
    """
    preset = PeriodPreset(preset)

    if preset is PeriodPreset.LAST_30_DAYS:
        current = (today - timedelta(days=30), today)
        previous = (today - timedelta(days=60), today - timedelta(days=31))
    elif preset is PeriodPreset.LAST_90_DAYS:
        current = (today - timedelta(days=90), today)
        previous = (today - timedelta(days=180), today - timedelta(days=91))
    elif preset is PeriodPreset.THIS_MONTH:
        last_month = _sub_months(today, 1)
        current = (_start_of_month(today), today)
        previous = (_start_of_month(last_month), _end_of_month(last_month))
    elif preset is PeriodPreset.THIS_QUARTER:
        last_quarter = _sub_months(today, 3)
        current = (_start_of_quarter(today), today)
        previous = (_start_of_quarter(last_quarter), _end_of_quarter(last_quarter))
    elif preset is PeriodPreset.THIS_YEAR:
        last_year = _sub_months(today, 12)
        current = (_start_of_year(today), today)
        previous = (_start_of_year(last_year), _end_of_year(last_year))
    else:
        # Month to date against the same calendar month one year earlier.
        last_year = _sub_months(today, 12)
        current = (_start_of_month(today), today)
        previous = (_start_of_month(last_year), _end_of_month(last_year))

    return PeriodPair(
        current=AnalysisPeriod(*current),
        previous=AnalysisPeriod(*previous),
    )


def filter_to_period(
    customers: Sequence[Customer],
    period: AnalysisPeriod,
    drop_inactive: bool = True,
) -> list[Customer]:
    """Restrict every customer's history to transactions inside ``period``.

    Parameters
    ----------
    customers:
        Full customer set.
    period:
        Window to keep; both bounds are inclusive.
    drop_inactive:
        When True (default) customers without any transaction in the window
        are removed, so that comparisons can tell New and Lost customers
        apart from retained ones. When False they are kept with an empty
        history.

    Returns
    -------
    list[Customer]
        Filtered customers in input order.
    """
    filtered: list[Customer] = []
    for customer in customers:
        kept = [t for t in customer.transactions if period.contains(t.date)]
        if not kept and drop_inactive:
            continue
        filtered.append(customer.with_transactions(kept))

    logger.debug(
        f"Filtered {len(customers)} customers to {len(filtered)} in period {period.label}"
    )
    return filtered
