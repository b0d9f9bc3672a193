"""Fiscal calendar used for work-week reporting.

The fiscal year runs July to June and is named after the calendar year it
ends in. Work weeks start on Saturday. Week 1 is the week that contains
July 1, so it may begin in the last days of June; those days already belong
to the new fiscal year.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

SATURDAY = 5
MAX_WEEK = 52


def week_one_start(fiscal_year: int) -> date:
    """Saturday on or before July 1 that opens ``fiscal_year``."""

    july_first = date(fiscal_year - 1, 7, 1)
    return july_first - timedelta(days=(july_first.weekday() - SATURDAY) % 7)


def fiscal_year(value: date | datetime) -> int:
    day = value.date() if isinstance(value, datetime) else value
    if day >= week_one_start(day.year + 1):
        return day.year + 1
    return day.year


def fiscal_week(value: date | datetime) -> int:
    day = value.date() if isinstance(value, datetime) else value
    week = (day - week_one_start(fiscal_year(day))).days // 7 + 1
    return min(max(week, 1), MAX_WEEK)


def work_week(value: date | datetime) -> tuple[str, str]:
    """Return ``(fy, ww)`` as the zero-padded strings stored on records."""

    return str(fiscal_year(value)), f"{fiscal_week(value):02d}"
