"""Fiscal year and work week calendar."""
from __future__ import annotations

from datetime import date, datetime

import pytest

from sampling_qc.fiscal import fiscal_week, fiscal_year, week_one_start, work_week


class TestWeekOneStart:
    def test_saturday_before_july_first(self):
        # 2024-07-01 is a Monday
        assert week_one_start(2025) == date(2024, 6, 29)

    def test_july_first_on_saturday(self):
        # 2023-07-01 is a Saturday
        assert week_one_start(2024) == date(2023, 7, 1)


class TestWorkWeek:
    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2024, 6, 29), ("2025", "01")),
            (date(2024, 7, 5), ("2025", "01")),
            (date(2024, 7, 6), ("2025", "02")),
            (date(2025, 1, 1), ("2025", "27")),
            (date(2024, 6, 28), ("2024", "52")),
        ],
    )
    def test_known_dates(self, day, expected):
        assert work_week(day) == expected

    def test_accepts_datetimes(self):
        assert work_week(datetime(2024, 7, 6, 23, 59)) == ("2025", "02")

    def test_week_is_capped(self):
        # FY2023 runs 2022-06-25 to 2023-06-30, one day into a 53rd week
        assert fiscal_year(date(2023, 6, 30)) == 2023
        assert fiscal_week(date(2023, 6, 30)) == 52
