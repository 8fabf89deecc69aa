from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from roster.errors import InvalidConfigurationError
from roster.periods import expand_period, js_weekday
from roster.schemas import PeriodConfig


def test_js_weekday_counts_from_sunday():
    assert js_weekday(date(2025, 1, 5)) == 0  # Sunday
    assert js_weekday(date(2025, 1, 6)) == 1  # Monday
    assert js_weekday(date(2025, 1, 11)) == 6  # Saturday


def test_daily_defaults_to_weekday_business_hours():
    windows = expand_period("daily", date(2025, 1, 6), date(2025, 1, 12))

    assert len(windows) == 5
    first_start, first_end = windows[0]
    assert first_start == datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)
    assert first_end == datetime(2025, 1, 6, 17, 0, tzinfo=timezone.utc)
    assert windows[-1][0].date() == date(2025, 1, 10)


def test_daily_windows_respect_weekday_filter_and_dates():
    config = PeriodConfig(
        weekdays=[0],
        start_time="09:00",
        end_time="11:30",
        excluded_dates=[date(2025, 1, 12)],
        included_dates=[date(2025, 1, 15)],
    )

    windows = expand_period("daily", date(2025, 1, 1), date(2025, 1, 31), config)

    days = [start.date() for start, _ in windows]
    assert days == [
        date(2025, 1, 5),
        date(2025, 1, 15),
        date(2025, 1, 19),
        date(2025, 1, 26),
    ]
    for start, end in windows:
        assert js_weekday(start.date()) == 0 or start.date() == date(2025, 1, 15)
        assert end - start == timedelta(hours=2, minutes=30)


def test_daily_rejects_end_time_not_after_start_time():
    config = PeriodConfig(start_time="18:00", end_time="08:00")

    with pytest.raises(InvalidConfigurationError, match="endTime"):
        expand_period("daily", date(2025, 1, 1), date(2025, 1, 7), config)


def test_daily_wall_clock_uses_configured_timezone():
    config = PeriodConfig(weekdays=[3], start_time="08:00", end_time="10:00")

    windows = expand_period(
        "daily", date(2025, 1, 1), date(2025, 1, 1), config, "America/Sao_Paulo"
    )

    start, end = windows[0]
    assert start.astimezone(timezone.utc) == datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc)
    assert end.astimezone(timezone.utc) == datetime(2025, 1, 1, 13, 0, tzinfo=timezone.utc)


def test_weekly_covers_every_seven_days_in_the_period():
    windows = expand_period("weekly", date(2025, 1, 1), date(2025, 1, 31))

    assert [start.day for start, _ in windows] == [1, 8, 15, 22, 29]
    assert all(end - start == timedelta(days=7) for start, end in windows)


def test_weekly_honours_interval_and_duration():
    config = PeriodConfig(
        base_date_time=datetime(2025, 1, 4, 19, 0),
        interval=14,
        duration=1,
    )

    windows = expand_period("weekly", date(2025, 1, 1), date(2025, 2, 28), config)

    assert [start.date() for start, _ in windows] == [
        date(2025, 1, 4),
        date(2025, 1, 18),
        date(2025, 2, 1),
        date(2025, 2, 15),
    ]
    assert windows[0][0].hour == 19
    assert windows[0][1] - windows[0][0] == timedelta(days=1)


def test_monthly_clamps_to_last_day_without_drifting():
    config = PeriodConfig(base_date_time=datetime(2025, 1, 31, 10, 0))

    windows = expand_period("monthly", date(2025, 1, 1), date(2025, 4, 30), config)

    assert [start.date() for start, _ in windows] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]
    assert all(end - start == timedelta(days=1) for start, end in windows)


def test_fixed_period_produces_single_window():
    config = PeriodConfig(
        base_date_time=datetime(2025, 3, 2, 18, 0, tzinfo=timezone.utc), duration=3
    )

    windows = expand_period("fixed", date(2025, 3, 1), date(2025, 3, 31), config)

    assert windows == [
        (
            datetime(2025, 3, 2, 18, 0, tzinfo=timezone.utc),
            datetime(2025, 3, 2, 21, 0, tzinfo=timezone.utc),
        )
    ]


def test_fixed_period_defaults_to_one_hour_at_period_start():
    windows = expand_period("fixed", date(2025, 3, 1), date(2025, 3, 1))

    start, end = windows[0]
    assert start == datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)
    assert end - start == timedelta(hours=1)


def test_start_after_end_is_rejected():
    with pytest.raises(InvalidConfigurationError, match="periodStartDate"):
        expand_period("daily", date(2025, 2, 1), date(2025, 1, 1))


@pytest.mark.parametrize("period_type", ["daily", "weekly", "monthly"])
def test_windows_are_ordered_and_well_formed(period_type):
    windows = expand_period(period_type, date(2025, 1, 1), date(2025, 6, 30))

    assert windows
    starts = [start for start, _ in windows]
    assert starts == sorted(starts)
    for start, end in windows:
        assert start < end
        assert date(2025, 1, 1) <= start.date() <= date(2025, 6, 30)
