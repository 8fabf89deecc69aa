"""Expansion of recurrence settings into concrete schedule windows."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from .errors import InvalidConfigurationError
from .schemas import PeriodConfig, PeriodType

DEFAULT_WEEKDAYS = (1, 2, 3, 4, 5)
DEFAULT_START_TIME = "08:00"
DEFAULT_END_TIME = "17:00"
DEFAULT_FIXED_DURATION_HOURS = 1
DEFAULT_WEEKLY_INTERVAL_DAYS = 7
DEFAULT_WEEKLY_DURATION_DAYS = 7
DEFAULT_MONTHLY_DURATION_DAYS = 1

Window = tuple[datetime, datetime]


def js_weekday(day: date) -> int:
    """Weekday numbered 0 = Sunday through 6 = Saturday."""
    return (day.weekday() + 1) % 7


def _parse_clock(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _localize(value: datetime, zone: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value


def _base_instant(
    period_start_date: date, config: PeriodConfig, zone: ZoneInfo
) -> datetime:
    if config.base_date_time is not None:
        return _localize(config.base_date_time, zone)
    return datetime.combine(period_start_date, time(0, 0), tzinfo=zone)


def _fixed(period_start_date: date, config: PeriodConfig, zone: ZoneInfo) -> list[Window]:
    start = _base_instant(period_start_date, config, zone)
    hours = config.duration or DEFAULT_FIXED_DURATION_HOURS
    return [(start, start + timedelta(hours=hours))]


def _daily(
    period_start_date: date,
    period_end_date: date,
    config: PeriodConfig,
    zone: ZoneInfo,
) -> list[Window]:
    weekdays = set(config.weekdays or DEFAULT_WEEKDAYS)
    start_clock = _parse_clock(config.start_time or DEFAULT_START_TIME)
    end_clock = _parse_clock(config.end_time or DEFAULT_END_TIME)
    if end_clock <= start_clock:
        raise InvalidConfigurationError("periodConfig.endTime must be after startTime")

    included = set(config.included_dates)
    excluded = set(config.excluded_dates)

    windows: list[Window] = []
    day = period_start_date
    while day <= period_end_date:
        if (js_weekday(day) in weekdays or day in included) and day not in excluded:
            windows.append(
                (
                    datetime.combine(day, start_clock, tzinfo=zone),
                    datetime.combine(day, end_clock, tzinfo=zone),
                )
            )
        day += timedelta(days=1)
    return windows


def _weekly(
    period_start_date: date,
    period_end_date: date,
    config: PeriodConfig,
    zone: ZoneInfo,
) -> list[Window]:
    interval = timedelta(days=config.interval or DEFAULT_WEEKLY_INTERVAL_DAYS)
    length = timedelta(days=config.duration or DEFAULT_WEEKLY_DURATION_DAYS)

    windows: list[Window] = []
    start = _base_instant(period_start_date, config, zone)
    while start.date() <= period_end_date:
        windows.append((start, start + length))
        start += interval
    return windows


def _monthly(
    period_start_date: date,
    period_end_date: date,
    config: PeriodConfig,
    zone: ZoneInfo,
) -> list[Window]:
    length = timedelta(days=config.duration or DEFAULT_MONTHLY_DURATION_DAYS)
    base = _base_instant(period_start_date, config, zone)

    windows: list[Window] = []
    step = 0
    # Offsets are taken from the base so a day-31 anchor clamps without drifting.
    start = base
    while start.date() <= period_end_date:
        windows.append((start, start + length))
        step += 1
        start = base + relativedelta(months=step)
    return windows


def expand_period(
    period_type: PeriodType,
    period_start_date: date,
    period_end_date: date,
    period_config: PeriodConfig | None = None,
    timezone: str | ZoneInfo = "UTC",
) -> list[Window]:
    """Return the ``[start, end)`` windows described by a recurrence, earliest first.

    Wall-clock values (``startTime``/``endTime`` and a naive ``baseDateTime``)
    are interpreted in ``timezone``. Weekdays follow the 0 = Sunday numbering.
    """
    if period_start_date > period_end_date:
        raise InvalidConfigurationError("periodStartDate must be before or equal to periodEndDate")

    zone = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
    config = period_config or PeriodConfig()

    if period_type == "fixed":
        windows = _fixed(period_start_date, config, zone)
    elif period_type == "daily":
        windows = _daily(period_start_date, period_end_date, config, zone)
    elif period_type == "weekly":
        windows = _weekly(period_start_date, period_end_date, config, zone)
    elif period_type == "monthly":
        windows = _monthly(period_start_date, period_end_date, config, zone)
    else:
        raise InvalidConfigurationError(f"Unsupported period type: {period_type}")

    return sorted(windows, key=lambda window: window[0])


__all__ = ["Window", "expand_period", "js_weekday"]
