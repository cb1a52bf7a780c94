from datetime import date, datetime, timedelta, timezone

from planner.utils.datetime_utils import (
    ensure_aware,
    format_minutes_as_time,
    format_utc_iso,
    local_midnight,
    minutes_between,
    parse_iso_datetime,
    parse_time_to_minutes,
)

UTC = timezone.utc


def test_parse_time_to_minutes():
    assert parse_time_to_minutes("09:00") == 540
    assert parse_time_to_minutes(" 17:30 ") == 1050
    assert parse_time_to_minutes("24:00") == 1440
    assert parse_time_to_minutes("24:30") is None
    assert parse_time_to_minutes("9") is None
    assert parse_time_to_minutes("ab:cd") is None
    assert format_minutes_as_time(1050) == "17:30"


def test_format_utc_iso_uses_millisecond_z_suffix():
    tz = timezone(timedelta(hours=2))

    assert format_utc_iso(datetime(2025, 3, 3, 11, 0, tzinfo=tz)) == "2025-03-03T09:00:00.000Z"


def test_parse_iso_datetime():
    plan_tz = timezone(timedelta(hours=-5))

    assert parse_iso_datetime("2025-03-03T09:00:00Z") == datetime(2025, 3, 3, 9, tzinfo=UTC)
    assert parse_iso_datetime(" 2025-03-03T11:00:00+02:00", plan_tz) == datetime(2025, 3, 3, 9, tzinfo=UTC)
    assert parse_iso_datetime("2025-03-03T04:00:00", plan_tz) == datetime(2025, 3, 3, 9, tzinfo=UTC)


def test_ensure_aware_only_touches_naive_values():
    tz = timezone(timedelta(hours=-5))
    aware = datetime(2025, 3, 3, 9, tzinfo=UTC)

    assert ensure_aware(datetime(2025, 3, 3, 9), tz).utcoffset() == timedelta(hours=-5)
    assert ensure_aware(aware, tz) is aware


def test_local_midnight_and_minutes_between():
    tz = timezone(timedelta(hours=9))
    midnight = local_midnight(date(2025, 3, 3), tz)

    assert midnight == datetime(2025, 3, 2, 15, tzinfo=UTC)
    assert minutes_between(midnight, midnight + timedelta(hours=2, minutes=5)) == 125
