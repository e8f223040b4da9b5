from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyevstation.ingestion.timestamps import (
    NOW,
    UNAVAILABLE,
    TimestampKind,
    TimestampResolver,
    classify,
    duration,
    format_duration,
    to_epoch_millis,
)

_NOW_MS = 1_700_000_600_000


def _resolver() -> TimestampResolver:
    return TimestampResolver(clock=lambda: _NOW_MS)


def test_classification_thresholds() -> None:
    assert classify(1_700_000_000_000) == TimestampKind.EPOCH_MILLIS
    assert classify(1_700_000_000) == TimestampKind.EPOCH_SECONDS
    assert classify(500_000) == TimestampKind.DEVICE_UPTIME


def test_to_epoch_millis() -> None:
    assert to_epoch_millis(1_700_000_000_000) == 1_700_000_000_000
    assert to_epoch_millis(1_700_000_000) == 1_700_000_000_000
    assert to_epoch_millis(500_000) is None
    assert to_epoch_millis(0) is None
    assert to_epoch_millis(None) is None
    assert to_epoch_millis("garbage") is None


def test_uptime_duration_without_wall_clock() -> None:
    assert duration(1000, 5000) == 4000


def test_epoch_duration_across_units() -> None:
    assert duration(1_700_000_000, 1_700_000_060_000) == 60_000


def test_duration_is_never_negative() -> None:
    assert duration(5000, 1000) == 0
    assert duration(1_700_000_060_000, 1_700_000_000_000) == 0


def test_open_interval_uses_now_only_for_wall_clock_start() -> None:
    resolver = _resolver()

    assert resolver.duration(1_700_000_000_000, NOW) == 600_000
    assert resolver.duration(1_700_000_000_000, None) == 600_000
    assert resolver.duration(1_700_000_000_000, 0) == 600_000
    assert resolver.duration(120_000, NOW) is None


def test_mixed_units_are_unavailable() -> None:
    assert duration(120_000, 1_700_000_000_000) is None


def test_absent_start_is_unavailable() -> None:
    assert duration(None, 5000) is None
    assert duration(0, 5000) is None


def test_display_helpers_never_fabricate_dates() -> None:
    resolver = _resolver()

    assert resolver.format_time(500_000) == UNAVAILABLE
    assert resolver.format_date(None) == UNAVAILABLE
    assert resolver.format_time(0) == UNAVAILABLE
    assert resolver.format_time(1_700_000_000) == "22:13:20"
    assert resolver.format_date(1_700_000_000_000) == "14/11/2023"


def test_to_datetime_is_timezone_aware() -> None:
    moment = _resolver().to_datetime(1_700_000_000)

    assert moment == datetime.fromtimestamp(1_700_000_000, tz=UTC)


def test_format_duration() -> None:
    assert format_duration(None) == UNAVAILABLE
    assert format_duration(0) == "00:00:00"
    assert format_duration(3_723_000) == "01:02:03"


def test_custom_thresholds_must_be_ordered() -> None:
    with pytest.raises(ValueError):
        TimestampResolver(epoch_millis_threshold=10, epoch_seconds_threshold=100)


def test_custom_thresholds_shift_uptime_boundary() -> None:
    resolver = TimestampResolver(epoch_seconds_threshold=1_500_000_000)

    assert resolver.classify(1_200_000_000) == TimestampKind.DEVICE_UPTIME
    assert resolver.classify(1_700_000_000) == TimestampKind.EPOCH_SECONDS
