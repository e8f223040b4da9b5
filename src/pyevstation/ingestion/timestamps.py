"""Classification and arithmetic for timestamps of unknown unit.

Station firmware writes the same logical field (``startTs``, ``stopTs``,
``ts``) either as an epoch value (seconds or milliseconds) or as a
device-uptime counter in milliseconds, without a unit tag.  The unit is
inferred from magnitude:

* ``> 1e12``  epoch milliseconds
* ``> 1e9``   epoch seconds
* otherwise   device uptime, not convertible to wall-clock time

The inference is a heuristic.  An uptime counter passes ``1e9`` after
about 11.5 days of continuous uptime and is then misread as epoch
seconds in 1970; callers that can rule that out should pass explicit
thresholds to :class:`TimestampResolver`.

Uptime values can still be subtracted from each other, so durations stay
computable even when no wall-clock instant is known.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import Any, Final

from pyevstation._constants import EPOCH_MILLIS_THRESHOLD, EPOCH_SECONDS_THRESHOLD
from pyevstation.ingestion.normalize import safe_float

#: Marker returned by the display helpers instead of a fabricated date.
UNAVAILABLE: Final = "unavailable"


class TimestampKind(StrEnum):
    EPOCH_MILLIS = "epoch_millis"
    EPOCH_SECONDS = "epoch_seconds"
    DEVICE_UPTIME = "device_uptime"

    @property
    def is_wall_clock(self) -> bool:
        return self is not TimestampKind.DEVICE_UPTIME


class _Now:
    """Sentinel for an open-ended interval ("until now")."""

    _instance: _Now | None = None

    def __new__(cls) -> _Now:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOW"


NOW: Final = _Now()


def _coerce(raw: Any) -> float | None:
    """Parse a raw timestamp; missing, non-numeric and ``<= 0`` are absent."""
    value = safe_float(raw)
    if value is None or value <= 0:
        return None
    return value


def _wall_clock_ms(value: float, kind: TimestampKind) -> int:
    if kind is TimestampKind.EPOCH_MILLIS:
        return int(value)
    return int(value * 1000)


def _now_ms() -> int:
    return int(time.time() * 1000)


class TimestampResolver:
    """Timestamp classifier with an injectable clock.

    Parameters
    ----------
    clock : callable
        Returns the current wall-clock time in epoch milliseconds.
    epoch_millis_threshold : float
        Values above this are epoch milliseconds.
    epoch_seconds_threshold : float
        Values above this (and not above ``epoch_millis_threshold``) are
        epoch seconds.
    tz : tzinfo
        Time zone used by the display helpers.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] = _now_ms,
        epoch_millis_threshold: float = EPOCH_MILLIS_THRESHOLD,
        epoch_seconds_threshold: float = EPOCH_SECONDS_THRESHOLD,
        tz: tzinfo = UTC,
    ) -> None:
        if epoch_seconds_threshold >= epoch_millis_threshold:
            raise ValueError("epoch_seconds_threshold must be below epoch_millis_threshold")
        self._clock = clock
        self._millis_threshold = epoch_millis_threshold
        self._seconds_threshold = epoch_seconds_threshold
        self._tz = tz

    def now_ms(self) -> int:
        return int(self._clock())

    def classify(self, raw: float) -> TimestampKind:
        """Classify a raw numeric timestamp by magnitude."""
        if raw > self._millis_threshold:
            return TimestampKind.EPOCH_MILLIS
        if raw > self._seconds_threshold:
            return TimestampKind.EPOCH_SECONDS
        return TimestampKind.DEVICE_UPTIME

    def to_epoch_millis(self, raw: Any) -> int | None:
        """Resolve *raw* to epoch milliseconds, or ``None`` for uptime/absent values."""
        value = _coerce(raw)
        if value is None:
            return None
        kind = self.classify(value)
        if not kind.is_wall_clock:
            return None
        return _wall_clock_ms(value, kind)

    def duration(self, start_raw: Any, stop_raw: Any = NOW) -> int | None:
        """Elapsed milliseconds between two raw timestamps.

        ``stop_raw`` may be :data:`NOW`, ``None`` or ``<= 0`` for an open
        interval; "now" is only substituted when the start resolves to
        wall-clock time.  Returns ``None`` when the duration cannot be
        computed (absent start, open uptime interval, or start and stop
        in different units).  Never negative.
        """
        start = _coerce(start_raw)
        if start is None:
            return None
        start_kind = self.classify(start)

        stop = None if stop_raw is NOW else _coerce(stop_raw)
        if stop is None:
            if not start_kind.is_wall_clock:
                return None
            return max(0, self.now_ms() - _wall_clock_ms(start, start_kind))

        stop_kind = self.classify(stop)
        if start_kind.is_wall_clock and stop_kind.is_wall_clock:
            return max(0, _wall_clock_ms(stop, stop_kind) - _wall_clock_ms(start, start_kind))
        if not start_kind.is_wall_clock and not stop_kind.is_wall_clock:
            return max(0, int(stop - start))
        return None

    def to_datetime(self, raw: Any) -> datetime | None:
        """Resolve *raw* to an aware datetime in the resolver's time zone."""
        ms = self.to_epoch_millis(raw)
        if ms is None:
            return None
        return datetime.fromtimestamp(ms / 1000, tz=self._tz)

    def format_time(self, raw: Any) -> str:
        """``HH:MM:SS`` for wall-clock timestamps, :data:`UNAVAILABLE` otherwise."""
        moment = self.to_datetime(raw)
        if moment is None:
            return UNAVAILABLE
        return moment.strftime("%H:%M:%S")

    def format_date(self, raw: Any) -> str:
        """``DD/MM/YYYY`` for wall-clock timestamps, :data:`UNAVAILABLE` otherwise."""
        moment = self.to_datetime(raw)
        if moment is None:
            return UNAVAILABLE
        return moment.strftime("%d/%m/%Y")


def format_duration(duration_ms: int | None) -> str:
    """Render a duration as ``HH:MM:SS``; ``None`` renders as :data:`UNAVAILABLE`."""
    if duration_ms is None:
        return UNAVAILABLE
    total_seconds = max(0, int(duration_ms)) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


_default_resolver = TimestampResolver()


def classify(raw: float) -> TimestampKind:
    return _default_resolver.classify(raw)


def to_epoch_millis(raw: Any) -> int | None:
    return _default_resolver.to_epoch_millis(raw)


def duration(start_raw: Any, stop_raw: Any = NOW) -> int | None:
    return _default_resolver.duration(start_raw, stop_raw)


def format_time(raw: Any) -> str:
    return _default_resolver.format_time(raw)


def format_date(raw: Any) -> str:
    return _default_resolver.format_date(raw)
