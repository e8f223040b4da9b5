"""Normalization helpers.

Centralizes defensive parsing and the unit/scale correction of raw
environment sensor payloads.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pyevstation._constants import (
    HUMIDITY_FRACTION_LIMIT,
    HUMIDITY_MAX_PCT,
    HUMIDITY_MIN_PCT,
    TEMPERATURE_FIXED_POINT_LIMIT,
    TEMPERATURE_MAX_C,
    TEMPERATURE_MIN_C,
)

if TYPE_CHECKING:
    from pyevstation.models.environment import EnvironmentReading

_logger = logging.getLogger(__name__)


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def non_negative(value: Any) -> float | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return 0.0 if parsed < 0 else parsed


def round_half_up(value: float) -> int:
    """Round to the nearest integer; halves go up (``2.5`` → 3, ``-2.5`` → -2)."""
    return math.floor(value + 0.5)


def normalize_temperature(value: Any) -> float | None:
    """Correct fixed-point (x10) encoding and clamp to the physical range."""
    temperature = safe_float(value)
    if temperature is None:
        return None
    if abs(temperature) > TEMPERATURE_FIXED_POINT_LIMIT:
        temperature /= 10
    temperature = min(TEMPERATURE_MAX_C, max(TEMPERATURE_MIN_C, temperature))
    return round_half_up(temperature * 10) / 10


def normalize_humidity(value: Any) -> int | None:
    """Correct fractional (0..1) encoding and clamp to 0..100 percent."""
    humidity = safe_float(value)
    if humidity is None:
        return None
    if humidity <= HUMIDITY_FRACTION_LIMIT:
        humidity *= 100
    return int(min(HUMIDITY_MAX_PCT, max(HUMIDITY_MIN_PCT, round_half_up(humidity))))


def normalize_environment(raw: Mapping[str, Any] | EnvironmentReading | None) -> EnvironmentReading | None:
    """Turn a raw ``stations/{id}/env`` payload into an :class:`EnvironmentReading`.

    ``None`` means "no data yet" and is propagated as ``None`` rather than
    a zero reading.  An already normalized reading is returned unchanged,
    so applying this function to its own output is a no-op.
    """
    # Import lazily: the models import the safe_* helpers from this module.
    from pyevstation.models.environment import EnvironmentReading

    if raw is None:
        return None
    if isinstance(raw, EnvironmentReading):
        return raw
    if not isinstance(raw, Mapping):
        _logger.debug("Ignoring non-object environment payload: %r", raw)
        return None

    temperature = normalize_temperature(raw.get("temp", raw.get("temperature")))
    humidity = normalize_humidity(raw.get("hum", raw.get("humidity")))
    if temperature is None and humidity is None:
        return None

    return EnvironmentReading(
        temperature=temperature,
        humidity=humidity,
        raw_timestamp=safe_float(raw.get("ts")),
        raw=dict(raw),
    )
