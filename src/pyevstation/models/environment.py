"""Ambient sensor reading (``stations/{stationId}/env``)."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from pyevstation.models._base import EvBaseModel


class EnvironmentReading(EvBaseModel):
    """Normalized temperature/humidity snapshot.

    Build instances with
    :func:`pyevstation.ingestion.normalize.normalize_environment`;
    validating a raw payload directly skips the unit correction.
    """

    temperature: float | None = Field(default=None, validation_alias=AliasChoices("temperature", "temp"))
    """Temperature in °C."""
    humidity: int | None = Field(default=None, validation_alias=AliasChoices("humidity", "hum"))
    """Relative humidity in percent."""
    raw_timestamp: float | None = Field(
        default=None, validation_alias=AliasChoices("raw_timestamp", "rawTimestamp", "ts")
    )
    """Device timestamp of unknown unit."""
