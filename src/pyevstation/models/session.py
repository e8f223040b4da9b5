"""Charging session record (``sessions/{sessionId}``)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyevstation.ingestion.normalize import non_negative, safe_float, safe_str
from pyevstation.models._base import EvBaseModel


class ChargingSession(EvBaseModel):
    """One charge event, from plug-in to plug-out.

    ``energy_kwh`` and ``cost_vnd`` are authoritative over values derived
    from the power meter when present.
    """

    session_id: str | None = Field(default=None, validation_alias=AliasChoices("session_id", "sessionId", "id"))
    station_id: str | None = Field(default=None, validation_alias=AliasChoices("station_id", "stationId"))
    port: str | None = None
    card_id: str | None = Field(default=None, validation_alias=AliasChoices("card_id", "cardId", "userId"))
    """RFID card id (written as ``userId`` by the firmware)."""
    start_raw: float | None = Field(default=None, validation_alias=AliasChoices("start_raw", "startTs"))
    stop_raw: float | None = Field(default=None, validation_alias=AliasChoices("stop_raw", "stopTs"))
    energy_kwh: float | None = Field(default=None, validation_alias=AliasChoices("energy_kwh", "energyKwh"))
    cost_vnd: float | None = Field(default=None, validation_alias=AliasChoices("cost_vnd", "costVnd"))
    updated_raw: float | None = Field(default=None, validation_alias=AliasChoices("updated_raw", "updatedTs"))
    reason: str | None = None
    """Why the session ended (e.g. ``"unplug"``, ``"fault"``)."""
    battery_start: float | None = Field(default=None, validation_alias=AliasChoices("battery_start", "batteryStart"))
    battery_end: float | None = Field(default=None, validation_alias=AliasChoices("battery_end", "batteryEnd"))

    @field_validator("session_id", "station_id", "port", "card_id", "reason", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("start_raw", "stop_raw", "updated_raw", "battery_start", "battery_end", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("energy_kwh", "cost_vnd", mode="before")
    @classmethod
    def _coerce_non_negative(cls, value: Any) -> float | None:
        return non_negative(value)

    @property
    def is_complete(self) -> bool:
        """A session is complete once ``stopTs`` holds a positive value (any unit)."""
        return self.stop_raw is not None and self.stop_raw > 0
