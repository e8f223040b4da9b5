"""Per-port occupancy status (``stations/{stationId}/ports/{port}/status``)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyevstation.ingestion.normalize import safe_float, safe_str
from pyevstation.models._base import EvBaseModel


class PortStatus(EvBaseModel):
    """Port status written by the station controller.

    Firmware writes the RFID card id under ``userId``; ``cardId`` is
    accepted as well.
    """

    is_charging: bool | None = Field(default=None, validation_alias=AliasChoices("is_charging", "isCharging"))
    session_id: str | None = Field(default=None, validation_alias=AliasChoices("session_id", "sessionId"))
    """Key of the active or just-closed session record."""
    card_id: str | None = Field(default=None, validation_alias=AliasChoices("card_id", "cardId", "userId"))
    start_raw: float | None = Field(default=None, validation_alias=AliasChoices("start_raw", "startTs"))
    stop_raw: float | None = Field(default=None, validation_alias=AliasChoices("stop_raw", "stopTs"))
    fault: str | None = None
    raw_timestamp: float | None = Field(default=None, validation_alias=AliasChoices("raw_timestamp", "ts"))

    @field_validator("session_id", "card_id", "fault", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("start_raw", "stop_raw", "raw_timestamp", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)
