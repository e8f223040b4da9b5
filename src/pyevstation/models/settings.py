"""Site-wide settings singleton (``settings``)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyevstation.ingestion.normalize import non_negative, safe_float
from pyevstation.models._base import EvBaseModel


class Settings(EvBaseModel):
    price_vnd_per_kwh: float | None = Field(
        default=None, validation_alias=AliasChoices("price_vnd_per_kwh", "priceVndPerKwh")
    )
    temperature_threshold_c: float | None = Field(
        default=None,
        validation_alias=AliasChoices("temperature_threshold_c", "tempThresholdC", "temperatureThresholdC"),
    )
    updated_ts: float | None = Field(default=None, validation_alias=AliasChoices("updated_ts", "updatedTs"))

    @field_validator("price_vnd_per_kwh", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float | None:
        return non_negative(value)

    @field_validator("temperature_threshold_c", "updated_ts", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)
