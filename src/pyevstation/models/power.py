"""Per-port power meter reading (``stations/{stationId}/ports/{port}/pzem``)."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyevstation.ingestion.normalize import non_negative
from pyevstation.models._base import EvBaseModel


class PowerReading(EvBaseModel):
    """PZEM meter snapshot.  Negative readings are coerced to ``0``."""

    voltage: float | None = Field(default=None, validation_alias=AliasChoices("voltage", "u"))
    """Voltage (V)."""
    current: float | None = Field(default=None, validation_alias=AliasChoices("current", "i"))
    """Current (A)."""
    power: float | None = Field(default=None, validation_alias=AliasChoices("power", "p"))
    """Active power (W)."""
    cumulative_energy: float | None = Field(
        default=None, validation_alias=AliasChoices("cumulative_energy", "cumulativeEnergy", "e")
    )
    """Meter energy counter (kWh)."""
    frequency: float | None = Field(default=None, validation_alias=AliasChoices("frequency", "hz"))
    """Line frequency (Hz)."""
    power_factor: float | None = Field(default=None, validation_alias=AliasChoices("power_factor", "powerFactor", "pf"))
    raw_timestamp: float | None = Field(
        default=None, validation_alias=AliasChoices("raw_timestamp", "rawTimestamp", "ts")
    )

    @field_validator(
        "voltage",
        "current",
        "power",
        "cumulative_energy",
        "frequency",
        "power_factor",
        mode="before",
    )
    @classmethod
    def _coerce_non_negative(cls, value: Any) -> float | None:
        return non_negative(value)

    @property
    def expected_power(self) -> float | None:
        """``voltage × current × power_factor``; advisory only."""
        if self.voltage is None or self.current is None:
            return None
        factor = self.power_factor if self.power_factor is not None else 1.0
        return self.voltage * self.current * factor
