"""Station metadata and the merged live views exposed to consumers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyevstation.models.environment import EnvironmentReading
from pyevstation.models.power import PowerReading
from pyevstation.models.session import ChargingSession
from pyevstation.models.settings import Settings
from pyevstation.models.status import PortStatus
from pyevstation.models.user import UserProfile


class Station(BaseModel):
    """A physical charging site.  ``id`` is immutable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str = ""
    location: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        station_id = str(value).strip()
        if not station_id:
            raise ValueError("station id must be non-empty")
        return station_id


class SessionMetrics(BaseModel):
    """Billing/electrical metrics derived for one port.

    Missing inputs default to ``0``; whether the underlying record exists
    is visible on the enclosing :class:`PortSnapshot`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    power_w: float = 0.0
    voltage_v: float = 0.0
    current_a: float = 0.0
    energy_kwh: float = 0.0
    cost_vnd: int = 0
    start_ms: int | None = None
    """Session start in epoch ms; ``None`` if absent or uptime-encoded."""
    stop_ms: int | None = None
    """Session stop in epoch ms; ``None`` if open, absent or uptime-encoded."""
    duration_ms: int | None = None
    """Elapsed time; ``None`` when it cannot be computed."""
    energy_is_estimate: bool = True
    """``False`` when ``energy_kwh`` comes from the session record."""
    cost_is_estimate: bool = True
    """``False`` when ``cost_vnd`` comes from the session record."""


class PortSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    port: str
    status: PortStatus | None = None
    power: PowerReading | None = None
    session: ChargingSession | None = None
    user_id: str | None = None
    user: UserProfile | None = None
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)

    @property
    def is_charging(self) -> bool:
        return self.status is not None and self.status.is_charging is True

    @property
    def card_id(self) -> str | None:
        if self.session is not None and self.session.card_id:
            return self.session.card_id
        if self.status is not None:
            return self.status.card_id
        return None

    @property
    def user_display_name(self) -> str | None:
        """Profile name, else resolved user id, else raw card id."""
        if self.user is not None and self.user.name:
            return self.user.name
        return self.user_id or self.card_id


class StationSnapshot(BaseModel):
    """Read-only merged live state of one station."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    station: Station
    running: bool = False
    environment: EnvironmentReading | None = None
    settings: Settings | None = None
    ports: dict[str, PortSnapshot] = Field(default_factory=dict)
    charging_count: int = 0
    total_power_w: float = 0.0
    temperature_alert: bool | None = None
    """``True`` at or above the configured threshold; ``None`` without a reading."""
