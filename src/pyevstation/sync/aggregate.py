"""Session metrics derived from the latest port records."""

from __future__ import annotations

from pyevstation._constants import DEFAULT_PRICE_VND_PER_KWH
from pyevstation.ingestion.normalize import round_half_up
from pyevstation.ingestion.timestamps import NOW, TimestampResolver
from pyevstation.models.power import PowerReading
from pyevstation.models.session import ChargingSession
from pyevstation.models.settings import Settings
from pyevstation.models.station import SessionMetrics
from pyevstation.models.status import PortStatus


class SessionAggregator:
    """Combine status, meter reading, session record and settings.

    Preference orders:

    * energy: ``session.energy_kwh`` → ``power.cumulative_energy`` → ``0``
    * cost: ``session.cost_vnd`` → ``energy × price`` rounded half up
    * start/stop: session values → port status values

    The duration always goes through :meth:`TimestampResolver.duration`
    so uptime-encoded timestamps still produce a correct value.
    """

    def __init__(
        self,
        *,
        resolver: TimestampResolver | None = None,
        default_price_vnd_per_kwh: float = DEFAULT_PRICE_VND_PER_KWH,
    ) -> None:
        self._resolver = resolver or TimestampResolver()
        self._default_price = default_price_vnd_per_kwh

    @property
    def resolver(self) -> TimestampResolver:
        return self._resolver

    def price_for(self, settings: Settings | None) -> float:
        if settings is not None and settings.price_vnd_per_kwh is not None:
            return settings.price_vnd_per_kwh
        return self._default_price

    def aggregate(
        self,
        port_status: PortStatus | None,
        power_reading: PowerReading | None,
        session: ChargingSession | None,
        settings: Settings | None,
    ) -> SessionMetrics:
        power_w = voltage_v = current_a = 0.0
        if power_reading is not None:
            power_w = power_reading.power or 0.0
            voltage_v = power_reading.voltage or 0.0
            current_a = power_reading.current or 0.0

        energy_is_estimate = True
        if session is not None and session.energy_kwh is not None:
            energy_kwh = session.energy_kwh
            energy_is_estimate = False
        elif power_reading is not None and power_reading.cumulative_energy is not None:
            energy_kwh = power_reading.cumulative_energy
        else:
            energy_kwh = 0.0

        if session is not None and session.cost_vnd is not None:
            cost_vnd = round_half_up(session.cost_vnd)
            cost_is_estimate = False
        else:
            cost_vnd = round_half_up(energy_kwh * self.price_for(settings))
            cost_is_estimate = True

        start_raw = session.start_raw if session is not None else None
        if start_raw is None and port_status is not None:
            start_raw = port_status.start_raw
        stop_raw = session.stop_raw if session is not None else None
        if stop_raw is None and port_status is not None:
            stop_raw = port_status.stop_raw

        return SessionMetrics(
            power_w=power_w,
            voltage_v=voltage_v,
            current_a=current_a,
            energy_kwh=energy_kwh,
            cost_vnd=cost_vnd,
            start_ms=self._resolver.to_epoch_millis(start_raw),
            stop_ms=self._resolver.to_epoch_millis(stop_raw),
            duration_ms=self._resolver.duration(start_raw, NOW if stop_raw is None else stop_raw),
            energy_is_estimate=energy_is_estimate,
            cost_is_estimate=cost_is_estimate,
        )


_default_aggregator = SessionAggregator()


def aggregate(
    port_status: PortStatus | None,
    power_reading: PowerReading | None,
    session: ChargingSession | None,
    settings: Settings | None,
) -> SessionMetrics:
    """Module-level shortcut using the default aggregator."""
    return _default_aggregator.aggregate(port_status, power_reading, session, settings)
