from __future__ import annotations

import pytest

from pyevstation.ingestion.timestamps import TimestampResolver
from pyevstation.models import ChargingSession, PortStatus, PowerReading, Settings
from pyevstation.sync.aggregate import SessionAggregator, aggregate

_NOW_MS = 1_700_000_600_000


@pytest.fixture
def aggregator() -> SessionAggregator:
    return SessionAggregator(resolver=TimestampResolver(clock=lambda: _NOW_MS))


def test_cost_from_meter_energy_and_settings_price() -> None:
    power = PowerReading.from_store({"u": 230, "i": 10, "p": 2300, "e": 2.5})
    settings = Settings.from_store({"priceVndPerKwh": 4500})

    metrics = aggregate(None, power, None, settings)

    assert metrics.energy_kwh == 2.5
    assert metrics.cost_vnd == 11250
    assert metrics.power_w == 2300
    assert metrics.voltage_v == 230
    assert metrics.current_a == 10
    assert metrics.energy_is_estimate is True
    assert metrics.cost_is_estimate is True


def test_default_price_applies_without_settings() -> None:
    power = PowerReading.from_store({"e": 2.5})

    assert aggregate(None, power, None, None).cost_vnd == 11250
    assert SessionAggregator(default_price_vnd_per_kwh=1000).aggregate(None, power, None, None).cost_vnd == 2500


def test_session_record_is_authoritative() -> None:
    power = PowerReading.from_store({"e": 9.0})
    session = ChargingSession.from_store({"energyKwh": 1.2, "costVnd": 6000.4})
    settings = Settings.from_store({"priceVndPerKwh": 4500})

    metrics = aggregate(None, power, session, settings)

    assert metrics.energy_kwh == 1.2
    assert metrics.cost_vnd == 6000
    assert metrics.energy_is_estimate is False
    assert metrics.cost_is_estimate is False


def test_session_energy_without_cost_is_priced() -> None:
    session = ChargingSession.from_store({"energyKwh": 2.0})

    metrics = aggregate(None, None, session, Settings.from_store({"priceVndPerKwh": 3000}))

    assert metrics.cost_vnd == 6000
    assert metrics.energy_is_estimate is False
    assert metrics.cost_is_estimate is True


def test_missing_inputs_default_to_zero() -> None:
    metrics = aggregate(None, None, None, None)

    assert metrics.power_w == 0
    assert metrics.energy_kwh == 0
    assert metrics.cost_vnd == 0
    assert metrics.start_ms is None
    assert metrics.duration_ms is None


def test_uptime_session_duration_without_wall_clock(aggregator: SessionAggregator) -> None:
    session = ChargingSession.from_store({"startTs": 1000, "stopTs": 5000})

    metrics = aggregator.aggregate(None, None, session, None)

    assert metrics.duration_ms == 4000
    assert metrics.start_ms is None
    assert metrics.stop_ms is None


def test_open_session_measures_against_now(aggregator: SessionAggregator) -> None:
    session = ChargingSession.from_store({"startTs": 1_700_000_000_000, "stopTs": 0})

    metrics = aggregator.aggregate(None, None, session, None)

    assert metrics.start_ms == 1_700_000_000_000
    assert metrics.stop_ms is None
    assert metrics.duration_ms == 600_000


def test_status_timestamps_fill_in_for_missing_session(aggregator: SessionAggregator) -> None:
    status = PortStatus.from_store({"startTs": 1_700_000_000, "stopTs": 1_700_000_120})

    metrics = aggregator.aggregate(status, None, None, None)

    assert metrics.start_ms == 1_700_000_000_000
    assert metrics.stop_ms == 1_700_000_120_000
    assert metrics.duration_ms == 120_000


def test_open_uptime_session_has_no_duration(aggregator: SessionAggregator) -> None:
    status = PortStatus.from_store({"startTs": 120_000})

    assert aggregator.aggregate(status, None, None, None).duration_ms is None


def test_price_for() -> None:
    aggregator = SessionAggregator(default_price_vnd_per_kwh=4500)

    assert aggregator.price_for(None) == 4500
    assert aggregator.price_for(Settings.from_store({"tempThresholdC": 40})) == 4500
    assert aggregator.price_for(Settings.from_store({"priceVndPerKwh": 3800})) == 3800


def test_costs_round_half_up() -> None:
    recorded = ChargingSession.from_store({"energyKwh": 0.3, "costVnd": 1234.5})
    estimated = PowerReading.from_store({"e": 0.5})

    assert aggregate(None, None, recorded, None).cost_vnd == 1235
    assert aggregate(None, estimated, None, Settings.from_store({"priceVndPerKwh": 4501})).cost_vnd == 2251
