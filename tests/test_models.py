from __future__ import annotations

import pytest
from pydantic import ValidationError

from pyevstation.models import (
    ChargingSession,
    PortSnapshot,
    PortStatus,
    PowerReading,
    Settings,
    Station,
    UserProfile,
    parse_user_id,
)


def test_port_status_reads_card_id_from_user_id_key() -> None:
    status = PortStatus.from_store(
        {"isCharging": True, "sessionId": "S1", "userId": "CARD-9", "startTs": 1_700_000_000_000, "stopTs": 0}
    )

    assert status is not None
    assert status.is_charging is True
    assert status.session_id == "S1"
    assert status.card_id == "CARD-9"
    assert status.start_raw == 1_700_000_000_000
    assert status.stop_raw == 0


def test_sentinel_values_fall_back_to_defaults() -> None:
    status = PortStatus.from_store({"sessionId": "", "userId": "--", "isCharging": False})

    assert status is not None
    assert status.session_id is None
    assert status.card_id is None


def test_raw_payload_is_kept() -> None:
    payload = {"u": 230.1, "i": 7.2, "p": 1650, "e": 3.25, "vendorField": 1}
    reading = PowerReading.from_store(payload)

    assert reading is not None
    assert reading.raw == payload
    assert "raw" not in reading.model_dump()


def test_negative_meter_values_coerce_to_zero() -> None:
    reading = PowerReading.from_store({"u": -1, "i": -0.2, "p": -50, "e": 1.5})

    assert reading is not None
    assert reading.voltage == 0.0
    assert reading.current == 0.0
    assert reading.power == 0.0
    assert reading.cumulative_energy == 1.5


def test_expected_power_is_advisory() -> None:
    reading = PowerReading.from_store({"u": 230, "i": 10, "pf": 0.5})

    assert reading is not None
    assert reading.expected_power == pytest.approx(1150.0)
    assert PowerReading.from_store({"p": 10}).expected_power is None  # type: ignore[union-attr]


def test_malformed_payload_reads_as_absent() -> None:
    assert PortStatus.from_store("garbage") is None
    assert PortStatus.from_store(None) is None
    assert Settings.from_store([1, 2, 3]) is None
    assert PortStatus.from_store({"isCharging": {"nested": True}}) is None


def test_session_completion_depends_on_positive_stop() -> None:
    open_session = ChargingSession.from_store({"startTs": 1000, "stopTs": 0}, session_id="S1")
    closed_session = ChargingSession.from_store({"startTs": 1000, "stopTs": 5000}, session_id="S2")

    assert open_session is not None and closed_session is not None
    assert open_session.session_id == "S1"
    assert open_session.is_complete is False
    assert closed_session.is_complete is True


def test_session_maps_store_keys() -> None:
    session = ChargingSession.from_store(
        {
            "stationId": "1",
            "port": "A",
            "userId": "CARD-9",
            "energyKwh": 2.5,
            "costVnd": 11250,
            "updatedTs": 1_700_000_100_000,
            "reason": "unplug",
        },
        session_id="S1",
    )

    assert session is not None
    assert session.station_id == "1"
    assert session.card_id == "CARD-9"
    assert session.energy_kwh == 2.5
    assert session.cost_vnd == 11250
    assert session.updated_raw == 1_700_000_100_000
    assert session.reason == "unplug"


def test_settings_store_keys() -> None:
    settings = Settings.from_store({"priceVndPerKwh": 5000, "tempThresholdC": 45, "updatedTs": 1})

    assert settings is not None
    assert settings.price_vnd_per_kwh == 5000
    assert settings.temperature_threshold_c == 45
    assert settings.updated_ts == 1


def test_parse_user_id() -> None:
    assert parse_user_id("alice") == "alice"
    assert parse_user_id(" bob ") == "bob"
    assert parse_user_id(None) is None
    assert parse_user_id({"uid": "alice"}) is None
    assert parse_user_id(True) is None


def test_user_profile_display_name() -> None:
    named = UserProfile.from_store({"name": "Alice", "cardId": "CARD-9"}, user_id="alice")
    unnamed = UserProfile.from_store({"email": "x@example.com"}, user_id="bob")

    assert named is not None and unnamed is not None
    assert named.display_name == "Alice"
    assert unnamed.display_name == "bob"


def test_station_id_is_immutable_and_required() -> None:
    station = Station(id=1, name="Depot")

    assert station.id == "1"
    with pytest.raises(ValidationError):
        station.id = "2"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        Station(id="  ")


def test_port_snapshot_display_name_fallbacks() -> None:
    status = PortStatus.from_store({"userId": "CARD-9"})

    assert PortSnapshot(port="A", status=status).user_display_name == "CARD-9"
    assert PortSnapshot(port="A", status=status, user_id="alice").user_display_name == "alice"
    user = UserProfile.from_store({"name": "Alice"}, user_id="alice")
    assert PortSnapshot(port="A", status=status, user_id="alice", user=user).user_display_name == "Alice"
