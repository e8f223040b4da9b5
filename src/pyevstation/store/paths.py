"""Logical paths of the realtime store schema."""

from __future__ import annotations

from typing import Any

SETTINGS_PATH = "settings"
SESSIONS_PATH = "sessions"


def _segment(value: Any, what: str) -> str:
    text = str(value).strip()
    if not text or any(ch in text for ch in "/.#$[]"):
        raise ValueError(f"invalid {what} for a store path: {value!r}")
    return text


def station_env_path(station_id: Any) -> str:
    return f"stations/{_segment(station_id, 'station id')}/env"


def port_power_path(station_id: Any, port: Any) -> str:
    return f"stations/{_segment(station_id, 'station id')}/ports/{_segment(port, 'port')}/pzem"


def port_status_path(station_id: Any, port: Any) -> str:
    return f"stations/{_segment(station_id, 'station id')}/ports/{_segment(port, 'port')}/status"


def session_path(session_id: Any) -> str:
    return f"{SESSIONS_PATH}/{_segment(session_id, 'session id')}"


def rfid_binding_path(card_id: Any) -> str:
    return f"rfidMap/{_segment(card_id, 'card id')}"


def user_path(user_id: Any) -> str:
    return f"users/{_segment(user_id, 'user id')}"


def station_user_path(station_id: Any, user_id: Any) -> str:
    return f"stations/{_segment(station_id, 'station id')}/users/{_segment(user_id, 'user id')}"
