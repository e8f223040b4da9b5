"""One-shot reads."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pyevstation.ingestion.normalize import normalize_environment, safe_str
from pyevstation.models.environment import EnvironmentReading
from pyevstation.models.power import PowerReading
from pyevstation.models.settings import Settings
from pyevstation.models.status import PortStatus
from pyevstation.models.user import parse_user_id
from pyevstation.store.base import RealtimeStore
from pyevstation.store.paths import (
    SESSIONS_PATH,
    SETTINGS_PATH,
    port_power_path,
    port_status_path,
    rfid_binding_path,
    station_env_path,
    station_user_path,
    user_path,
)

_logger = logging.getLogger(__name__)


async def read_environment(store: RealtimeStore, station_id: Any) -> EnvironmentReading | None:
    raw = await store.read(station_env_path(station_id))
    return normalize_environment(raw if isinstance(raw, dict) else None)


async def read_power(store: RealtimeStore, station_id: Any, port: str) -> PowerReading | None:
    path = port_power_path(station_id, port)
    return PowerReading.from_store(await store.read(path), path=path)


async def read_port_status(store: RealtimeStore, station_id: Any, port: str) -> PortStatus | None:
    path = port_status_path(station_id, port)
    return PortStatus.from_store(await store.read(path), path=path)


async def read_settings(store: RealtimeStore) -> Settings | None:
    return Settings.from_store(await store.read(SETTINGS_PATH), path=SETTINGS_PATH)


async def read_sessions(store: RealtimeStore) -> dict[str, Any]:
    """Raw ``sessions`` index keyed by session id (empty when missing)."""
    raw = await store.read(SESSIONS_PATH)
    return raw if isinstance(raw, dict) else {}


async def _lookup_name(store: RealtimeStore, station_id: str | None, card_id: str) -> str | None:
    # Station-scoped profile first, then the card binding and the global profile.
    if station_id:
        profile = await store.read(station_user_path(station_id, card_id))
        name = safe_str(profile.get("name")) if isinstance(profile, dict) else None
        if name:
            return name
    user_id = parse_user_id(await store.read(rfid_binding_path(card_id)))
    if user_id is None:
        return None
    profile = await store.read(user_path(user_id))
    return safe_str(profile.get("name")) if isinstance(profile, dict) else None


async def read_user_names(store: RealtimeStore, sessions: Mapping[str, Any]) -> dict[str, str]:
    """Display names keyed by the card ids found in *sessions*.

    Cards without a resolvable name are left out; unusable ids are skipped.
    """
    pairs: dict[str, str | None] = {}
    for raw in sessions.values():
        if not isinstance(raw, dict):
            continue
        card_id = safe_str(raw.get("cardId", raw.get("userId")))
        if card_id and card_id not in pairs:
            pairs[card_id] = safe_str(raw.get("stationId"))

    async def lookup(card_id: str, station_id: str | None) -> tuple[str, str | None]:
        try:
            return card_id, await _lookup_name(store, station_id, card_id)
        except ValueError:
            _logger.debug("Skipping name lookup for unusable card id %r", card_id)
            return card_id, None

    results = await asyncio.gather(*(lookup(card, station) for card, station in pairs.items()))
    return {card_id: name for card_id, name in results if name}
