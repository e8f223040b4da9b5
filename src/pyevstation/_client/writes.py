"""Atomic multi-path writes.

Every helper issues exactly one :meth:`RealtimeStore.update` call so the
store applies all paths of an operation together.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pyevstation.ingestion.normalize import round_half_up
from pyevstation.models.settings import Settings
from pyevstation.models.user import RfidBinding
from pyevstation.store.base import RealtimeStore
from pyevstation.store.paths import SETTINGS_PATH, port_status_path, rfid_binding_path, user_path

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _require(value: str | None, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"{what} is required")
    return text


async def bind_card(
    store: RealtimeStore,
    *,
    username: str,
    card_id: str,
    email: str | None = None,
    now_ms: int | None = None,
) -> RfidBinding:
    """Bind an RFID card to the user derived from *username*.

    The user id is the trimmed username.  An existing binding of the card
    is overwritten.
    """
    user_id = _require(username, "username")
    card = _require(card_id, "card_id")
    base = user_path(user_id)
    rfid_path = rfid_binding_path(card)

    values: dict[str, Any] = {
        f"{base}/name": user_id,
        f"{base}/updatedTs": now_ms if now_ms is not None else _now_ms(),
        f"{base}/cardId": card,
        rfid_path: user_id,
    }
    email_value = (email or "").strip()
    if email_value:
        values[f"{base}/email"] = email_value

    await store.update(values)
    _logger.debug("Bound card=%s to user=%s", card, user_id)
    return RfidBinding(card_id=card, user_id=user_id)


async def create_user(
    store: RealtimeStore,
    *,
    name: str,
    email: str | None = None,
    card_id: str | None = None,
    now_ms: int | None = None,
) -> str:
    """Create a user under a store-generated id; optionally bind a card."""
    display_name = _require(name, "name")
    user_id = store.new_key()
    base = user_path(user_id)

    values: dict[str, Any] = {
        f"{base}/name": display_name,
        f"{base}/updatedTs": now_ms if now_ms is not None else _now_ms(),
    }
    email_value = (email or "").strip()
    if email_value:
        values[f"{base}/email"] = email_value
    card = (card_id or "").strip()
    if card:
        values[f"{base}/cardId"] = card
        values[rfid_binding_path(card)] = user_id

    await store.update(values)
    _logger.debug("Created user=%s", user_id)
    return user_id


async def update_settings(
    store: RealtimeStore,
    *,
    price_vnd_per_kwh: float,
    temperature_threshold_c: float,
    now_ms: int | None = None,
) -> Settings:
    """Write the settings singleton; the price is rounded to whole VND."""
    if price_vnd_per_kwh < 0:
        raise ValueError(f"price_vnd_per_kwh must be non-negative, got {price_vnd_per_kwh}")
    price = round_half_up(price_vnd_per_kwh)
    updated = now_ms if now_ms is not None else _now_ms()
    await store.update(
        {
            f"{SETTINGS_PATH}/priceVndPerKwh": price,
            f"{SETTINGS_PATH}/tempThresholdC": temperature_threshold_c,
            f"{SETTINGS_PATH}/updatedTs": updated,
        }
    )
    return Settings(
        price_vnd_per_kwh=price,
        temperature_threshold_c=temperature_threshold_c,
        updated_ts=updated,
    )


async def set_charging(store: RealtimeStore, station_id: Any, port: str, is_charging: bool) -> None:
    """Flip the ``isCharging`` flag of a port."""
    await store.update({f"{port_status_path(station_id, port)}/isCharging": is_charging})
