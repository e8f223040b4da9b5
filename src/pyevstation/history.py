"""Completed-session history built from the ``sessions`` index."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from pyevstation.ingestion.normalize import round_half_up
from pyevstation.ingestion.timestamps import TimestampResolver
from pyevstation.models.session import ChargingSession
from pyevstation.store.paths import session_path

# Port keys written by station firmware, mapped to the 1-based port number.
_PORT_NUMBERS = {"A": 1, "B": 2}


def port_number(port: str | None) -> int:
    """``"A"`` → 1, ``"B"`` → 2, numeric keys as-is, anything else → 0."""
    if not port:
        return 0
    if port in _PORT_NUMBERS:
        return _PORT_NUMBERS[port]
    try:
        return int(port)
    except ValueError:
        return 0


class SessionHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    session_id: str
    station_id: str | None = None
    port: str | None = None
    port_number: int = 0
    card_id: str | None = None
    user_name: str | None = None
    start_ms: int | None = None
    """Epoch ms; ``None`` for uptime-encoded timestamps."""
    stop_ms: int | None = None
    duration_ms: int | None = None
    energy_kwh: float = 0.0
    cost_vnd: int = 0
    battery_start: float | None = None
    battery_end: float | None = None
    reason: str | None = None
    sort_key: float = 0.0


class HistorySummary(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    total_sessions: int = 0
    total_energy_kwh: float = 0.0
    total_revenue_vnd: int = 0
    total_duration_ms: int = 0
    """Summed charging time; sessions without a computable duration count as 0."""


def build_session_history(
    sessions: Mapping[str, Any] | None,
    *,
    user_names: Mapping[str, str] | None = None,
    resolver: TimestampResolver | None = None,
) -> list[SessionHistoryEntry]:
    """Return completed sessions, most recently updated first.

    Open sessions (no positive ``stopTs``) and malformed records are
    skipped.  ``user_names`` maps card or user ids to display names.
    """
    if not sessions:
        return []
    resolver = resolver or TimestampResolver()
    names = user_names or {}

    entries: list[SessionHistoryEntry] = []
    for session_id, raw in sessions.items():
        record = ChargingSession.from_store(raw, path=session_path(session_id), session_id=session_id)
        if record is None or not record.is_complete:
            continue
        card_id = record.card_id
        entries.append(
            SessionHistoryEntry(
                session_id=str(session_id),
                station_id=record.station_id,
                port=record.port,
                port_number=port_number(record.port),
                card_id=card_id,
                user_name=names.get(card_id, card_id) if card_id else None,
                start_ms=resolver.to_epoch_millis(record.start_raw),
                stop_ms=resolver.to_epoch_millis(record.stop_raw),
                duration_ms=resolver.duration(record.start_raw, record.stop_raw),
                energy_kwh=record.energy_kwh or 0.0,
                cost_vnd=round_half_up(record.cost_vnd or 0.0),
                battery_start=record.battery_start,
                battery_end=record.battery_end,
                reason=record.reason,
                sort_key=record.updated_raw or record.stop_raw or 0.0,
            )
        )

    entries.sort(key=lambda entry: entry.sort_key, reverse=True)
    return entries


def summarize_history(entries: list[SessionHistoryEntry]) -> HistorySummary:
    return HistorySummary(
        total_sessions=len(entries),
        total_energy_kwh=sum(entry.energy_kwh for entry in entries),
        total_revenue_vnd=sum(entry.cost_vnd for entry in entries),
        total_duration_ms=sum(entry.duration_ms or 0 for entry in entries),
    )
