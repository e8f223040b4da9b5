"""High-level async client for EV charging station monitoring."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import aiohttp

from pyevstation._client import reads as _reads
from pyevstation._client import writes as _writes
from pyevstation.config import EvStationConfig
from pyevstation.history import HistorySummary, SessionHistoryEntry, build_session_history, summarize_history
from pyevstation.models.environment import EnvironmentReading
from pyevstation.models.power import PowerReading
from pyevstation.models.settings import Settings
from pyevstation.models.station import Station, StationSnapshot
from pyevstation.models.status import PortStatus
from pyevstation.models.user import RfidBinding
from pyevstation.store.base import RealtimeStore
from pyevstation.store.firebase import FirebaseRealtimeStore
from pyevstation.sync.aggregate import SessionAggregator
from pyevstation.sync.controller import StationSyncController

_logger = logging.getLogger(__name__)


class EvStationClient:
    """Async client for the station realtime database.

    Usage::

        async with EvStationClient(config) as client:
            controller = client.station_controller(Station(id="1"), on_change=print)
            await controller.start()

    A custom :class:`RealtimeStore` may be injected (e.g. a test double);
    otherwise a :class:`FirebaseRealtimeStore` is created and owned by the
    client.
    """

    def __init__(
        self,
        config: EvStationConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: RealtimeStore | None = None,
    ) -> None:
        self._config = config
        self._http_session = session
        self._external_store = store is not None
        self._store: RealtimeStore | None = store
        self._controllers: list[StationSyncController] = []
        self._aggregator = SessionAggregator(default_price_vnd_per_kwh=config.default_price_vnd_per_kwh)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> EvStationClient:
        if self._store is None:
            firebase = FirebaseRealtimeStore(self._config, session=self._http_session)
            await firebase.__aenter__()
            self._store = firebase
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for controller in self._controllers:
            controller.stop()
        self._controllers.clear()
        if not self._external_store and isinstance(self._store, FirebaseRealtimeStore):
            await self._store.close()
            self._store = None

    @property
    def store(self) -> RealtimeStore:
        if self._store is None:
            raise RuntimeError("Client not initialized. Use 'async with EvStationClient(...) as client:'")
        return self._store

    async def authenticate(self) -> str | None:
        """Run the identity handshake; return the anonymous user id."""
        return await self.store.authenticate()

    # ------------------------------------------------------------------
    # Live sync
    # ------------------------------------------------------------------

    def station_controller(
        self,
        station: Station,
        *,
        ports: Sequence[str] | None = None,
        on_change: Callable[[StationSnapshot], None] | None = None,
    ) -> StationSyncController:
        """Create a (not yet started) controller; the client stops it on exit."""
        controller = StationSyncController(
            self.store,
            station,
            ports=tuple(ports) if ports is not None else self._config.ports,
            on_change=on_change,
            aggregator=self._aggregator,
            default_temperature_threshold_c=self._config.default_temperature_threshold_c,
        )
        self._controllers.append(controller)
        return controller

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_environment(self, station_id: Any) -> EnvironmentReading | None:
        return await _reads.read_environment(self.store, station_id)

    async def read_power(self, station_id: Any, port: str) -> PowerReading | None:
        return await _reads.read_power(self.store, station_id, port)

    async def read_port_status(self, station_id: Any, port: str) -> PortStatus | None:
        return await _reads.read_port_status(self.store, station_id, port)

    async def read_settings(self) -> Settings | None:
        return await _reads.read_settings(self.store)

    async def get_session_history(
        self,
        *,
        user_names: Mapping[str, str] | None = None,
    ) -> tuple[list[SessionHistoryEntry], HistorySummary]:
        """Completed sessions (newest first) plus time/revenue/energy totals.

        Card holder names are read from the store; entries in *user_names*
        take precedence over them.
        """
        sessions = await _reads.read_sessions(self.store)
        names = await _reads.read_user_names(self.store, sessions)
        if user_names:
            names.update(user_names)
        entries = build_session_history(sessions, user_names=names, resolver=self._aggregator.resolver)
        return entries, summarize_history(entries)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def bind_card(self, *, username: str, card_id: str, email: str | None = None) -> RfidBinding:
        return await _writes.bind_card(self.store, username=username, card_id=card_id, email=email)

    async def create_user(self, *, name: str, email: str | None = None, card_id: str | None = None) -> str:
        return await _writes.create_user(self.store, name=name, email=email, card_id=card_id)

    async def update_settings(self, *, price_vnd_per_kwh: float, temperature_threshold_c: float) -> Settings:
        return await _writes.update_settings(
            self.store,
            price_vnd_per_kwh=price_vnd_per_kwh,
            temperature_threshold_c=temperature_threshold_c,
        )

    async def set_charging(self, station_id: Any, port: str, is_charging: bool) -> None:
        await _writes.set_charging(self.store, station_id, port, is_charging)
