"""Per-station orchestrator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

from pyevstation._constants import DEFAULT_PORTS, DEFAULT_TEMPERATURE_THRESHOLD_C
from pyevstation.exceptions import EvAuthenticationError, EvStationError, classify_error
from pyevstation.ingestion.normalize import normalize_environment, round_half_up
from pyevstation.models.environment import EnvironmentReading
from pyevstation.models.power import PowerReading
from pyevstation.models.settings import Settings
from pyevstation.models.station import PortSnapshot, Station, StationSnapshot
from pyevstation.store.base import CancelFn, RealtimeStore
from pyevstation.store.paths import SETTINGS_PATH, port_power_path, station_env_path
from pyevstation.sync.aggregate import SessionAggregator
from pyevstation.sync.chain import PortChain, SubscriptionChain
from pyevstation.sync.link import open_link

_logger = logging.getLogger(__name__)


class StationSyncController:
    """Keeps the live view of one station in sync with the store.

    Owns an environment link, a settings link, and per port a power-meter
    link plus a :class:`PortChain`.

    Usage::

        controller = StationSyncController(store, Station(id="1"), on_change=print)
        await controller.start()
        ...
        controller.stop()
    """

    def __init__(
        self,
        store: RealtimeStore,
        station: Station,
        *,
        ports: Sequence[str] = DEFAULT_PORTS,
        on_change: Callable[[StationSnapshot], None] | None = None,
        aggregator: SessionAggregator | None = None,
        default_temperature_threshold_c: float = DEFAULT_TEMPERATURE_THRESHOLD_C,
    ) -> None:
        if not ports:
            raise ValueError("at least one port is required")
        self._store = store
        self._station = station
        self._ports = tuple(ports)
        self._on_change = on_change
        self._aggregator = aggregator or SessionAggregator()
        self._default_threshold = default_temperature_threshold_c

        # Bumped by stop(); a start() whose handshake outlives it opens nothing.
        self._generation = 0
        self._handshake: asyncio.Future[str | None] | None = None
        self._running = False
        self._cancels: list[CancelFn] = []
        self._chains: dict[str, PortChain] = {}

        self._environment: EnvironmentReading | None = None
        self._settings: Settings | None = None
        self._power: dict[str, PowerReading | None] = dict.fromkeys(self._ports)

    @property
    def station(self) -> Station:
        return self._station

    @property
    def is_running(self) -> bool:
        return self._running

    def chain(self, port: str) -> PortChain | None:
        return self._chains.get(port)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StationSyncController:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Authenticate, then open every link.  Idempotent.

        Raises :class:`EvAuthenticationError` if the handshake fails; no
        link is opened in that case.  If :meth:`stop` is called while the
        handshake is in flight, that start opens nothing; a later start
        waits for the same handshake and then opens the links.
        """
        if self._running:
            return
        generation = self._generation
        handshake = self._handshake
        if handshake is None:
            handshake = asyncio.ensure_future(self._store.authenticate())
            self._handshake = handshake
        try:
            # Shared by every start() issued while it is in flight.
            await asyncio.shield(handshake)
        except EvAuthenticationError:
            _logger.warning("Station %s: identity handshake failed", self._station.id)
            raise
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise EvAuthenticationError(f"Identity handshake failed: {classify_error(exc)}") from exc
        finally:
            if self._handshake is handshake and handshake.done():
                self._handshake = None

        if generation != self._generation:
            _logger.debug("Station %s stopped during handshake; not opening links", self._station.id)
            return
        if self._running:
            return

        self._running = True
        station_id = self._station.id
        opener = partial(open_link, self._store)
        _logger.debug("Station %s starting ports=%s", station_id, self._ports)

        self._cancels.append(opener(station_env_path(station_id), self._on_environment, self._on_environment_error))
        self._cancels.append(opener(SETTINGS_PATH, self._on_settings, self._on_settings_error))
        for port in self._ports:
            self._cancels.append(
                opener(
                    port_power_path(station_id, port),
                    partial(self._on_power, port),
                    partial(self._on_power_error, port),
                )
            )
            chain = PortChain(station_id, port, opener, on_change=self._on_chain_change)
            self._chains[port] = chain
            chain.start()
        self._notify()

    def stop(self) -> None:
        """Cancel every owned link and reset all published state.  Idempotent."""
        self._generation += 1
        was_running = self._running
        self._running = False

        cancels = self._cancels
        self._cancels = []
        for cancel in cancels:
            cancel()
        chains = self._chains
        self._chains = {}
        for chain in chains.values():
            chain.stop()

        self._environment = None
        self._settings = None
        self._power = dict.fromkeys(self._ports)
        if was_running:
            _logger.debug("Station %s stopped", self._station.id)
            self._notify()

    # ------------------------------------------------------------------
    # Push handlers
    # ------------------------------------------------------------------

    def _on_environment(self, raw: Any) -> None:
        self._environment = normalize_environment(raw if isinstance(raw, dict) else None)
        self._notify()

    def _on_environment_error(self, error: EvStationError) -> None:
        _logger.debug("Station %s environment error: %r", self._station.id, error)
        self._environment = None
        self._notify()

    def _on_settings(self, raw: Any) -> None:
        self._settings = Settings.from_store(raw, path=SETTINGS_PATH)
        self._notify()

    def _on_settings_error(self, error: EvStationError) -> None:
        _logger.debug("Station %s settings error: %r", self._station.id, error)
        self._settings = None
        self._notify()

    def _on_power(self, port: str, raw: Any) -> None:
        self._power[port] = PowerReading.from_store(raw, path=port_power_path(self._station.id, port))
        self._notify()

    def _on_power_error(self, port: str, error: EvStationError) -> None:
        _logger.debug("Station %s port %s power error: %r", self._station.id, port, error)
        self._power[port] = None
        self._notify()

    def _on_chain_change(self, _chain: SubscriptionChain) -> None:
        if self._running:
            self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def _port_snapshot(self, port: str) -> PortSnapshot:
        chain = self._chains.get(port)
        status = chain.status if chain is not None else None
        session = chain.session if chain is not None else None
        power = self._power.get(port)
        return PortSnapshot(
            port=port,
            status=status,
            power=power,
            session=session,
            user_id=chain.user_id if chain is not None else None,
            user=chain.user if chain is not None else None,
            metrics=self._aggregator.aggregate(status, power, session, self._settings),
        )

    def snapshot(self) -> StationSnapshot:
        """Return the merged live state (a frozen copy)."""
        ports = {port: self._port_snapshot(port) for port in self._ports}
        charging_count = sum(1 for snap in ports.values() if snap.is_charging)
        total_power_w = round_half_up(
            sum(snap.power.power or 0.0 for snap in ports.values() if snap.power is not None)
        )

        temperature_alert: bool | None = None
        if self._environment is not None and self._environment.temperature is not None:
            threshold = self._default_threshold
            if self._settings is not None and self._settings.temperature_threshold_c is not None:
                threshold = self._settings.temperature_threshold_c
            temperature_alert = self._environment.temperature >= threshold

        return StationSnapshot(
            station=self._station,
            running=self._running,
            environment=self._environment,
            settings=self._settings,
            ports=ports,
            charging_count=charging_count,
            total_power_w=total_power_w,
            temperature_alert=temperature_alert,
        )
