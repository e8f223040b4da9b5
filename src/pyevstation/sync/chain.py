"""Cascading subscriptions whose paths depend on upstream values.

A chain is an ordered list of levels.  Level *i* derives a key from the
values published by levels ``0..i-1`` and watches ``path_for(key)``.
Each level is a small state machine ``{last_key, cancel}``:

* the key is re-derived whenever a shallower level publishes, but the
  level is re-subscribed **only** when the derived key differs from
  ``last_key``.  Repeated upstream pushes with the same key never touch a
  healthy downstream subscription, so resubscription churn is bounded by
  the number of real key transitions, not by the push rate.
* a transition cancels the level's link and resets every deeper level
  (link cancelled, key unset, value ``None``) so stale data is never
  published against a new key.  An absent key (``None``) leaves the
  level closed.
* an error on a level publishes ``None`` for it and resets every deeper
  level; shallower levels are untouched.

A level's key is only derived once the level directly above has
delivered a value for its current key.  Each level carries a generation
counter; callbacks from a superseded link are discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

from pyevstation.exceptions import EvPermissionDeniedError, EvStationError
from pyevstation.models.session import ChargingSession
from pyevstation.models.status import PortStatus
from pyevstation.models.user import UserProfile, parse_user_id
from pyevstation.store.base import CancelFn, ErrorCallback, ValueCallback
from pyevstation.store.paths import port_status_path, rfid_binding_path, session_path, user_path

_logger = logging.getLogger(__name__)

LinkOpener = Callable[[str, ValueCallback, ErrorCallback], CancelFn]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


_UNSET: Any = _Unset()


@dataclass(frozen=True)
class ChainLevel:
    """Static description of one chain level.

    ``derive_key`` receives the values published by all shallower levels
    (``()`` for level 0) and returns the key or ``None`` for "absent".
    ``parse`` turns a raw push into the published value; it receives the
    key so records can be tagged with it.
    """

    name: str
    derive_key: Callable[[Sequence[Any]], str | None]
    path_for: Callable[[str], str]
    parse: Callable[[Any, str], Any]


@dataclass
class _LevelState:
    last_key: Any = _UNSET
    cancel: CancelFn | None = None
    value: Any = None
    ready: bool = False
    generation: int = 0
    open_count: int = 0


class SubscriptionChain:
    """Runs a list of :class:`ChainLevel` against a link opener."""

    def __init__(
        self,
        levels: Sequence[ChainLevel],
        open_link: LinkOpener,
        *,
        on_change: Callable[[SubscriptionChain], None] | None = None,
        name: str = "",
    ) -> None:
        if not levels:
            raise ValueError("a chain needs at least one level")
        self._levels = tuple(levels)
        self._open_link = open_link
        self._on_change = on_change
        self._name = name or "chain"
        self._states = [_LevelState() for _ in self._levels]
        self._running = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def values(self) -> tuple[Any, ...]:
        """Currently published value of every level."""
        return tuple(state.value for state in self._states)

    def value(self, index: int) -> Any:
        return self._states[index].value

    def key(self, index: int) -> str | None:
        """Key currently used by a level (``None`` when absent or unset)."""
        key = self._states[index].last_key
        return None if key is _UNSET else key

    def is_open(self, index: int) -> bool:
        return self._states[index].cancel is not None

    def open_count(self, index: int) -> int:
        """How many links the level has opened since construction."""
        return self._states[index].open_count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Open level 0.  Idempotent."""
        if self._running:
            return
        self._running = True
        self._evaluate(0)
        self._notify()

    def stop(self) -> None:
        """Cancel every link and publish ``None`` everywhere.  Idempotent."""
        if not self._running:
            return
        self._running = False
        self._reset_from(0)
        self._notify()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _evaluate(self, index: int) -> bool:
        """Re-derive the key of *index*; return ``True`` on a transition."""
        level = self._levels[index]
        state = self._states[index]
        upstream = tuple(s.value for s in self._states[:index])
        new_key = level.derive_key(upstream)

        if new_key == state.last_key:
            return False

        self._close(index)
        self._reset_from(index + 1)
        state.last_key = new_key
        state.value = None
        state.ready = False

        if new_key is None:
            _logger.debug("%s level=%s key absent; closed", self._name, level.name)
            return True

        try:
            path = level.path_for(new_key)
        except ValueError as exc:
            _logger.debug("%s level=%s unusable key %r: %s", self._name, level.name, new_key, exc)
            return True

        state.open_count += 1
        generation = state.generation
        _logger.debug("%s level=%s key=%s opening %s", self._name, level.name, new_key, path)
        state.cancel = self._open_link(
            path,
            partial(self._handle_value, index, generation, new_key),
            partial(self._handle_error, index, generation),
        )
        return True

    def _cascade(self, index: int) -> None:
        """Re-evaluate the levels below *index* after it published."""
        for deeper in range(index + 1, len(self._levels)):
            if not self._states[deeper - 1].ready:
                break
            if self._evaluate(deeper):
                break

    def _handle_value(self, index: int, generation: int, key: str, raw: Any) -> None:
        state = self._states[index]
        if not self._running or generation != state.generation:
            return
        level = self._levels[index]
        state.value = level.parse(raw, key)
        state.ready = True
        self._cascade(index)
        self._notify()

    def _handle_error(self, index: int, generation: int, error: EvStationError) -> None:
        state = self._states[index]
        if not self._running or generation != state.generation:
            return
        level = self._levels[index]
        if isinstance(error, EvPermissionDeniedError):
            _logger.warning("%s level=%s permission denied: %s", self._name, level.name, error)
        else:
            _logger.debug("%s level=%s error: %r", self._name, level.name, error)
        state.value = None
        state.ready = False
        self._reset_from(index + 1)
        self._notify()

    def _close(self, index: int) -> None:
        state = self._states[index]
        state.generation += 1
        cancel = state.cancel
        state.cancel = None
        if cancel is not None:
            cancel()

    def _reset_from(self, index: int) -> None:
        for deeper in range(index, len(self._states)):
            self._close(deeper)
            state = self._states[deeper]
            state.last_key = _UNSET
            state.value = None
            state.ready = False

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)


# ----------------------------------------------------------------------
# Station port chain
# ----------------------------------------------------------------------

STATUS_LEVEL = 0
SESSION_LEVEL = 1
BINDING_LEVEL = 2
USER_LEVEL = 3


def _status_key(_upstream: Sequence[Any]) -> str:
    return "status"


def _session_key(upstream: Sequence[Any]) -> str | None:
    status: PortStatus | None = upstream[STATUS_LEVEL]
    return status.session_id if status is not None else None


def _card_key(upstream: Sequence[Any]) -> str | None:
    status: PortStatus | None = upstream[STATUS_LEVEL]
    session: ChargingSession | None = upstream[SESSION_LEVEL]
    if session is not None and session.card_id:
        return session.card_id
    return status.card_id if status is not None else None


def _user_key(upstream: Sequence[Any]) -> str | None:
    user_id: str | None = upstream[BINDING_LEVEL]
    return user_id


class PortChain(SubscriptionChain):
    """status → session → card binding → user profile for one port."""

    def __init__(
        self,
        station_id: str,
        port: str,
        open_link: LinkOpener,
        *,
        on_change: Callable[[SubscriptionChain], None] | None = None,
    ) -> None:
        status_path = port_status_path(station_id, port)
        levels = (
            ChainLevel(
                name="status",
                derive_key=_status_key,
                path_for=lambda _key: status_path,
                parse=lambda raw, _key: PortStatus.from_store(raw, path=status_path),
            ),
            ChainLevel(
                name="session",
                derive_key=_session_key,
                path_for=session_path,
                parse=lambda raw, key: ChargingSession.from_store(raw, path=session_path(key), session_id=key),
            ),
            ChainLevel(
                name="binding",
                derive_key=_card_key,
                path_for=rfid_binding_path,
                parse=lambda raw, _key: parse_user_id(raw),
            ),
            ChainLevel(
                name="user",
                derive_key=_user_key,
                path_for=user_path,
                parse=lambda raw, key: UserProfile.from_store(raw, path=user_path(key), user_id=key),
            ),
        )
        super().__init__(levels, open_link, on_change=on_change, name=f"station={station_id} port={port}")
        self.station_id = station_id
        self.port = port

    @property
    def status(self) -> PortStatus | None:
        return self.value(STATUS_LEVEL)

    @property
    def session(self) -> ChargingSession | None:
        return self.value(SESSION_LEVEL)

    @property
    def user_id(self) -> str | None:
        return self.value(BINDING_LEVEL)

    @property
    def user(self) -> UserProfile | None:
        return self.value(USER_LEVEL)
