from __future__ import annotations

from collections.abc import Sequence
from functools import partial
from typing import TYPE_CHECKING, Any

import pytest

from pyevstation.exceptions import EvPermissionDeniedError, EvTransportError
from pyevstation.sync.chain import (
    BINDING_LEVEL,
    SESSION_LEVEL,
    STATUS_LEVEL,
    USER_LEVEL,
    ChainLevel,
    PortChain,
    SubscriptionChain,
)
from pyevstation.sync.link import open_link

if TYPE_CHECKING:
    from conftest import FakeStore

STATUS = "stations/1/ports/A/status"


def _port_chain(store: FakeStore, changes: list[SubscriptionChain] | None = None) -> PortChain:
    on_change = changes.append if changes is not None else None
    return PortChain("1", "A", partial(open_link, store), on_change=on_change)


def _seed_full_chain(store: FakeStore) -> None:
    store.values.update(
        {
            STATUS: {"isCharging": True, "sessionId": "S1", "userId": "CARD-1", "startTs": 1_700_000_000_000},
            "sessions/S1": {"userId": "CARD-1", "startTs": 1_700_000_000_000, "stopTs": 0},
            "rfidMap/CARD-1": "alice",
            "users/alice": {"name": "Alice", "email": "alice@example.com"},
        }
    )


@pytest.mark.asyncio
async def test_chain_resolves_user_through_every_level(store: FakeStore) -> None:
    _seed_full_chain(store)
    chain = _port_chain(store)

    chain.start()
    await store.settle()

    assert chain.status is not None and chain.status.session_id == "S1"
    assert chain.session is not None and chain.session.session_id == "S1"
    assert chain.user_id == "alice"
    assert chain.user is not None and chain.user.name == "Alice"
    assert store.active_paths() == sorted([STATUS, "sessions/S1", "rfidMap/CARD-1", "users/alice"])


@pytest.mark.asyncio
async def test_repeated_keys_do_not_resubscribe(store: FakeStore) -> None:
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    for session_id in ["A", "A", "A", "B", None, "B"]:
        store.push(STATUS, {"sessionId": session_id, "isCharging": session_id is not None})
        await store.settle()

    assert chain.open_count(SESSION_LEVEL) == 3
    assert store.subscribe_count("sessions/A") == 1
    assert store.subscribe_count("sessions/B") == 2
    assert store.unsubscribe_calls.count("sessions/A") == 1
    assert store.unsubscribe_calls.count("sessions/B") == 1
    assert chain.key(SESSION_LEVEL) == "B"


@pytest.mark.asyncio
async def test_same_key_keeps_downstream_subscriptions(store: FakeStore) -> None:
    _seed_full_chain(store)
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    store.push(STATUS, {"isCharging": True, "sessionId": "S1", "userId": "CARD-1", "ts": 99})
    await store.settle()

    assert chain.open_count(SESSION_LEVEL) == 1
    assert chain.open_count(BINDING_LEVEL) == 1
    assert chain.open_count(USER_LEVEL) == 1
    assert store.unsubscribe_calls == []
    assert chain.status is not None and chain.status.raw_timestamp == 99


@pytest.mark.asyncio
async def test_absent_session_id_clears_deeper_levels(store: FakeStore) -> None:
    _seed_full_chain(store)
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    store.push(STATUS, {"isCharging": False, "sessionId": None, "userId": "CARD-1"})
    await store.settle()

    assert chain.status is not None and chain.status.is_charging is False
    assert chain.session is None
    assert chain.user_id is None
    assert chain.user is None
    assert store.active_paths() == [STATUS]


@pytest.mark.asyncio
async def test_session_change_tears_down_stale_user(store: FakeStore) -> None:
    _seed_full_chain(store)
    store.values.update(
        {
            "sessions/S2": {"userId": "CARD-2", "startTs": 1_700_000_500_000},
            "rfidMap/CARD-2": "bob",
            "users/bob": {"name": "Bob"},
        }
    )
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    store.push(STATUS, {"isCharging": True, "sessionId": "S2", "userId": "CARD-2"})
    await store.settle()

    assert chain.user is not None and chain.user.name == "Bob"
    assert "users/alice" in store.unsubscribe_calls
    assert "rfidMap/CARD-1" in store.unsubscribe_calls
    assert store.active_paths() == sorted([STATUS, "sessions/S2", "rfidMap/CARD-2", "users/bob"])


@pytest.mark.asyncio
async def test_card_falls_back_to_status_when_session_has_none(store: FakeStore) -> None:
    store.values.update(
        {
            STATUS: {"isCharging": True, "sessionId": "S1", "userId": "CARD-1"},
            "sessions/S1": {"startTs": 1000},
            "rfidMap/CARD-1": "alice",
        }
    )
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    assert chain.key(BINDING_LEVEL) == "CARD-1"
    assert chain.user_id == "alice"
    assert chain.user is None


@pytest.mark.asyncio
async def test_error_publishes_none_downstream_but_keeps_upstream(store: FakeStore) -> None:
    _seed_full_chain(store)
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    store.fail("sessions/S1", EvTransportError("stream closed", path="sessions/S1"))
    await store.settle()

    assert chain.status is not None and chain.status.session_id == "S1"
    assert chain.session is None
    assert chain.user_id is None
    assert chain.user is None
    assert "rfidMap/CARD-1" in store.unsubscribe_calls
    assert "users/alice" in store.unsubscribe_calls
    assert chain.is_open(SESSION_LEVEL)


@pytest.mark.asyncio
async def test_permission_denied_on_user_keeps_binding(store: FakeStore) -> None:
    _seed_full_chain(store)
    store.subscribe_errors["users/alice"] = EvPermissionDeniedError("denied", path="users/alice")
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    assert chain.user_id == "alice"
    assert chain.user is None
    assert chain.session is not None


@pytest.mark.asyncio
async def test_malformed_key_leaves_level_closed(store: FakeStore) -> None:
    store.values[STATUS] = {"sessionId": "bad/key"}
    chain = _port_chain(store)
    chain.start()
    await store.settle()

    assert chain.key(SESSION_LEVEL) == "bad/key"
    assert not chain.is_open(SESSION_LEVEL)
    assert chain.session is None
    assert store.active_paths() == [STATUS]


@pytest.mark.asyncio
async def test_stop_cancels_everything(store: FakeStore) -> None:
    _seed_full_chain(store)
    changes: list[SubscriptionChain] = []
    chain = _port_chain(store, changes)
    chain.start()
    await store.settle()

    chain.stop()
    chain.stop()
    store.push(STATUS, {"sessionId": "S9"})
    await store.settle()

    assert store.active_paths() == []
    assert chain.values == (None, None, None, None)
    assert not chain.is_running
    assert chain.value(STATUS_LEVEL) is None
    assert changes[-1] is chain


@pytest.mark.asyncio
async def test_stop_before_handshake_opens_nothing(store: FakeStore) -> None:
    _seed_full_chain(store)
    chain = _port_chain(store)

    chain.start()
    chain.stop()
    await store.settle()

    assert store.subscribe_calls == []


def test_generic_chain_with_synchronous_opener() -> None:
    opened: list[str] = []
    callbacks: dict[str, Any] = {}

    def opener(path: str, on_value: Any, on_error: Any) -> Any:
        opened.append(path)
        callbacks[path] = on_value
        return lambda: callbacks.pop(path, None)

    def derive_child(upstream: Sequence[Any]) -> str | None:
        parent = upstream[0]
        return parent.get("child") if parent else None

    chain = SubscriptionChain(
        [
            ChainLevel("root", lambda _up: "root", lambda key: key, lambda raw, _key: raw),
            ChainLevel("child", derive_child, lambda key: f"child/{key}", lambda raw, _key: raw),
        ],
        opener,
    )
    chain.start()
    callbacks["root"]({"child": "x"})
    callbacks["child/x"](42)

    assert chain.values == ({"child": "x"}, 42)
    assert opened == ["root", "child/x"]

    callbacks["root"]({"child": "y"})
    assert chain.values == ({"child": "y"}, None)
    assert opened == ["root", "child/x", "child/y"]
    assert "child/x" not in callbacks


def test_chain_requires_levels() -> None:
    with pytest.raises(ValueError):
        SubscriptionChain([], lambda *_args: lambda: None)
