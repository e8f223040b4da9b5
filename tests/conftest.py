from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyevstation.exceptions import EvStationError


@dataclass
class _Subscriber:
    path: str
    on_value: Callable[[Any], None]
    on_error: Callable[[EvStationError], None]
    active: bool = True


@dataclass
class FakeStore:
    """In-memory RealtimeStore double that records every interaction."""

    values: dict[str, Any] = field(default_factory=dict)
    auth_error: Exception | None = None
    auth_gate: asyncio.Event | None = None
    subscribe_errors: dict[str, EvStationError] = field(default_factory=dict)
    auth_calls: int = 0
    subscribe_calls: list[str] = field(default_factory=list)
    unsubscribe_calls: list[str] = field(default_factory=list)
    updates: list[dict[str, Any]] = field(default_factory=list)
    _subscribers: list[_Subscriber] = field(default_factory=list)
    _key_counter: int = 0

    async def authenticate(self) -> str | None:
        self.auth_calls += 1
        if self.auth_gate is not None:
            await self.auth_gate.wait()
        if self.auth_error is not None:
            raise self.auth_error
        return "anon-uid"

    def subscribe(
        self,
        path: str,
        on_value: Callable[[Any], None],
        on_error: Callable[[EvStationError], None],
    ) -> Callable[[], None]:
        self.subscribe_calls.append(path)
        subscriber = _Subscriber(path, on_value, on_error)
        self._subscribers.append(subscriber)

        error = self.subscribe_errors.get(path)
        if error is not None:
            on_error(error)
        else:
            on_value(copy.deepcopy(self.values.get(path)))

        def cancel() -> None:
            if subscriber.active:
                subscriber.active = False
                self.unsubscribe_calls.append(path)

        return cancel

    async def read(self, path: str) -> Any:
        return copy.deepcopy(self.values.get(path))

    async def update(self, values: Mapping[str, Any]) -> None:
        self.updates.append(dict(values))

    def new_key(self) -> str:
        self._key_counter += 1
        return f"key-{self._key_counter}"

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def push(self, path: str, value: Any) -> None:
        self.values[path] = value
        for subscriber in list(self._subscribers):
            if subscriber.active and subscriber.path == path:
                subscriber.on_value(copy.deepcopy(value))

    def fail(self, path: str, error: EvStationError) -> None:
        for subscriber in list(self._subscribers):
            if subscriber.active and subscriber.path == path:
                subscriber.on_error(error)

    def active_paths(self) -> list[str]:
        return sorted(s.path for s in self._subscribers if s.active)

    def subscribe_count(self, path: str) -> int:
        return self.subscribe_calls.count(path)

    async def settle(self) -> None:
        """Let pending link tasks run."""
        for _ in range(20):
            await asyncio.sleep(0)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
