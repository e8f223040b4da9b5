"""Capability interface of the external realtime store."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pyevstation.exceptions import EvStationError

ValueCallback = Callable[[Any], None]
ErrorCallback = Callable[[EvStationError], None]
CancelFn = Callable[[], None]


class RealtimeStore(Protocol):
    """Structural store interface used by the sync engine."""

    async def authenticate(self) -> str | None:
        """Ensure an (anonymous) identity exists; return its user id.

        Must be safe to call repeatedly and concurrently; raises
        :class:`~pyevstation.exceptions.EvAuthenticationError` on failure.
        """
        ...

    def subscribe(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> CancelFn:
        """Start delivering the value at *path* (and every later change).

        ``on_value`` receives the whole current value (``None`` when the
        path is empty).  Failures are reported once through ``on_error``.
        Called only after :meth:`authenticate` succeeded.
        """
        ...

    async def read(self, path: str) -> Any:
        """One-shot read of the value at *path*."""
        ...

    async def update(self, values: Mapping[str, Any]) -> None:
        """Apply ``{path: value}`` pairs atomically (``None`` deletes)."""
        ...

    def new_key(self) -> str:
        """Return a fresh store-generated unique key."""
        ...
