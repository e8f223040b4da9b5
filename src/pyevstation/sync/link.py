"""A single reactive edge: one watched store path."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pyevstation.exceptions import EvAuthenticationError, EvStationError, classify_error
from pyevstation.store.base import CancelFn, ErrorCallback, RealtimeStore, ValueCallback

_logger = logging.getLogger(__name__)


class SubscriptionLink:
    """Watch one path; deliver pushes until cancelled.

    The identity handshake is awaited internally before the store
    subscription is opened.  After :meth:`cancel` no callback is ever
    invoked again, including when cancel happens while the handshake is
    still in flight.
    """

    def __init__(
        self,
        store: RealtimeStore,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._store = store
        self._path = path
        self._on_value = on_value
        self._on_error = on_error
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe: CancelFn | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_subscribed(self) -> bool:
        """Whether the store subscription is currently open."""
        return self._unsubscribe is not None

    def open(self) -> CancelFn:
        if self._task is not None or self._cancelled:
            return self.cancel
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self.cancel

    async def _run(self) -> None:
        try:
            await self._store.authenticate()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_error(exc, path=self._path)
            if not isinstance(error, EvAuthenticationError):
                error = EvAuthenticationError(f"Identity handshake failed: {error}")
            self._deliver_error(error)
            return

        if self._cancelled:
            _logger.debug("Link cancelled during handshake path=%s", self._path)
            return

        _logger.debug("Link subscribing path=%s", self._path)
        try:
            self._unsubscribe = self._store.subscribe(self._path, self._deliver_value, self._deliver_error)
        except Exception as exc:
            self._deliver_error(classify_error(exc, path=self._path))

    def _deliver_value(self, value: Any) -> None:
        if self._cancelled:
            return
        try:
            self._on_value(value)
        except Exception:
            _logger.exception("Value callback failed path=%s", self._path)

    def _deliver_error(self, error: EvStationError) -> None:
        if self._cancelled:
            return
        try:
            self._on_error(error)
        except Exception:
            _logger.exception("Error callback failed path=%s", self._path)

    def cancel(self) -> None:
        """Stop delivery.  Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            _logger.debug("Link unsubscribing path=%s", self._path)
            unsubscribe()


def open_link(store: RealtimeStore, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> CancelFn:
    """Open a :class:`SubscriptionLink` and return its cancel function."""
    return SubscriptionLink(store, path, on_value, on_error).open()
