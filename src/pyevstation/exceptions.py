"""Custom exception hierarchy for pyevstation.

Every failure the sync engine can observe is mapped onto one of these
classes.  None of them is fatal: the engine degrades the affected path to
a "no data" (``None``) state and keeps the rest of the station running.
"""

from __future__ import annotations

import asyncio

import aiohttp


class EvStationError(Exception):
    """Base exception for all pyevstation errors."""


class EvConfigError(EvStationError):
    """Invalid or missing configuration."""


class EvAuthenticationError(EvStationError):
    """Identity handshake with the realtime store failed.

    Raised to the caller of :meth:`StationSyncController.start`; no
    subscription is opened while authentication is failing.
    """


class EvPermissionDeniedError(EvStationError):
    """The store rejected a subscription or read for a specific path."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class EvMalformedPayloadError(EvStationError):
    """A pushed value does not have the expected shape.

    The engine treats such values as absent rather than crashing.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class EvTransportError(EvStationError):
    """Delivery interrupted (network failure, non-2xx, broken stream).

    The engine publishes ``None`` for the affected path and relies on the
    store's own reconnection.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


def classify_error(exc: BaseException, *, path: str = "") -> EvStationError:
    """Map an arbitrary exception onto the pyevstation taxonomy."""
    if isinstance(exc, EvStationError):
        return exc
    if isinstance(exc, aiohttp.ClientResponseError):
        if exc.status in (401, 403):
            return EvPermissionDeniedError(f"Permission denied for {path or exc.request_info.url}", path=path)
        return EvTransportError(str(exc), status_code=exc.status, path=path)
    if isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)):
        return EvTransportError(f"Transport failure: {exc!r}", path=path)
    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return EvMalformedPayloadError(f"Malformed payload: {exc}", path=path)
    return EvTransportError(f"Unexpected failure: {exc!r}", path=path)
