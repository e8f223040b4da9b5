"""Firebase Realtime Database adapter (REST + server-sent events).

* Identity: anonymous sign-up through the Identity Toolkit REST API, ID
  token refresh through the Secure Token API.
* Subscribe: ``GET <path>.json`` with ``Accept: text/event-stream``; the
  adapter folds ``put``/``patch`` events into a local copy of the value
  and hands the whole value to the callback.
* Read / atomic multi-path update: ``GET`` / ``PATCH`` on ``.json`` URLs.

Reconnection after a dropped stream is left to the caller: the stream
reports :class:`~pyevstation.exceptions.EvTransportError` and ends.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import secrets
import time
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

import aiohttp

from pyevstation._constants import IDENTITY_TOOLKIT_SIGNUP_URL, SECURE_TOKEN_URL, TOKEN_REFRESH_MARGIN_S
from pyevstation._redact import redact_for_log, redact_url
from pyevstation.config import EvStationConfig
from pyevstation.exceptions import (
    EvAuthenticationError,
    EvPermissionDeniedError,
    EvStationError,
    EvTransportError,
    classify_error,
)
from pyevstation.store.base import CancelFn, ErrorCallback, ValueCallback

_logger = logging.getLogger(__name__)

_PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushIdGenerator:
    """Chronologically ordered 20-character keys, as generated by Firebase clients.

    8 characters encode the millisecond timestamp, 12 are random; keys
    generated within the same millisecond increment the random part so
    they still sort in creation order.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last_ms = -1
        self._last_random: list[int] = [0] * 12

    def __call__(self) -> str:
        now_ms = int(self._clock() * 1000)
        if now_ms == self._last_ms:
            for index in range(11, -1, -1):
                if self._last_random[index] != 63:
                    self._last_random[index] += 1
                    break
                self._last_random[index] = 0
        else:
            self._last_random = [secrets.randbelow(64) for _ in range(12)]
        self._last_ms = now_ms

        time_chars: list[str] = []
        remaining = now_ms
        for _ in range(8):
            time_chars.append(_PUSH_CHARS[remaining % 64])
            remaining //= 64
        return "".join(reversed(time_chars)) + "".join(_PUSH_CHARS[i] for i in self._last_random)


def apply_stream_event(tree: Any, path: str, data: Any, *, merge: bool) -> Any:
    """Fold one ``put``/``patch`` stream event into the locally held value.

    ``put`` replaces the value at *path*; ``patch`` merges the children of
    *data* into it.  ``None`` deletes, and objects left empty collapse to
    ``None`` like in the database itself.
    """
    segments = [segment for segment in path.strip("/").split("/") if segment]

    if not segments:
        if not merge:
            return copy.deepcopy(data)
        root = dict(tree) if isinstance(tree, dict) else {}
        _merge_children(root, data)
        return root or None

    root = dict(tree) if isinstance(tree, dict) else {}
    parents: list[dict[str, Any]] = [root]
    node = root
    for segment in segments[:-1]:
        child = node.get(segment)
        child = dict(child) if isinstance(child, dict) else {}
        node[segment] = child
        node = child
        parents.append(node)

    leaf = segments[-1]
    if merge:
        existing = node.get(leaf)
        merged = dict(existing) if isinstance(existing, dict) else {}
        _merge_children(merged, data)
        _set_or_delete(node, leaf, merged or None)
    else:
        _set_or_delete(node, leaf, copy.deepcopy(data))

    # Collapse parents emptied by a delete.
    for depth in range(len(segments) - 1, 0, -1):
        parent = parents[depth - 1]
        if not parents[depth]:
            parent.pop(segments[depth - 1], None)
    return root or None


def _merge_children(target: dict[str, Any], data: Any) -> None:
    if not isinstance(data, Mapping):
        return
    for key, value in data.items():
        _set_or_delete(target, str(key), copy.deepcopy(value))


def _set_or_delete(target: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        target.pop(key, None)
    else:
        target[key] = value


async def iter_sse(content: aiohttp.StreamReader) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event, data)`` pairs from a server-sent events body."""
    event = ""
    data_lines: list[str] = []
    async for raw_line in content:
        line = raw_line.decode("utf-8").rstrip("\r\n")
        if not line:
            if event or data_lines:
                yield event, "\n".join(data_lines)
            event = ""
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)
    if event or data_lines:
        yield event, "\n".join(data_lines)


class FirebaseRealtimeStore:
    """:class:`~pyevstation.store.base.RealtimeStore` backed by Firebase RTDB.

    Usage::

        async with FirebaseRealtimeStore(config) as store:
            await store.authenticate()
            value = await store.read("settings")
    """

    def __init__(
        self,
        config: EvStationConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session
        self._clock = clock
        self._auth_lock = asyncio.Lock()
        self._uid: str | None = None
        self._id_token: str | None = None
        self._refresh_token: str | None = None
        self._token_expires_at = 0.0
        self._streams: set[asyncio.Task[None]] = set()
        self._push_ids = PushIdGenerator(clock=clock)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FirebaseRealtimeStore:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        streams = list(self._streams)
        for task in streams:
            task.cancel()
        if streams:
            await asyncio.gather(*streams, return_exceptions=True)
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_http(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise EvStationError("Store not initialized. Use 'async with FirebaseRealtimeStore(...) as store:'")
        return self._http

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self._config.request_timeout)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str | None:
        return self._uid

    def _token_valid(self) -> bool:
        return self._id_token is not None and self._clock() < self._token_expires_at - TOKEN_REFRESH_MARGIN_S

    async def authenticate(self) -> str | None:
        """Sign in anonymously (once) and keep the ID token fresh."""
        if not self._config.auth_enabled:
            return None
        async with self._auth_lock:
            if self._token_valid():
                return self._uid
            if self._refresh_token is not None:
                try:
                    await self._refresh()
                    return self._uid
                except EvAuthenticationError:
                    _logger.debug("ID token refresh failed; signing up again", exc_info=True)
            await self._sign_up()
            return self._uid

    def invalidate_token(self) -> None:
        """Force a token refresh on the next :meth:`authenticate` call."""
        self._token_expires_at = 0.0

    async def _post_identity(self, url: str, **kwargs: Any) -> dict[str, Any]:
        http = self._require_http()
        try:
            async with http.post(
                url, params={"key": self._config.api_key or ""}, timeout=self._timeout(), **kwargs
            ) as resp:
                body = await resp.json(content_type=None)
                if resp.status != 200 or not isinstance(body, dict):
                    _logger.warning("Identity handshake failed status=%s", resp.status)
                    _logger.debug("Identity handshake response: %s", redact_for_log(body))
                    raise EvAuthenticationError(f"Identity handshake failed with HTTP {resp.status}")
                return body
        except EvAuthenticationError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise EvAuthenticationError(f"Identity handshake failed: {exc!r}") from exc

    async def _sign_up(self) -> None:
        body = await self._post_identity(IDENTITY_TOOLKIT_SIGNUP_URL, json={"returnSecureToken": True})
        self._store_token(
            uid=body.get("localId"),
            id_token=body.get("idToken"),
            refresh_token=body.get("refreshToken"),
            expires_in=body.get("expiresIn"),
        )
        _logger.debug("Anonymous sign-up succeeded uid=%s", self._uid)

    async def _refresh(self) -> None:
        body = await self._post_identity(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": self._refresh_token or ""},
        )
        self._store_token(
            uid=body.get("user_id"),
            id_token=body.get("id_token"),
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
        )
        _logger.debug("ID token refreshed uid=%s", self._uid)

    def _store_token(self, *, uid: Any, id_token: Any, refresh_token: Any, expires_in: Any) -> None:
        if not isinstance(id_token, str) or not id_token:
            raise EvAuthenticationError("Identity handshake response missing ID token")
        try:
            lifetime = float(expires_in)
        except (TypeError, ValueError):
            lifetime = 3600.0
        self._uid = str(uid) if uid else self._uid
        self._id_token = id_token
        if isinstance(refresh_token, str) and refresh_token:
            self._refresh_token = refresh_token
        self._token_expires_at = self._clock() + lifetime

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        path = path.strip("/")
        return f"{self._config.base_url}/{path}.json" if path else f"{self._config.base_url}/.json"

    def _params(self) -> dict[str, str]:
        if self._config.auth_enabled and self._id_token:
            return {"auth": self._id_token}
        return {}

    @staticmethod
    def _raise_for_status(status: int, path: str) -> None:
        if status in (401, 403):
            raise EvPermissionDeniedError(f"Permission denied for {path or '/'}", path=path)
        if status >= 400:
            raise EvTransportError(f"HTTP {status} for {path or '/'}", status_code=status, path=path)

    async def read(self, path: str) -> Any:
        await self.authenticate()
        http = self._require_http()
        url = self._url(path)
        _logger.debug("GET %s", redact_url(url))
        try:
            async with http.get(url, params=self._params(), timeout=self._timeout()) as resp:
                self._raise_for_status(resp.status, path)
                return await resp.json(content_type=None)
        except EvStationError:
            raise
        except Exception as exc:
            raise classify_error(exc, path=path) from exc

    async def update(self, values: Mapping[str, Any]) -> None:
        await self.authenticate()
        http = self._require_http()
        body = {key.strip("/"): value for key, value in values.items()}
        _logger.debug("PATCH / %s", redact_for_log(body))
        try:
            async with http.patch(self._url(""), params=self._params(), json=body, timeout=self._timeout()) as resp:
                self._raise_for_status(resp.status, "")
        except EvStationError:
            raise
        except Exception as exc:
            raise classify_error(exc) from exc

    def new_key(self) -> str:
        return self._push_ids()

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def subscribe(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> CancelFn:
        task = asyncio.get_running_loop().create_task(self._stream(path, on_value, on_error))
        self._streams.add(task)
        task.add_done_callback(self._streams.discard)

        def cancel() -> None:
            if not task.done():
                _logger.debug("Stream cancel requested path=%s", path)
                task.cancel()

        return cancel

    async def _stream(self, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> None:
        http = self._require_http()
        url = self._url(path)
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self._config.request_timeout)
        _logger.debug("Stream open %s", redact_url(url))
        try:
            async with http.get(
                url,
                params=self._params(),
                headers={"Accept": "text/event-stream"},
                timeout=timeout,
            ) as resp:
                self._raise_for_status(resp.status, path)
                value: Any = None
                async for event, data in iter_sse(resp.content):
                    if event in ("put", "patch"):
                        payload = json.loads(data)
                        value = apply_stream_event(
                            value, str(payload.get("path", "/")), payload.get("data"), merge=event == "patch"
                        )
                        on_value(copy.deepcopy(value))
                    elif event == "keep-alive":
                        continue
                    elif event == "cancel":
                        raise EvPermissionDeniedError(f"Stream cancelled by server for {path}", path=path)
                    elif event == "auth_revoked":
                        self.invalidate_token()
                        raise EvAuthenticationError(f"ID token revoked while streaming {path}")
                    else:
                        _logger.debug("Ignoring stream event %r path=%s", event, path)
            raise EvTransportError(f"Stream closed by server for {path}", path=path)
        except asyncio.CancelledError:
            _logger.debug("Stream closed path=%s", path)
            raise
        except Exception as exc:
            error = classify_error(exc, path=path)
            _logger.debug("Stream failed path=%s error=%r", path, error)
            on_error(error)
