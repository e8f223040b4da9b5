"""Client configuration for pyevstation."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyevstation._constants import (
    DEFAULT_PORTS,
    DEFAULT_PRICE_VND_PER_KWH,
    DEFAULT_TEMPERATURE_THRESHOLD_C,
)
from pyevstation.exceptions import EvConfigError


_ENV_CONFIG_MAP = {
    "EVSTATION_DATABASE_URL": "database_url",
    "EVSTATION_API_KEY": "api_key",
}


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_ports(value: str) -> tuple[str, ...]:
    ports = tuple(part.strip() for part in value.split(",") if part.strip())
    if not ports:
        raise EvConfigError("EVSTATION_PORTS must list at least one port")
    return ports


@dataclasses.dataclass(frozen=True)
class EvStationConfig:
    """Client configuration.

    Parameters
    ----------
    database_url : str
        Root URL of the realtime database
        (e.g. ``"https://example-default-rtdb.firebaseio.com"``).
    api_key : str or None
        Web API key used for the anonymous identity handshake.  When
        ``None`` the store is accessed without an auth token.
    ports : tuple[str, ...]
        Port keys monitored on every station.
    default_price_vnd_per_kwh : float
        Price used for cost estimates while no ``settings`` record has
        been received.
    default_temperature_threshold_c : float
        Temperature alert threshold used while no ``settings`` record has
        been received.
    request_timeout : float
        Timeout in seconds for one-shot reads, writes and the handshake.
        Streaming subscriptions are not bounded by it.
    auth_enabled : bool
        Perform the anonymous identity handshake before any read,
        write or subscription.
    """

    database_url: str
    api_key: str | None = None
    ports: tuple[str, ...] = DEFAULT_PORTS
    default_price_vnd_per_kwh: float = DEFAULT_PRICE_VND_PER_KWH
    default_temperature_threshold_c: float = DEFAULT_TEMPERATURE_THRESHOLD_C
    request_timeout: float = 30.0
    auth_enabled: bool = True

    def __post_init__(self) -> None:
        if not self.database_url.strip():
            raise EvConfigError("database_url must be non-empty")
        if self.auth_enabled and not self.api_key:
            raise EvConfigError("api_key is required when auth_enabled is true")
        if not self.ports:
            raise EvConfigError("at least one port must be configured")

    @property
    def base_url(self) -> str:
        """Database URL without a trailing slash."""
        return self.database_url.strip().rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> EvStationConfig:
        """Create configuration from environment variables.

        Reads ``EVSTATION_DATABASE_URL`` and optional ``EVSTATION_*``
        variables.  Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        ports_env = env.get("EVSTATION_PORTS")
        if ports_env is not None and "ports" not in overrides:
            config_kwargs["ports"] = _env_ports(ports_env)

        price_env = env.get("EVSTATION_DEFAULT_PRICE_VND_PER_KWH")
        if price_env is not None and "default_price_vnd_per_kwh" not in overrides:
            config_kwargs["default_price_vnd_per_kwh"] = float(price_env)

        threshold_env = env.get("EVSTATION_DEFAULT_TEMPERATURE_THRESHOLD_C")
        if threshold_env is not None and "default_temperature_threshold_c" not in overrides:
            config_kwargs["default_temperature_threshold_c"] = float(threshold_env)

        timeout_env = env.get("EVSTATION_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        if "auth_enabled" not in overrides:
            config_kwargs["auth_enabled"] = _env_bool(env.get("EVSTATION_AUTH_ENABLED"), True)

        config_kwargs.update(overrides)

        if "database_url" not in config_kwargs:
            raise EvConfigError("EVSTATION_DATABASE_URL is not set")
        return cls(**config_kwargs)
