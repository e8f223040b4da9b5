"""pyevstation - Async sync engine for EV charging station telemetry."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyevstation")
except PackageNotFoundError:
    __version__ = "0+local"
from pyevstation.client import EvStationClient
from pyevstation.config import EvStationConfig
from pyevstation.exceptions import (
    EvAuthenticationError,
    EvConfigError,
    EvMalformedPayloadError,
    EvPermissionDeniedError,
    EvStationError,
    EvTransportError,
)
from pyevstation.ingestion.normalize import normalize_environment
from pyevstation.ingestion.timestamps import UNAVAILABLE, TimestampKind, TimestampResolver
from pyevstation.models import (
    ChargingSession,
    EnvironmentReading,
    PortSnapshot,
    PortStatus,
    PowerReading,
    RfidBinding,
    SessionMetrics,
    Settings,
    Station,
    StationSnapshot,
    UserProfile,
)
from pyevstation.store.firebase import FirebaseRealtimeStore
from pyevstation.sync.aggregate import SessionAggregator
from pyevstation.sync.chain import PortChain, SubscriptionChain
from pyevstation.sync.controller import StationSyncController

__all__ = [
    "__version__",
    "ChargingSession",
    "EnvironmentReading",
    "EvAuthenticationError",
    "EvConfigError",
    "EvMalformedPayloadError",
    "EvPermissionDeniedError",
    "EvStationClient",
    "EvStationConfig",
    "EvStationError",
    "EvTransportError",
    "FirebaseRealtimeStore",
    "PortChain",
    "PortSnapshot",
    "PortStatus",
    "PowerReading",
    "RfidBinding",
    "SessionAggregator",
    "SessionMetrics",
    "Settings",
    "Station",
    "StationSnapshot",
    "StationSyncController",
    "SubscriptionChain",
    "TimestampKind",
    "TimestampResolver",
    "UNAVAILABLE",
    "UserProfile",
    "normalize_environment",
]
