"""Data models for realtime store records and derived views."""

from pyevstation.models._base import EvBaseModel
from pyevstation.models.environment import EnvironmentReading
from pyevstation.models.power import PowerReading
from pyevstation.models.session import ChargingSession
from pyevstation.models.settings import Settings
from pyevstation.models.station import PortSnapshot, SessionMetrics, Station, StationSnapshot
from pyevstation.models.status import PortStatus
from pyevstation.models.user import RfidBinding, UserProfile, parse_user_id

__all__ = [
    "ChargingSession",
    "EnvironmentReading",
    "EvBaseModel",
    "PortSnapshot",
    "PortStatus",
    "PowerReading",
    "RfidBinding",
    "SessionMetrics",
    "Settings",
    "Station",
    "StationSnapshot",
    "UserProfile",
    "parse_user_id",
]
