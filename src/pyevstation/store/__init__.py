"""Realtime store boundary.

The sync engine talks to the store only through :class:`RealtimeStore`;
:mod:`pyevstation.store.firebase` provides the production adapter.
"""

from pyevstation.store.base import CancelFn, ErrorCallback, RealtimeStore, ValueCallback

__all__ = ["CancelFn", "ErrorCallback", "RealtimeStore", "ValueCallback"]
