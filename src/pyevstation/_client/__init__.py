"""Store operations used by :class:`pyevstation.client.EvStationClient`."""
