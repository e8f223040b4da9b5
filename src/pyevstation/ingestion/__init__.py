"""Ingestion layer.

Stateless transforms applied to raw store pushes before they reach the
subscription chain: unit/scale correction of sensor payloads and
classification of timestamps of unknown unit.
"""

__all__: list[str] = []
