"""Reactive synchronization engine.

Links watch single store paths, chains cascade links whose paths depend
on upstream values, the aggregator derives session metrics, and the
controller owns everything for one station.
"""
