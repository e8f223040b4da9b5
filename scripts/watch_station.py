#!/usr/bin/env python3
"""Print live snapshots of one charging station.

Usage
-----
Set environment variables and run::

    export EVSTATION_DATABASE_URL="https://example-default-rtdb.firebaseio.com"
    export EVSTATION_API_KEY="your-web-api-key"
    python scripts/watch_station.py --station 1

Options::

    --station ID        Station id to watch (required)
    --ports A,B         Port keys (default: EVSTATION_PORTS or A,B)
    --json              Print each snapshot as JSON instead of a summary
    --history           Print completed sessions and exit
    --verbose           Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyevstation import EvStationClient, EvStationConfig, Station, StationSnapshot  # noqa: E402
from pyevstation.ingestion.timestamps import format_date, format_duration, format_time  # noqa: E402


def _summary(snapshot: StationSnapshot) -> str:
    env = snapshot.environment
    temp = f"{env.temperature:.1f}°C" if env is not None and env.temperature is not None else "-"
    hum = f"{env.humidity}%" if env is not None and env.humidity is not None else "-"
    alert = " ALERT" if snapshot.temperature_alert else ""
    lines = [
        f"[station {snapshot.station.id}] temp={temp}{alert} hum={hum} "
        f"charging={snapshot.charging_count}/{len(snapshot.ports)} power={snapshot.total_power_w:.0f}W"
    ]
    for port, snap in snapshot.ports.items():
        metrics = snap.metrics
        state = "charging" if snap.is_charging else "idle"
        lines.append(
            f"  port {port}: {state} user={snap.user_display_name or '-'} "
            f"P={metrics.power_w:.0f}W U={metrics.voltage_v:.1f}V I={metrics.current_a:.2f}A "
            f"E={metrics.energy_kwh:.3f}kWh cost={metrics.cost_vnd}đ "
            f"duration={format_duration(metrics.duration_ms)}"
        )
    return "\n".join(lines)


async def _print_history(client: EvStationClient) -> None:
    entries, summary = await client.get_session_history()
    for entry in entries:
        print(
            f"{entry.session_id} station={entry.station_id or '-'} port={entry.port_number} "
            f"user={entry.user_name or '-'} date={format_date(entry.stop_ms)} "
            f"stop={format_time(entry.stop_ms)} duration={format_duration(entry.duration_ms)} "
            f"energy={entry.energy_kwh:.3f}kWh cost={entry.cost_vnd}đ"
        )
    print(
        f"total sessions={summary.total_sessions} time={format_duration(summary.total_duration_ms)} "
        f"energy={summary.total_energy_kwh:.3f}kWh "
        f"revenue={summary.total_revenue_vnd}đ"
    )


async def _run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.ports:
        overrides["ports"] = tuple(p.strip() for p in args.ports.split(",") if p.strip())
    config = EvStationConfig.from_env(**overrides)

    async with EvStationClient(config) as client:
        if args.history:
            await _print_history(client)
            return 0

        def on_change(snapshot: StationSnapshot) -> None:
            if args.json:
                print(snapshot.model_dump_json(), flush=True)
            else:
                print(_summary(snapshot), flush=True)

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_event.set)

        async with client.station_controller(Station(id=args.station), on_change=on_change):
            await stop_event.wait()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--station", required=True, help="Station id to watch")
    parser.add_argument("--ports", help="Comma-separated port keys")
    parser.add_argument("--json", action="store_true", help="Print snapshots as JSON")
    parser.add_argument("--history", action="store_true", help="Print completed sessions and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
