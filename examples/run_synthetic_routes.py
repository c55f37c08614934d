from __future__ import annotations

import argparse
import logging
from typing import Dict, List

from rich.console import Console

from routesim.engine import EventLog, SimulationEngine
from routesim.engine.event_log import format_clock
from routesim.schedule import LatLng, RouteCatalog


SYNTH_ROUTES: List[Dict[str, object]] = [
    {
        "route_id": "SP-RJ",
        "group": "Intercity",
        "origin": {"lat": -23.5505, "lng": -46.6333},
        "destination": {"lat": -22.9068, "lng": -43.1729},
        "departure": "22:30",
        "arrival": "05:30",
        "stops": [
            {"id": "SJC", "lat": -23.1896, "lng": -45.8841, "arrival": "23:45", "departure": "00:05"},
            {"id": "RES", "lat": -22.4689, "lng": -44.4469, "arrival": "02:40", "departure": "03:00"},
        ],
    },
    {
        "route_id": "SP-CPS",
        "group": "Regional",
        "origin": {"lat": -23.5505, "lng": -46.6333},
        "destination": {"lat": -22.9099, "lng": -47.0626},
        "departure": "23:00",
        "arrival": "00:40",
    },
]

SYNTH_PATHS: Dict[str, List[LatLng]] = {
    "SP-RJ": [
        LatLng(-23.40, -46.20),
        LatLng(-23.1896, -45.8841),
        LatLng(-22.80, -45.20),
        LatLng(-22.4689, -44.4469),
        LatLng(-22.75, -43.70),
    ],
    "SP-CPS": [LatLng(-23.30, -46.80), LatLng(-23.05, -46.95)],
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay two synthetic overnight routes.")
    parser.add_argument("--steps", type=int, default=40, help="Number of progress increments.")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    catalog = RouteCatalog.from_records(SYNTH_ROUTES)
    engine = SimulationEngine(catalog)
    for route_id, points in SYNTH_PATHS.items():
        engine.set_path(route_id, points)

    console = Console()
    event_log = EventLog()
    for step in range(args.steps + 1):
        tick = engine.update(100.0 * step / args.steps, catalog.route_ids)
        for line in event_log.extend(tick.events, tick.global_time):
            console.print(line)
        if tick.global_time is not None and step % 10 == 0:
            for route_id, position in tick.positions.items():
                console.print(f"  {format_clock(tick.global_time)} {route_id:<7} {position}")


if __name__ == "__main__":
    main()
