"""Replay scheduled routes tick by tick and print the event log."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from routesim.engine.event_log import EventLog, format_clock
from routesim.engine.simulation_engine import SimulationEngine, TickResult
from routesim.geometry.path_store import PathStore
from routesim.playback.playback_clock import PlaybackClock
from routesim.playback.playback_config import PlaybackConfig
from routesim.schedule.route_catalog import RouteCatalog, parse_route_selection

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--routes", required=True, help="Route catalog (JSON or YAML).")
    parser.add_argument(
        "--paths",
        required=True,
        help="Routed geometry per route: CSV (route_id, sequence, lat, lng) or GeoJSON LineStrings.",
    )
    parser.add_argument("--config", default=None, help="Optional playback YAML.")
    parser.add_argument(
        "--select",
        default=None,
        help="Comma separated route ids to activate (defaults to every route).",
    )
    parser.add_argument("--search", default=None, help="Activate routes whose id or group matches.")
    parser.add_argument("--speed", type=float, default=None, help="Override the playback speed.")
    parser.add_argument(
        "--max-ticks",
        type=int,
        default=10_000,
        help="Upper bound on ticks (guards looping playback).",
    )
    parser.add_argument("--output-csv", default=None, help="Destination CSV for per-tick positions.")
    parser.add_argument("--events-csv", default=None, help="Destination CSV for the event log.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def _active_route_ids(catalog: RouteCatalog, select: Optional[str], search: Optional[str]) -> List[str]:
    selected = parse_route_selection(select) or catalog.route_ids
    if search:
        matching = {route.route_id for route in catalog.search(search)}
        selected = [route_id for route_id in selected if route_id in matching]
    return selected


def _position_rows(tick_index: int, tick: TickResult) -> List[Dict[str, object]]:
    clock = format_clock(tick.global_time) if tick.global_time is not None else None
    return [
        {
            "tick": tick_index,
            "progress": tick.progress,
            "clock": clock,
            "route_id": route_id,
            "lat": position.lat,
            "lng": position.lng,
        }
        for route_id, position in tick.positions.items()
    ]


def run_playback(
    engine: SimulationEngine,
    clock: PlaybackClock,
    active_route_ids: Sequence[str],
    *,
    max_ticks: int,
    console: Optional[Console] = None,
) -> tuple[EventLog, pd.DataFrame]:
    """Drive ``engine`` from ``clock`` until playback stops or ``max_ticks`` is reached."""
    event_log = EventLog()
    rows: List[Dict[str, object]] = []
    reported_skips: Dict[str, str] = {}
    clock.play()

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )
    with progress:
        task_id = progress.add_task("Simulating", total=100.0)
        for tick_index in range(max_ticks):
            tick = engine.update(clock.progress, active_route_ids)
            for line in event_log.extend(tick.events, tick.global_time):
                progress.console.print(line)
            for route_id, reason in tick.skipped.items():
                if reported_skips.get(route_id) != reason:
                    logger.warning("Route %s skipped: %s", route_id, reason)
                    reported_skips[route_id] = reason
            rows.extend(_position_rows(tick_index, tick))
            progress.update(task_id, completed=tick.progress)
            if not clock.playing:
                break
            clock.advance(clock.config.tick_ms)
        else:
            logger.info("Stopped after %d ticks", max_ticks)

    frame = pd.DataFrame(rows, columns=["tick", "progress", "clock", "route_id", "lat", "lng"])
    return event_log, frame


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        config = PlaybackConfig.from_yaml(args.config) if args.config else PlaybackConfig()
        if args.speed is not None:
            config = replace(config, speed=args.speed)
        catalog = RouteCatalog.load(args.routes)
        catalog.validate(config.base_date)
        paths = PathStore.load(args.paths)
    except (FileNotFoundError, TypeError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc

    engine = SimulationEngine(catalog, base_date=config.base_date)
    active = _active_route_ids(catalog, args.select, args.search)
    for route_id in active:
        points = paths.get(route_id)
        if points:
            engine.set_path(route_id, points)
        else:
            logger.warning("No geometry for route %s; it will not move", route_id)

    orphaned = [route_id for route_id in paths.route_ids() if route_id not in catalog]
    if orphaned:
        logger.warning("Ignoring geometry for unknown routes: %s", ", ".join(orphaned))

    clock = PlaybackClock(config)

    console = Console()
    event_log, positions = run_playback(
        engine, clock, active, max_ticks=args.max_ticks, console=console
    )
    console.print(f"[bold]{len(event_log)}[/bold] events across {len(active)} routes")

    if args.output_csv:
        _write_csv(args.output_csv, positions)
        logger.info("Wrote %d position rows to %s", len(positions), args.output_csv)
    if args.events_csv:
        _write_csv(args.events_csv, event_log.to_dataframe())
        logger.info("Wrote %d events to %s", len(event_log), args.events_csv)


def _write_csv(path: str | Path, dataframe: pd.DataFrame) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    dataframe.to_csv(output_path, index=False)


if __name__ == "__main__":
    main()
