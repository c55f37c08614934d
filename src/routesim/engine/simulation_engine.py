"""Tick-driven simulation of vehicle positions and events across active routes.

One call to :meth:`SimulationEngine.update` is one tick:

1. A decrease of ``progress`` since the previous tick clears all per-route
   event state (rewind).
2. ``progress`` (0..100) maps linearly onto the global window spanning the
   earliest departure and latest arrival of the active routes.
3. Each active route clamps the global time to its own window, resolves its
   position and reports the events crossed since its previous tick.

Routes without resolved geometry, or with malformed schedules, are skipped
for the tick without affecting the others.

Example
-------

.. code-block:: python

    engine = SimulationEngine(catalog, base_date=date(1970, 1, 1))
    engine.set_path("R1", routed_points)
    tick = engine.update(42.5, {"R1"})
    tick.positions["R1"]  # LatLng
    tick.events           # [VehicleEvent(...), ...]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from routesim.geometry.path_projector import PathSample
from routesim.schedule.domain_types import LatLng, RouteSchedule
from routesim.schedule.route_catalog import RouteCatalog
from routesim.schedule.schedule_resolver import ScheduleParseError, resolve_route_times

from .event_tracker import EventTracker, VehicleEvent
from .position_interpolator import PositionInterpolator, PreparedRoute

logger = logging.getLogger(__name__)

DEFAULT_BASE_DATE = date(1970, 1, 1)


def clamp_progress(progress: float) -> float:
    return min(max(float(progress), 0.0), 100.0)


def global_window(
    routes: Iterable[RouteSchedule], base_date: date
) -> Optional[Tuple[datetime, datetime]]:
    """Earliest departure and latest arrival over ``routes`` (``None`` when empty)."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    for route in routes:
        times = resolve_route_times(route, base_date)
        start = times[0] if start is None else min(start, times[0])
        end = times[-1] if end is None else max(end, times[-1])
    if start is None or end is None:
        return None
    return start, end


def global_time(window: Tuple[datetime, datetime], progress: float) -> datetime:
    start, end = window
    fraction = clamp_progress(progress) / 100.0
    duration = max(end - start, timedelta(0))
    return start + duration * fraction


def local_time(route_window: Tuple[datetime, datetime], now: datetime) -> datetime:
    """Clamp the global clock to a route's own [departure, arrival] window."""
    start, end = route_window
    if now < start:
        return start
    if now > end:
        return end
    return now


def representative_time(
    routes: Iterable[RouteSchedule], progress: float, base_date: date = DEFAULT_BASE_DATE
) -> Optional[datetime]:
    """Clock shown before the first tick: the progress fraction of the longest route."""
    fraction = clamp_progress(progress) / 100.0
    best: Optional[datetime] = None
    longest = timedelta(-1)
    for route in routes:
        times = resolve_route_times(route, base_date)
        duration = max(times[-1] - times[0], timedelta(0))
        if duration > longest:
            longest = duration
            best = times[0] + duration * fraction
    return best


@dataclass
class TickResult:
    """Outcome of one engine tick."""

    progress: float
    global_time: Optional[datetime]
    positions: Dict[str, LatLng] = field(default_factory=dict)
    events: List[VehicleEvent] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    rewound: bool = False


class SimulationEngine:
    """Owns prepared routes and drives the interpolator and event tracker per tick."""

    def __init__(
        self,
        catalog: RouteCatalog,
        *,
        base_date: date = DEFAULT_BASE_DATE,
        tracker: Optional[EventTracker] = None,
        interpolator: Optional[PositionInterpolator] = None,
    ) -> None:
        self.catalog = catalog
        self.base_date = base_date
        self.tracker = tracker or EventTracker()
        self.interpolator = interpolator or PositionInterpolator()
        self._paths: Dict[str, PathSample] = {}
        self._prepared: Dict[str, PreparedRoute] = {}

    # ------------------------------------------------------------------ geometry
    def set_path(self, route_id: str, routed_points: Sequence[LatLng]) -> None:
        """Attach routed samples; origin and destination are added around them."""
        route = self._require_route(route_id)
        routed = list(routed_points)
        if not routed:
            logger.debug("Route %s has no routed samples yet; leaving it unresolved", route_id)
            self.clear_path(route_id)
            return
        self._paths[route_id] = PathSample.for_route(route.origin, routed, route.destination)
        self._prepared.pop(route_id, None)

    def clear_path(self, route_id: str) -> None:
        self._paths.pop(route_id, None)
        self._prepared.pop(route_id, None)

    def has_path(self, route_id: str) -> bool:
        return route_id in self._paths

    def prepared_route(self, route_id: str) -> Optional[PreparedRoute]:
        """Prepared view of ``route_id`` (cached until its path or definition changes)."""
        route = self._require_route(route_id)
        path = self._paths.get(route_id)
        if path is None:
            return None
        prepared = self._prepared.get(route_id)
        if prepared is None or prepared.route is not route:
            prepared = PreparedRoute.build(route, path, self.base_date)
            self._prepared[route_id] = prepared
        return prepared

    def replace_catalog(self, catalog: RouteCatalog) -> None:
        """Swap route definitions; cached preparations rebuild lazily."""
        self.catalog = catalog
        for route_id in list(self._paths):
            if route_id not in catalog:
                self.clear_path(route_id)

    # ---------------------------------------------------------------------- tick
    def update(self, progress: float, active_route_ids: Iterable[str]) -> TickResult:
        progress = clamp_progress(progress)
        rewound = self.tracker.observe_progress(progress)
        routes, skipped = self._schedulable_routes(active_route_ids)

        window = global_window(routes, self.base_date) if routes else None
        if window is None:
            return TickResult(progress=progress, global_time=None, skipped=skipped, rewound=rewound)
        now = global_time(window, progress)
        result = TickResult(progress=progress, global_time=now, skipped=skipped, rewound=rewound)

        for route in routes:
            prepared = self.prepared_route(route.route_id)
            if prepared is None or len(prepared.path) == 0:
                result.skipped[route.route_id] = "no resolved path"
                continue
            position = self.interpolator.position_at(
                prepared, local_time((prepared.start, prepared.end), now)
            )
            if position is not None:
                result.positions[route.route_id] = position
            result.events.extend(self.tracker.detect_and_emit(prepared, now))
        return result

    def _schedulable_routes(
        self, active_route_ids: Iterable[str]
    ) -> Tuple[List[RouteSchedule], Dict[str, str]]:
        routes: List[RouteSchedule] = []
        skipped: Dict[str, str] = {}
        for route in self.catalog.select(active_route_ids):
            try:
                resolve_route_times(route, self.base_date)
            except ScheduleParseError as exc:
                logger.error("Skipping route %s: %s", route.route_id, exc)
                skipped[route.route_id] = str(exc)
                continue
            routes.append(route)
        return routes, skipped

    def _require_route(self, route_id: str) -> RouteSchedule:
        route = self.catalog.get(route_id)
        if route is None:
            raise KeyError(f"Unknown route id {route_id!r}")
        return route


__all__ = [
    "DEFAULT_BASE_DATE",
    "SimulationEngine",
    "TickResult",
    "clamp_progress",
    "global_time",
    "global_window",
    "local_time",
    "representative_time",
]
