"""Vehicle position along a scheduled route at a given clock time."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from routesim.geometry.path_projector import PathSample, monotonic_anchor_distances
from routesim.schedule.domain_types import LatLng, RouteSchedule
from routesim.schedule.schedule_resolver import resolve_route_times

MIN_LEG_MS = 1.0


class VehiclePhase(enum.Enum):
    NOT_DEPARTED = "not_departed"
    TRAVELLING = "travelling"
    DWELLING = "dwelling"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class PreparedRoute:
    """Route schedule resolved against a base date and bound to its path.

    ``times`` holds departure, each stop arrival and departure, then final
    arrival. ``anchor_distances`` holds the along-path distance of the origin,
    each stop and the destination, so travel leg ``k`` spans entries ``k`` and
    ``k + 1``.
    """

    route: RouteSchedule
    times: Tuple[datetime, ...]
    path: PathSample
    anchor_distances: Tuple[float, ...]

    @classmethod
    def build(cls, route: RouteSchedule, path: PathSample, base_date: date) -> "PreparedRoute":
        times = tuple(resolve_route_times(route, base_date))
        if len(path) >= 2 and path.total_distance > 0:
            located = monotonic_anchor_distances(route.locations(), path.points, path.cum_dist)
        else:
            located = [0.0] * (len(route.stops) + 2)
        return cls(route=route, times=times, path=path, anchor_distances=tuple(located))

    @property
    def route_id(self) -> str:
        return self.route.route_id

    @property
    def start(self) -> datetime:
        return self.times[0]

    @property
    def end(self) -> datetime:
        return self.times[-1]

    def stop_window(self, index: int) -> Tuple[datetime, datetime]:
        return self.times[2 * index + 1], self.times[2 * index + 2]

    def leg_window(self, index: int) -> Tuple[datetime, datetime]:
        """Travel leg ``index`` runs from origin/stop ``index`` to the next stop/destination."""
        return self.times[2 * index], self.times[2 * index + 1]


def _elapsed_ms(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() * 1000.0


class PositionInterpolator:
    """Stateless resolver of phase and coordinate for a :class:`PreparedRoute`."""

    def phase_at(self, prepared: PreparedRoute, local_time: datetime) -> VehiclePhase:
        phase, _ = self._locate(prepared, local_time)
        return phase

    def position_at(self, prepared: PreparedRoute, local_time: datetime) -> Optional[LatLng]:
        """Coordinate of the vehicle at ``local_time``; ``None`` when the path is empty."""
        path = prepared.path
        if len(path) == 0:
            return None
        if len(path) < 2 or path.total_distance <= 0:
            return path.first_point()
        _, value = self._locate(prepared, local_time)
        if isinstance(value, LatLng):
            return value
        return path.point_at(value)

    def _locate(self, prepared: PreparedRoute, local_time: datetime):
        """Return ``(phase, fixed coordinate or target distance)``."""
        route = prepared.route
        times = prepared.times
        if local_time <= times[0]:
            return VehiclePhase.NOT_DEPARTED, route.origin
        if local_time >= times[-1]:
            return VehiclePhase.ARRIVED, route.destination

        for index, stop in enumerate(route.stops):
            arrived, departs = prepared.stop_window(index)
            if arrived <= local_time < departs:
                return VehiclePhase.DWELLING, stop.position

        distances = prepared.anchor_distances
        for index in range(len(route.stops) + 1):
            leg_start, leg_end = prepared.leg_window(index)
            if leg_start <= local_time <= leg_end:
                duration = max(MIN_LEG_MS, _elapsed_ms(leg_start, leg_end))
                fraction = min(max(_elapsed_ms(leg_start, local_time) / duration, 0.0), 1.0)
                d_start = distances[index]
                d_end = distances[index + 1]
                return VehiclePhase.TRAVELLING, d_start + fraction * max(0.0, d_end - d_start)
        # Resolved anchors never regress, so every instant is covered above.
        return VehiclePhase.ARRIVED, route.destination


__all__ = ["PositionInterpolator", "PreparedRoute", "VehiclePhase"]
