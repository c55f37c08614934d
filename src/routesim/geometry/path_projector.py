"""Cumulative-distance tables and along-path projection for route polylines.

Distances are great-circle (haversine) metres. Projection onto a segment is
done in raw (lat, lng) space, a planar approximation that is accurate enough
for the short segments returned by routing services.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from routesim.schedule.domain_types import LatLng

EARTH_RADIUS_M = 6371000.0
MIN_SEGMENT_M = 1e-6
_PLANAR_EPSILON = 1e-12


def haversine_m(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in metres between two WGS84 points."""
    rad_lat1, rad_lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(rad_lat1) * math.cos(rad_lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def dedupe_consecutive(points: Iterable[LatLng]) -> List[LatLng]:
    """Drop points identical to their immediate predecessor."""
    out: List[LatLng] = []
    for point in points:
        if not out or out[-1].lat != point.lat or out[-1].lng != point.lng:
            out.append(point)
    return out


def build_distance_table(points: Sequence[LatLng]) -> np.ndarray:
    """Cumulative distance (m) at each sample index; non-decreasing by construction."""
    if not points:
        return np.zeros(0, dtype=np.float64)
    steps = [haversine_m(points[idx - 1], points[idx]) for idx in range(1, len(points))]
    return np.concatenate(([0.0], np.cumsum(np.asarray(steps, dtype=np.float64))))


def nearest_distance_along_path(target: LatLng, points: Sequence[LatLng], cum_dist: Sequence[float]) -> float:
    """
    Distance along ``points`` of the location nearest to ``target``.

    Each segment is tested with a clamped planar projection; the segment with
    the smallest squared planar distance wins (earliest on ties). With fewer
    than two points the answer is 0.
    """
    if len(points) < 2:
        return 0.0
    best_dist2 = math.inf
    best_along = 0.0
    for idx in range(len(points) - 1):
        a = points[idx]
        b = points[idx + 1]
        vx, vy = b.lat - a.lat, b.lng - a.lng
        wx, wy = target.lat - a.lat, target.lng - a.lng
        vv = vx * vx + vy * vy or _PLANAR_EPSILON
        t = min(max((wx * vx + wy * vy) / vv, 0.0), 1.0)
        dx = target.lat - (a.lat + vx * t)
        dy = target.lng - (a.lng + vy * t)
        dist2 = dx * dx + dy * dy
        if dist2 < best_dist2:
            seg_len = max(MIN_SEGMENT_M, haversine_m(a, b))
            best_dist2 = dist2
            best_along = float(cum_dist[idx]) + t * seg_len
    return best_along


def monotonic_anchor_distances(
    locations: Sequence[LatLng], points: Sequence[LatLng], cum_dist: Sequence[float]
) -> List[float]:
    """Project ordered locations onto the path; later ones never fall behind earlier ones."""
    distances = [nearest_distance_along_path(loc, points, cum_dist) for loc in locations]
    for idx in range(1, len(distances)):
        distances[idx] = max(0.0, distances[idx], distances[idx - 1])
    return distances


def point_at_distance(points: Sequence[LatLng], cum_dist: np.ndarray, target: float) -> LatLng:
    """Linear lat/lng interpolation at ``target`` metres along the path."""
    if len(points) == 1:
        return points[0]
    # First segment whose end distance reaches the target.
    seg = int(np.searchsorted(cum_dist[1:], target, side="left"))
    seg = min(seg, len(points) - 2)
    start = points[seg]
    end = points[seg + 1]
    seg_len = max(MIN_SEGMENT_M, haversine_m(start, end))
    t = min(max((target - float(cum_dist[seg])) / seg_len, 0.0), 1.0)
    return LatLng(
        lat=start.lat + (end.lat - start.lat) * t,
        lng=start.lng + (end.lng - start.lng) * t,
    )


@dataclass(frozen=True)
class PathSample:
    """De-duplicated route polyline with its cached cumulative-distance table."""

    points: Tuple[LatLng, ...]
    cum_dist: np.ndarray = field(compare=False, repr=False)

    @classmethod
    def from_points(cls, points: Iterable[LatLng]) -> "PathSample":
        cleaned = tuple(dedupe_consecutive(points))
        table = build_distance_table(cleaned)
        table.setflags(write=False)
        return cls(points=cleaned, cum_dist=table)

    @classmethod
    def for_route(
        cls, origin: LatLng, routed: Iterable[LatLng], destination: LatLng
    ) -> "PathSample":
        """Path made of the origin, the routed samples and the destination."""
        return cls.from_points([origin, *routed, destination])

    @property
    def total_distance(self) -> float:
        if len(self.cum_dist) == 0:
            return 0.0
        return float(self.cum_dist[-1])

    def __len__(self) -> int:
        return len(self.points)

    def first_point(self) -> Optional[LatLng]:
        return self.points[0] if self.points else None

    def distance_of(self, target: LatLng) -> float:
        return nearest_distance_along_path(target, self.points, self.cum_dist)

    def point_at(self, distance_m: float) -> LatLng:
        return point_at_distance(self.points, self.cum_dist, distance_m)


__all__ = [
    "EARTH_RADIUS_M",
    "PathSample",
    "build_distance_table",
    "dedupe_consecutive",
    "haversine_m",
    "monotonic_anchor_distances",
    "nearest_distance_along_path",
    "point_at_distance",
]
