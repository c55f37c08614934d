"""Core dataclasses shared across the simulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class LatLng:
    """Geographic coordinate in floating point degrees."""

    lat: float
    lng: float

    def __str__(self) -> str:
        return f"({self.lat:.6f}, {self.lng:.6f})"


@dataclass(frozen=True)
class Stop:
    """Intermediate stop with local HH:MM arrival/departure times."""

    id: str
    position: LatLng
    arrival: str
    departure: str


@dataclass(frozen=True)
class RouteSchedule:
    """Immutable route definition: endpoints, stops and route-level schedule."""

    route_id: str
    origin: LatLng
    destination: LatLng
    departure: str
    arrival: str
    stops: Tuple[Stop, ...] = field(default_factory=tuple)
    group: Optional[str] = None

    def time_strings(self) -> List[str]:
        """Schedule anchors in travel order: departure, each stop arrival/departure, arrival."""
        times = [self.departure]
        for stop in self.stops:
            times.extend([stop.arrival, stop.departure])
        times.append(self.arrival)
        return times

    def anchor_labels(self) -> List[str]:
        labels = ["departure"]
        for stop in self.stops:
            labels.extend([f"stop {stop.id} arrival", f"stop {stop.id} departure"])
        labels.append("arrival")
        return labels

    def locations(self) -> List[LatLng]:
        """Origin, stop positions and destination in travel order."""
        return [self.origin, *(stop.position for stop in self.stops), self.destination]
