"""Route definitions and schedule resolution."""

from .domain_types import LatLng, RouteSchedule, Stop
from .route_catalog import RouteCatalog, parse_route_selection
from .schedule_resolver import (
    ScheduleParseError,
    parse_hhmm,
    resolve_departure_arrival,
    resolve_route_times,
    resolve_sequential_times,
)

__all__ = [
    "LatLng",
    "RouteCatalog",
    "RouteSchedule",
    "ScheduleParseError",
    "Stop",
    "parse_hhmm",
    "parse_route_selection",
    "resolve_departure_arrival",
    "resolve_route_times",
    "resolve_sequential_times",
]
