"""Route catalog loaders shared by the engine and the CLI."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

import yaml

from .domain_types import LatLng, RouteSchedule, Stop
from .schedule_resolver import resolve_route_times

logger = logging.getLogger(__name__)

# Field names accepted for each attribute; the second spelling matches
# route files exported by the original web tool.
_ROUTE_FIELDS = {
    "route_id": ("route_id", "idRota", "id"),
    "origin": ("origin", "origem"),
    "destination": ("destination", "destino"),
    "departure": ("departure", "horarioSaida"),
    "arrival": ("arrival", "horarioChegada"),
    "stops": ("stops", "passaPor"),
    "group": ("group", "grupo"),
}
_STOP_FIELDS = {
    "arrival": ("arrival", "horarioChegada"),
    "departure": ("departure", "horarioSaida"),
}


def _lookup(record: Mapping[str, object], names: Sequence[str]) -> object:
    for name in names:
        if name in record:
            return record[name]
    return None


def _coerce_hhmm(value: object) -> str:
    if value is None:
        return ""
    # YAML 1.1 loads unquoted 10:00 as the base-60 integer 600.
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)


def _coerce_latlng(value: object, label: str) -> LatLng:
    if isinstance(value, LatLng):
        return value
    if isinstance(value, Mapping):
        try:
            return LatLng(lat=float(value["lat"]), lng=float(value["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"{label} must provide numeric 'lat' and 'lng'") from exc
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return LatLng(lat=float(value[0]), lng=float(value[1]))
    raise TypeError(f"{label} must be a mapping with 'lat'/'lng' or a (lat, lng) pair")


def _parse_stop(raw: object, route_id: str, index: int) -> Stop:
    if not isinstance(raw, Mapping):
        raise TypeError(f"Stop #{index} of route {route_id} must be a mapping")
    stop_id = str(raw.get("id") or "").strip()
    if not stop_id:
        raise ValueError(f"Stop #{index} of route {route_id} is missing an 'id'")
    position = raw.get("position", raw)
    return Stop(
        id=stop_id,
        position=_coerce_latlng(position, f"Stop {stop_id} of route {route_id}"),
        arrival=_coerce_hhmm(_lookup(raw, _STOP_FIELDS["arrival"])),
        departure=_coerce_hhmm(_lookup(raw, _STOP_FIELDS["departure"])),
    )


def route_from_mapping(record: Mapping[str, object]) -> RouteSchedule:
    """Build a :class:`RouteSchedule` from a JSON/YAML record."""
    if not isinstance(record, Mapping):
        raise TypeError("Route entries must be mappings")
    route_id = str(_lookup(record, _ROUTE_FIELDS["route_id"]) or "").strip()
    if not route_id:
        raise ValueError("Route entries require a non-empty route id")
    raw_stops = _lookup(record, _ROUTE_FIELDS["stops"]) or []
    if not isinstance(raw_stops, list):
        raise TypeError(f"Stops for route {route_id} must be provided as a list")
    group = _lookup(record, _ROUTE_FIELDS["group"])
    return RouteSchedule(
        route_id=route_id,
        origin=_coerce_latlng(_lookup(record, _ROUTE_FIELDS["origin"]), f"Origin of {route_id}"),
        destination=_coerce_latlng(
            _lookup(record, _ROUTE_FIELDS["destination"]), f"Destination of {route_id}"
        ),
        departure=_coerce_hhmm(_lookup(record, _ROUTE_FIELDS["departure"])),
        arrival=_coerce_hhmm(_lookup(record, _ROUTE_FIELDS["arrival"])),
        stops=tuple(_parse_stop(raw, route_id, idx) for idx, raw in enumerate(raw_stops)),
        group=str(group) if group is not None else None,
    )


def route_to_mapping(route: RouteSchedule) -> Dict[str, object]:
    entry: Dict[str, object] = {
        "route_id": route.route_id,
        "origin": {"lat": route.origin.lat, "lng": route.origin.lng},
        "destination": {"lat": route.destination.lat, "lng": route.destination.lng},
        "departure": route.departure,
        "arrival": route.arrival,
        "stops": [
            {
                "id": stop.id,
                "lat": stop.position.lat,
                "lng": stop.position.lng,
                "arrival": stop.arrival,
                "departure": stop.departure,
            }
            for stop in route.stops
        ],
    }
    if route.group is not None:
        entry["group"] = route.group
    return entry


def parse_route_selection(text: Optional[str]) -> List[str]:
    """Parse a comma separated route selection such as ``"R1,R2"``."""
    if not text:
        return []
    selection: List[str] = []
    for token in text.split(","):
        route_id = token.strip()
        if route_id and route_id not in selection:
            selection.append(route_id)
    return selection


@dataclass
class RouteCatalog:
    """Ordered registry of route definitions keyed by route id."""

    routes: Dict[str, RouteSchedule] = field(default_factory=dict)

    @property
    def route_ids(self) -> List[str]:
        return list(self.routes.keys())

    def __contains__(self, route_id: object) -> bool:
        return route_id in self.routes

    def __len__(self) -> int:
        return len(self.routes)

    def get(self, route_id: str) -> Optional[RouteSchedule]:
        return self.routes.get(route_id)

    def select(self, route_ids: Iterable[str]) -> List[RouteSchedule]:
        """Return the known routes among ``route_ids`` in catalog order."""
        wanted: Set[str] = set(route_ids)
        unknown = wanted.difference(self.routes)
        if unknown:
            logger.warning("Ignoring unknown route ids: %s", ", ".join(sorted(unknown)))
        return [route for route_id, route in self.routes.items() if route_id in wanted]

    def search(self, term: str) -> List[RouteSchedule]:
        """Case-insensitive substring match on route id or group."""
        needle = (term or "").strip().lower()
        if not needle:
            return list(self.routes.values())
        return [
            route
            for route in self.routes.values()
            if needle in route.route_id.lower() or (route.group and needle in route.group.lower())
        ]

    def groups(self) -> List[str]:
        return sorted({route.group for route in self.routes.values() if route.group})

    def update_route(self, route_id: str, **changes: object) -> "RouteCatalog":
        """Return a new catalog with ``route_id`` replaced by an edited copy."""
        if route_id not in self.routes:
            raise KeyError(f"Unknown route id {route_id!r}")
        routes = dict(self.routes)
        routes[route_id] = replace(routes[route_id], **changes)
        return RouteCatalog(routes=routes)

    def validate(self, base_date: date) -> None:
        """Resolve every schedule once so malformed times fail at load time."""
        for route in self.routes.values():
            resolve_route_times(route, base_date)

    # --------------------------------------------------------------------- I/O --
    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, object]]) -> "RouteCatalog":
        routes: Dict[str, RouteSchedule] = {}
        for record in records:
            route = route_from_mapping(record)
            if route.route_id in routes:
                raise ValueError(f"Duplicate route id {route.route_id!r}")
            routes[route.route_id] = route
        return cls(routes=routes)

    @classmethod
    def from_payload(cls, payload: object) -> "RouteCatalog":
        if isinstance(payload, Mapping):
            payload = payload.get("routes")
        if not isinstance(payload, list):
            raise TypeError("Route files must contain a list of routes or a 'routes' list")
        return cls.from_records(payload)

    @classmethod
    def from_json(cls, path: str | Path) -> "RouteCatalog":
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise FileNotFoundError(f"Route catalog not found at {catalog_path}")
        with catalog_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        catalog = cls.from_payload(payload)
        logger.info("Loaded %d routes from %s", len(catalog), catalog_path)
        return catalog

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RouteCatalog":
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise FileNotFoundError(f"Route catalog not found at {catalog_path}")
        with catalog_path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or []
        catalog = cls.from_payload(payload)
        logger.info("Loaded %d routes from %s", len(catalog), catalog_path)
        return catalog

    @classmethod
    def load(cls, path: str | Path) -> "RouteCatalog":
        """Dispatch on file suffix (``.json`` or ``.yaml``/``.yml``)."""
        suffix = Path(path).suffix.lower()
        if suffix in {".yaml", ".yml"}:
            return cls.from_yaml(path)
        return cls.from_json(path)

    def to_json(self, path: str | Path) -> None:
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("w", encoding="utf-8") as handle:
            json.dump([route_to_mapping(route) for route in self.routes.values()], handle, indent=2)


__all__ = ["RouteCatalog", "parse_route_selection", "route_from_mapping", "route_to_mapping"]
