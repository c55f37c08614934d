"""Loaders for externally resolved route geometry (CSV or GeoJSON)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from shapely.geometry import LineString, MultiLineString, shape

from routesim.schedule.domain_types import LatLng

logger = logging.getLogger(__name__)

_REQUIRED_CSV_COLUMNS = {"route_id", "lat", "lng"}


@dataclass
class PathStore:
    """Routed point sequences keyed by route id, as returned by a routing service."""

    paths: Dict[str, List[LatLng]] = field(default_factory=dict)

    def get(self, route_id: str) -> Optional[List[LatLng]]:
        return self.paths.get(route_id)

    def route_ids(self) -> List[str]:
        return sorted(self.paths)

    # --------------------------------------------------------------------- I/O --
    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame) -> "PathStore":
        missing = _REQUIRED_CSV_COLUMNS.difference(frame.columns)
        if missing:
            raise ValueError(f"Path table is missing columns: {', '.join(sorted(missing))}")
        if "sequence" in frame.columns:
            frame = frame.sort_values(by=["route_id", "sequence"], kind="mergesort")
        paths: Dict[str, List[LatLng]] = {}
        for row in frame.itertuples(index=False):
            lat = float(getattr(row, "lat"))
            lng = float(getattr(row, "lng"))
            if pd.isna(lat) or pd.isna(lng):
                continue
            paths.setdefault(str(getattr(row, "route_id")).strip(), []).append(LatLng(lat, lng))
        return cls(paths=paths)

    @classmethod
    def from_csv(cls, path: str | Path) -> "PathStore":
        csv_path = Path(path)
        if not csv_path.exists():
            raise FileNotFoundError(f"Path CSV not found at {csv_path}")
        store = cls.from_dataframe(pd.read_csv(csv_path))
        logger.info("Loaded paths for %d routes from %s", len(store.paths), csv_path)
        return store

    @classmethod
    def from_geojson(cls, path: str | Path) -> "PathStore":
        """Read LineString features carrying a ``route_id`` property (coordinates are lng, lat)."""
        geojson_path = Path(path)
        if not geojson_path.exists():
            raise FileNotFoundError(f"Path GeoJSON not found at {geojson_path}")
        with geojson_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        paths: Dict[str, List[LatLng]] = {}
        for feature in payload.get("features") or []:
            properties = feature.get("properties") or {}
            route_id = str(properties.get("route_id") or "").strip()
            geometry = feature.get("geometry")
            if not route_id or not geometry:
                logger.debug("Skipping GeoJSON feature without route_id or geometry")
                continue
            geom = shape(geometry)
            if isinstance(geom, MultiLineString):
                lines = list(geom.geoms)
            elif isinstance(geom, LineString):
                lines = [geom]
            else:
                raise ValueError(f"Route {route_id} geometry must be a LineString, got {geom.geom_type}")
            points = paths.setdefault(route_id, [])
            for line in lines:
                points.extend(LatLng(lat=float(y), lng=float(x)) for x, y, *_ in line.coords)
        logger.info("Loaded paths for %d routes from %s", len(paths), geojson_path)
        return cls(paths=paths)

    @classmethod
    def load(cls, path: str | Path) -> "PathStore":
        suffix = Path(path).suffix.lower()
        if suffix in {".geojson", ".json"}:
            return cls.from_geojson(path)
        return cls.from_csv(path)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {"route_id": route_id, "sequence": idx, "lat": point.lat, "lng": point.lng}
            for route_id, points in sorted(self.paths.items())
            for idx, point in enumerate(points)
        ]
        return pd.DataFrame(rows, columns=["route_id", "sequence", "lat", "lng"])


__all__ = ["PathStore"]
