"""Route geometry: distance tables, projection and path loaders."""

from .path_projector import (
    EARTH_RADIUS_M,
    PathSample,
    build_distance_table,
    dedupe_consecutive,
    haversine_m,
    monotonic_anchor_distances,
    nearest_distance_along_path,
    point_at_distance,
)
from .path_store import PathStore

__all__ = [
    "EARTH_RADIUS_M",
    "PathSample",
    "PathStore",
    "build_distance_table",
    "dedupe_consecutive",
    "haversine_m",
    "monotonic_anchor_distances",
    "nearest_distance_along_path",
    "point_at_distance",
]
