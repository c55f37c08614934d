"""Position interpolation, event tracking and the per-tick simulation engine."""

from .event_log import EventLog, describe_event, format_clock
from .event_tracker import EngineStateStore, EventKind, EventTracker, RouteTrackingState, VehicleEvent
from .position_interpolator import PositionInterpolator, PreparedRoute, VehiclePhase
from .simulation_engine import SimulationEngine, TickResult, representative_time

__all__ = [
    "EngineStateStore",
    "EventKind",
    "EventLog",
    "EventTracker",
    "PositionInterpolator",
    "PreparedRoute",
    "RouteTrackingState",
    "SimulationEngine",
    "TickResult",
    "VehicleEvent",
    "VehiclePhase",
    "describe_event",
    "format_clock",
    "representative_time",
]
