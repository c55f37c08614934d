"""Exactly-once detection of departure/arrival events on a scrubbable timeline."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .position_interpolator import PreparedRoute

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    DEPARTED_ORIGIN = "departed_origin"
    ARRIVED_STOP = "arrived_stop"
    DEPARTED_STOP = "departed_stop"
    ARRIVED_DESTINATION = "arrived_destination"


@dataclass(frozen=True)
class VehicleEvent:
    """Single event for a route; ``stop_id`` is set for the stop kinds only."""

    route_id: str
    kind: EventKind
    at: datetime
    stop_id: Optional[str] = None


@dataclass
class RouteTrackingState:
    """Watermark and fired-event bookkeeping for one route."""

    last_time: Optional[datetime] = None
    stop_arrivals: Set[str] = field(default_factory=set)
    stop_departures: Set[str] = field(default_factory=set)
    departed_origin: bool = False
    arrived_destination: bool = False

    def has_fired(self, kind: EventKind, stop_id: Optional[str]) -> bool:
        if kind is EventKind.DEPARTED_ORIGIN:
            return self.departed_origin
        if kind is EventKind.ARRIVED_DESTINATION:
            return self.arrived_destination
        if kind is EventKind.ARRIVED_STOP:
            return stop_id in self.stop_arrivals
        return stop_id in self.stop_departures

    def mark_fired(self, kind: EventKind, stop_id: Optional[str]) -> None:
        if kind is EventKind.DEPARTED_ORIGIN:
            self.departed_origin = True
        elif kind is EventKind.ARRIVED_DESTINATION:
            self.arrived_destination = True
        elif kind is EventKind.ARRIVED_STOP:
            self.stop_arrivals.add(stop_id)
        else:
            self.stop_departures.add(stop_id)


class EngineStateStore:
    """Session-scoped mapping from route id to :class:`RouteTrackingState`."""

    def __init__(self) -> None:
        self._states: Dict[str, RouteTrackingState] = {}

    def state_for(self, route_id: str) -> RouteTrackingState:
        """Return the state for ``route_id``, creating it on first use."""
        state = self._states.get(route_id)
        if state is None:
            state = RouteTrackingState()
            self._states[route_id] = state
        return state

    def peek(self, route_id: str) -> Optional[RouteTrackingState]:
        return self._states.get(route_id)

    def reset(self) -> None:
        self._states.clear()

    def __contains__(self, route_id: object) -> bool:
        return route_id in self._states

    def __len__(self) -> int:
        return len(self._states)


def iter_thresholds(
    prepared: PreparedRoute,
) -> Iterator[Tuple[EventKind, Optional[str], datetime]]:
    """Event thresholds in schedule order."""
    times = prepared.times
    yield EventKind.DEPARTED_ORIGIN, None, times[0]
    for index, stop in enumerate(prepared.route.stops):
        arrived, departs = prepared.stop_window(index)
        yield EventKind.ARRIVED_STOP, stop.id, arrived
        yield EventKind.DEPARTED_STOP, stop.id, departs
    yield EventKind.ARRIVED_DESTINATION, None, times[-1]


def crossed(last_time: Optional[datetime], threshold: datetime, now: datetime) -> bool:
    """
    Edge trigger: ``last_time < threshold <= now``.

    On the first observation (no watermark) any threshold already reached
    counts, so starting mid-simulation still reports past events once.
    """
    if last_time is None:
        return now >= threshold
    return last_time < threshold <= now


class EventTracker:
    """Emits each route event once per forward sweep; rewinding starts over."""

    def __init__(self, store: Optional[EngineStateStore] = None) -> None:
        self.store = store if store is not None else EngineStateStore()
        self._last_progress: Optional[float] = None

    def observe_progress(self, progress: float) -> bool:
        """Record the driving progress; returns True when a rewind reset the store."""
        rewound = self._last_progress is not None and progress < self._last_progress
        if rewound:
            logger.debug(
                "Progress moved back from %.3f to %.3f; clearing %d route states",
                self._last_progress,
                progress,
                len(self.store),
            )
            self.store.reset()
        self._last_progress = progress
        return rewound

    def reset(self) -> None:
        self.store.reset()
        self._last_progress = None

    def detect_and_emit(self, prepared: PreparedRoute, now: datetime) -> List[VehicleEvent]:
        """Return the events of ``prepared`` crossed since its watermark and advance it to ``now``."""
        state = self.store.state_for(prepared.route_id)
        events: List[VehicleEvent] = []
        for kind, stop_id, threshold in iter_thresholds(prepared):
            if state.has_fired(kind, stop_id):
                continue
            if crossed(state.last_time, threshold, now):
                state.mark_fired(kind, stop_id)
                events.append(
                    VehicleEvent(route_id=prepared.route_id, kind=kind, at=threshold, stop_id=stop_id)
                )
        state.last_time = now
        return events


__all__ = [
    "EngineStateStore",
    "EventKind",
    "EventTracker",
    "RouteTrackingState",
    "VehicleEvent",
    "crossed",
]
