"""Human-readable rendering of vehicle events."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from .event_tracker import EventKind, VehicleEvent


def format_clock(value: datetime) -> str:
    """24-hour zero padded HH:MM."""
    return f"{value.hour:02d}:{value.minute:02d}"


def describe_event(event: VehicleEvent) -> str:
    if event.kind is EventKind.DEPARTED_ORIGIN:
        return f"Vehicle {event.route_id} departed origin"
    if event.kind is EventKind.ARRIVED_STOP:
        return f"Vehicle {event.route_id} arrived at {event.stop_id}"
    if event.kind is EventKind.DEPARTED_STOP:
        return f"Vehicle {event.route_id} departed {event.stop_id}"
    return f"Vehicle {event.route_id} arrived at destination"


class EventLog:
    """Append-only list of ``[HH:MM] text`` messages stamped with the tick clock."""

    def __init__(self) -> None:
        self._messages: List[str] = []
        self._rows: List[dict] = []

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def extend(self, events: Iterable[VehicleEvent], clock: Optional[datetime]) -> List[str]:
        """Append ``events`` and return the newly added lines."""
        stamp = format_clock(clock) if clock is not None else "--:--"
        added: List[str] = []
        for event in events:
            line = f"[{stamp}] {describe_event(event)}"
            added.append(line)
            self._rows.append(
                {
                    "clock": stamp,
                    "route_id": event.route_id,
                    "event": event.kind.value,
                    "stop_id": event.stop_id,
                    "scheduled": event.at,
                    "message": line,
                }
            )
        self._messages.extend(added)
        return added

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            self._rows, columns=["clock", "route_id", "event", "stop_id", "scheduled", "message"]
        )


__all__ = ["EventLog", "describe_event", "format_clock"]
