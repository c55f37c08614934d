"""Resolve HH:MM schedule strings into absolute, non-decreasing timestamps."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Sequence, Tuple

from .domain_types import RouteSchedule

ONE_DAY = timedelta(days=1)


class ScheduleParseError(ValueError):
    """Raised when a schedule time string is not a valid HH:MM value."""


def parse_hhmm(token: object, label: str = "time") -> time:
    """
    Parse an HH:MM string into a time of day.

    Args:
        token: Raw value from the route definition.
        label: Human-readable label for error messages.
    Returns:
        The parsed :class:`datetime.time`.
    """
    if not isinstance(token, str) or not token.strip():
        raise ScheduleParseError(f"{label} requires a non-empty HH:MM string, got {token!r}")
    text = token.strip()
    parts = text.split(":")
    if len(parts) != 2:
        raise ScheduleParseError(f"{label} must be in HH:MM format: {text!r}")
    hour_str, minute_str = parts
    if not hour_str.isdigit() or not minute_str.isdigit():
        raise ScheduleParseError(f"{label} must be numeric HH:MM: {text!r}")
    hour = int(hour_str)
    minute = int(minute_str)
    if hour > 23 or minute > 59:
        raise ScheduleParseError(f"{label} out of range: {text!r}")
    return time(hour, minute)


def _as_date(base_date: date) -> date:
    if isinstance(base_date, datetime):
        return base_date.date()
    return base_date


def resolve_sequential_times(time_strings: Sequence[str], base_date: date) -> List[datetime]:
    """
    Anchor a multi-leg schedule to ``base_date``.

    Each entry that would fall before the previously resolved one is pushed
    forward by 24h, so the result is non-decreasing however many times the
    schedule crosses midnight.
    """
    day = _as_date(base_date)
    resolved: List[datetime] = []
    for index, token in enumerate(time_strings):
        value = datetime.combine(day, parse_hhmm(token, f"time #{index}"))
        if resolved and value < resolved[-1]:
            # Shift by whole days relative to the previous anchor's date.
            value = datetime.combine(resolved[-1].date(), value.time())
            if value < resolved[-1]:
                value += ONE_DAY
        resolved.append(value)
    return resolved


def resolve_departure_arrival(departure: str, arrival: str, base_date: date) -> Tuple[datetime, datetime]:
    """Two-anchor case: an arrival earlier than the departure lands on the next day."""
    start, end = resolve_sequential_times([departure, arrival], base_date)
    return start, end


def resolve_route_times(route: RouteSchedule, base_date: date) -> List[datetime]:
    """Resolve every anchor of ``route``; errors name the route and offending anchor."""
    labels = route.anchor_labels()
    for token, label in zip(route.time_strings(), labels):
        try:
            parse_hhmm(token, label)
        except ScheduleParseError as exc:
            raise ScheduleParseError(f"Route {route.route_id}: {exc}") from exc
    if not route.stops:
        return list(resolve_departure_arrival(route.departure, route.arrival, base_date))
    return resolve_sequential_times(route.time_strings(), base_date)


__all__ = [
    "ScheduleParseError",
    "parse_hhmm",
    "resolve_departure_arrival",
    "resolve_route_times",
    "resolve_sequential_times",
]
