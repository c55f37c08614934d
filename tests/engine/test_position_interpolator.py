from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from routesim.engine.position_interpolator import PositionInterpolator, PreparedRoute, VehiclePhase
from routesim.geometry.path_projector import PathSample
from routesim.schedule.domain_types import LatLng, RouteSchedule, Stop

BASE = date(1970, 1, 1)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(1970, 1, 1, hour, minute)


def _make_prepared(stops=(), departure="08:00", arrival="10:00", routed=(LatLng(0.0, 1.0),)) -> PreparedRoute:
    route = RouteSchedule(
        route_id="A",
        origin=LatLng(0.0, 0.0),
        destination=LatLng(0.0, 2.0),
        departure=departure,
        arrival=arrival,
        stops=tuple(stops),
    )
    path = PathSample.for_route(route.origin, list(routed), route.destination)
    return PreparedRoute.build(route, path, BASE)


def _with_stop() -> PreparedRoute:
    stop = Stop(id="MID", position=LatLng(0.0, 1.0), arrival="09:00", departure="09:30")
    return _make_prepared(stops=[stop], arrival="10:30")


def test_midpoint_in_time_is_midpoint_in_distance():
    prepared = _make_prepared()
    position = PositionInterpolator().position_at(prepared, _at(9))
    assert position.lat == pytest.approx(0.0, abs=1e-12)
    assert position.lng == pytest.approx(1.0, abs=1e-9)


def test_position_is_pure():
    prepared = _make_prepared()
    interpolator = PositionInterpolator()
    query = _at(8, 37)
    assert interpolator.position_at(prepared, query) == interpolator.position_at(prepared, query)


def test_fixed_positions_outside_schedule():
    prepared = _make_prepared()
    interpolator = PositionInterpolator()
    assert interpolator.position_at(prepared, _at(7)) == LatLng(0.0, 0.0)
    assert interpolator.position_at(prepared, _at(8)) == LatLng(0.0, 0.0)
    assert interpolator.position_at(prepared, _at(10)) == LatLng(0.0, 2.0)
    assert interpolator.phase_at(prepared, _at(7)) is VehiclePhase.NOT_DEPARTED
    assert interpolator.phase_at(prepared, _at(11)) is VehiclePhase.ARRIVED


def test_vehicle_dwells_at_stop():
    prepared = _with_stop()
    interpolator = PositionInterpolator()
    assert interpolator.position_at(prepared, _at(9, 15)) == LatLng(0.0, 1.0)
    assert interpolator.phase_at(prepared, _at(9, 0)) is VehiclePhase.DWELLING
    assert interpolator.phase_at(prepared, _at(9, 30)) is VehiclePhase.TRAVELLING


def test_travel_legs_interpolate_between_anchors():
    prepared = _with_stop()
    interpolator = PositionInterpolator()
    first_leg = interpolator.position_at(prepared, _at(8, 30))
    assert first_leg.lng == pytest.approx(0.5, abs=1e-9)
    second_leg = interpolator.position_at(prepared, _at(10, 0))
    assert second_leg.lng == pytest.approx(1.5, abs=1e-9)


def test_no_jump_across_dwell_boundaries():
    prepared = _with_stop()
    interpolator = PositionInterpolator()
    just_before = interpolator.position_at(prepared, _at(9) - timedelta(milliseconds=1))
    assert just_before.lng == pytest.approx(1.0, abs=1e-6)
    at_departure = interpolator.position_at(prepared, _at(9, 30))
    assert at_departure.lng == pytest.approx(1.0, abs=1e-12)
    assert at_departure.lat == pytest.approx(0.0, abs=1e-12)


def test_zero_duration_legs_do_not_divide_by_zero():
    stops = [
        Stop(id="S1", position=LatLng(0.0, 0.5), arrival="08:30", departure="09:00"),
        Stop(id="S2", position=LatLng(0.0, 1.5), arrival="09:00", departure="09:00"),
    ]
    prepared = _make_prepared(stops=stops, arrival="10:00")
    interpolator = PositionInterpolator()
    # 09:00 falls only inside the zero-length leg from S1 to S2.
    assert interpolator.phase_at(prepared, _at(9)) is VehiclePhase.TRAVELLING
    position = interpolator.position_at(prepared, _at(9))
    assert position.lng == pytest.approx(0.5, abs=1e-9)


def test_coincident_points_return_first_sample():
    route = RouteSchedule(
        route_id="P",
        origin=LatLng(1.0, 1.0),
        destination=LatLng(1.0, 1.0),
        departure="08:00",
        arrival="09:00",
    )
    path = PathSample.for_route(route.origin, [LatLng(1.0, 1.0)], route.destination)
    prepared = PreparedRoute.build(route, path, BASE)
    assert len(prepared.path) == 1
    assert PositionInterpolator().position_at(prepared, _at(8, 30)) == LatLng(1.0, 1.0)


def test_empty_path_has_no_position():
    route = RouteSchedule(
        route_id="E",
        origin=LatLng(0.0, 0.0),
        destination=LatLng(0.0, 1.0),
        departure="08:00",
        arrival="09:00",
    )
    prepared = PreparedRoute.build(route, PathSample.from_points([]), BASE)
    assert PositionInterpolator().position_at(prepared, _at(8, 30)) is None


def test_anchor_distances_cover_origin_stops_and_destination():
    prepared = _with_stop()
    assert len(prepared.anchor_distances) == 3
    assert len(prepared.times) == 4
    assert prepared.anchor_distances[0] == 0.0
    assert prepared.anchor_distances[1] == pytest.approx(prepared.path.cum_dist[1])
    assert prepared.anchor_distances[2] == pytest.approx(prepared.path.total_distance)
