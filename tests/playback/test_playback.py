from __future__ import annotations

import json
import logging
import textwrap
from datetime import date

import pandas as pd
import pytest

from routesim.playback.playback_clock import PlaybackClock
from routesim.playback.playback_config import PlaybackConfig
from routesim.playback.simulate_cli import main as simulate_main


def test_playback_config_from_yaml(tmp_path):
    yaml_text = textwrap.dedent(
        """
        base_date: '2024-03-01'
        full_sweep_seconds: 30
        speed: 2
        looping: true
        """
    ).strip()
    path = tmp_path / "playback.yaml"
    path.write_text(yaml_text, encoding="utf-8")
    config = PlaybackConfig.from_yaml(path)
    assert config.base_date == date(2024, 3, 1)
    assert config.full_sweep_ms == 30000.0
    assert config.speed == 2.0
    assert config.looping is True
    assert config.tick_ms == 250.0

    roundtrip_path = tmp_path / "roundtrip.yaml"
    config.to_yaml(roundtrip_path)
    assert PlaybackConfig.from_yaml(roundtrip_path) == config


@pytest.mark.parametrize(
    "mapping",
    [{"speed": 0}, {"full_sweep_seconds": -1}, {"tick_ms": 0}, {"base_date": "yesterday"}],
)
def test_playback_config_rejects_invalid_values(mapping):
    with pytest.raises(ValueError):
        PlaybackConfig.from_mapping(mapping)


def test_clock_advances_proportionally_to_speed():
    clock = PlaybackClock(PlaybackConfig(full_sweep_seconds=60.0))
    clock.play()
    assert clock.advance(6000) == pytest.approx(10.0)
    clock.speed = 2.0
    assert clock.advance(6000) == pytest.approx(30.0)


def test_clock_is_idle_while_paused():
    clock = PlaybackClock()
    assert clock.advance(10_000) == 0.0
    clock.play()
    clock.pause()
    assert clock.advance(10_000) == 0.0


def test_clock_stops_at_end_without_looping():
    clock = PlaybackClock(PlaybackConfig(full_sweep_seconds=10.0), progress=95.0)
    clock.play()
    assert clock.advance(1000) == 100.0
    assert clock.playing is False


def test_clock_wraps_when_looping():
    clock = PlaybackClock(PlaybackConfig(full_sweep_seconds=10.0, looping=True), progress=95.0)
    clock.play()
    assert clock.advance(1000) == pytest.approx(5.0)
    assert clock.playing is True


def test_toggle_restarts_finished_playback():
    clock = PlaybackClock(progress=100.0)
    assert clock.toggle() is True
    assert clock.progress == 0.0
    assert clock.toggle() is False
    assert clock.scrub(140.0) == 100.0


def _write_inputs(tmp_path):
    routes = [
        {
            "idRota": "R1",
            "origem": {"lat": 0.0, "lng": 0.0},
            "destino": {"lat": 0.0, "lng": 2.0},
            "horarioSaida": "08:00",
            "horarioChegada": "10:00",
            "passaPor": [
                {"id": "S1", "lat": 0.0, "lng": 1.0, "horarioChegada": "08:50", "horarioSaida": "09:10"}
            ],
        },
        {
            "idRota": "R2",
            "origem": {"lat": 1.0, "lng": 0.0},
            "destino": {"lat": 1.0, "lng": 1.0},
            "horarioSaida": "08:30",
            "horarioChegada": "09:30",
        },
    ]
    routes_path = tmp_path / "routes.json"
    routes_path.write_text(json.dumps(routes), encoding="utf-8")
    paths_path = tmp_path / "paths.csv"
    pd.DataFrame(
        [
            {"route_id": "R1", "sequence": 0, "lat": 0.0, "lng": 0.5},
            {"route_id": "R1", "sequence": 1, "lat": 0.0, "lng": 1.5},
            {"route_id": "R2", "sequence": 0, "lat": 1.0, "lng": 0.5},
        ]
    ).to_csv(paths_path, index=False)
    config_path = tmp_path / "playback.yaml"
    config_path.write_text("full_sweep_seconds: 10\ntick_ms: 1000\n", encoding="utf-8")
    return routes_path, paths_path, config_path


def test_cli_replays_routes_and_writes_outputs(tmp_path):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    positions_csv = tmp_path / "out" / "positions.csv"
    events_csv = tmp_path / "out" / "events.csv"
    simulate_main(
        [
            "--routes",
            str(routes_path),
            "--paths",
            str(paths_path),
            "--config",
            str(config_path),
            "--output-csv",
            str(positions_csv),
            "--events-csv",
            str(events_csv),
            "--log-level",
            "ERROR",
        ]
    )
    positions = pd.read_csv(positions_csv)
    assert sorted(positions["route_id"].unique()) == ["R1", "R2"]
    assert positions["tick"].max() == 10
    final = positions[(positions["tick"] == 10) & (positions["route_id"] == "R1")].iloc[0]
    assert final["lng"] == pytest.approx(2.0)

    events = pd.read_csv(events_csv)
    r1_events = list(events[events["route_id"] == "R1"]["event"])
    assert r1_events == ["departed_origin", "arrived_stop", "departed_stop", "arrived_destination"]
    assert events["message"].str.match(r"^\[\d{2}:\d{2}\] Vehicle ").all()


def test_cli_select_limits_active_routes(tmp_path):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    events_csv = tmp_path / "events.csv"
    simulate_main(
        [
            "--routes",
            str(routes_path),
            "--paths",
            str(paths_path),
            "--config",
            str(config_path),
            "--select",
            "R2",
            "--events-csv",
            str(events_csv),
            "--log-level",
            "ERROR",
        ]
    )
    events = pd.read_csv(events_csv)
    assert set(events["route_id"]) == {"R2"}


def test_cli_exits_on_missing_inputs(tmp_path):
    with pytest.raises(SystemExit):
        simulate_main(["--routes", str(tmp_path / "missing.json"), "--paths", str(tmp_path / "p.csv")])


def test_cli_exits_on_missing_config(tmp_path):
    routes_path, paths_path, _ = _write_inputs(tmp_path)
    with pytest.raises(SystemExit, match="nope.yaml"):
        simulate_main(
            [
                "--routes",
                str(routes_path),
                "--paths",
                str(paths_path),
                "--config",
                str(tmp_path / "nope.yaml"),
            ]
        )


def test_cli_exits_on_invalid_config_values(tmp_path):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    config_path.write_text("base_date: yesterday\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        simulate_main(
            ["--routes", str(routes_path), "--paths", str(paths_path), "--config", str(config_path)]
        )


@pytest.mark.parametrize("speed", ["0", "-2"])
def test_cli_rejects_non_positive_speed_override(tmp_path, speed):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    with pytest.raises(SystemExit, match="speed"):
        simulate_main(
            [
                "--routes",
                str(routes_path),
                "--paths",
                str(paths_path),
                "--config",
                str(config_path),
                f"--speed={speed}",
            ]
        )


def test_cli_speed_override_shortens_playback(tmp_path):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    positions_csv = tmp_path / "positions.csv"
    simulate_main(
        [
            "--routes",
            str(routes_path),
            "--paths",
            str(paths_path),
            "--config",
            str(config_path),
            "--speed",
            "2",
            "--output-csv",
            str(positions_csv),
            "--log-level",
            "ERROR",
        ]
    )
    assert pd.read_csv(positions_csv)["tick"].max() == 5


def test_cli_warns_about_geometry_for_unknown_routes(tmp_path, caplog):
    routes_path, paths_path, config_path = _write_inputs(tmp_path)
    frame = pd.read_csv(paths_path)
    extra = pd.DataFrame([{"route_id": "GHOST", "sequence": 0, "lat": 3.0, "lng": 3.0}])
    pd.concat([frame, extra]).to_csv(paths_path, index=False)
    with caplog.at_level(logging.WARNING, logger="routesim.playback.simulate_cli"):
        simulate_main(
            ["--routes", str(routes_path), "--paths", str(paths_path), "--config", str(config_path)]
        )
    assert "GHOST" in caplog.text
