from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from pathlib import Path
from typing import Dict, Mapping

import yaml

logger = logging.getLogger(__name__)

SUPPORTED_SPEEDS = (0.5, 1.0, 2.0, 4.0)


def _parse_date(value: object) -> date:
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"base_date must be YYYY-MM-DD, got {text!r}") from exc


@dataclass(frozen=True)
class PlaybackConfig:
    """Playback parameters for driving the engine from a wall clock."""

    base_date: date = date(1970, 1, 1)
    full_sweep_seconds: float = 60.0
    speed: float = 1.0
    looping: bool = False
    tick_ms: float = 250.0

    def __post_init__(self) -> None:
        if self.full_sweep_seconds <= 0:
            raise ValueError("full_sweep_seconds must be positive")
        if self.speed <= 0:
            raise ValueError("speed must be positive")
        if self.tick_ms <= 0:
            raise ValueError("tick_ms must be positive")
        if self.speed not in SUPPORTED_SPEEDS:
            logger.warning(
                "Playback speed %s is not one of the standard presets %s", self.speed, SUPPORTED_SPEEDS
            )

    @property
    def full_sweep_ms(self) -> float:
        return self.full_sweep_seconds * 1000.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "PlaybackConfig":
        if not isinstance(data, Mapping):
            raise TypeError("Playback configuration must be a mapping")
        defaults = cls()
        return cls(
            base_date=_parse_date(data.get("base_date", defaults.base_date)),
            full_sweep_seconds=float(data.get("full_sweep_seconds", defaults.full_sweep_seconds)),
            speed=float(data.get("speed", defaults.speed)),
            looping=bool(data.get("looping", defaults.looping)),
            tick_ms=float(data.get("tick_ms", defaults.tick_ms)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PlaybackConfig":
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Playback YAML not found at {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        return cls.from_mapping(data)

    def to_yaml(self, path: str | Path) -> None:
        output: Dict[str, object] = asdict(self)
        output["base_date"] = self.base_date.isoformat()
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(output, handle, sort_keys=True)


__all__ = ["PlaybackConfig", "SUPPORTED_SPEEDS"]
