"""Wall-clock driver that turns elapsed milliseconds into simulation progress."""

from __future__ import annotations

from typing import Optional

from .playback_config import PlaybackConfig


class PlaybackClock:
    """Play/pause/scrub state for the 0..100 progress slider.

    At speed 1 a full sweep takes ``full_sweep_seconds``. Reaching 100 either
    stops playback or, when looping, wraps around keeping the overshoot.
    """

    def __init__(self, config: Optional[PlaybackConfig] = None, progress: float = 0.0):
        self.config = config or PlaybackConfig()
        self.speed = self.config.speed
        self.looping = self.config.looping
        self.progress = min(max(float(progress), 0.0), 100.0)
        self.playing = False

    def play(self) -> None:
        if self.progress >= 100.0:
            self.progress = 0.0
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def toggle(self) -> bool:
        if self.playing:
            self.pause()
        else:
            self.play()
        return self.playing

    def scrub(self, progress: float) -> float:
        self.progress = min(max(float(progress), 0.0), 100.0)
        return self.progress

    def advance(self, elapsed_ms: float) -> float:
        """Move forward by ``elapsed_ms`` of wall time; no-op while paused."""
        if not self.playing or elapsed_ms <= 0:
            return self.progress
        delta = (elapsed_ms / self.config.full_sweep_ms) * 100.0 * self.speed
        nxt = self.progress + delta
        if nxt >= 100.0:
            if self.looping:
                nxt = nxt % 100.0
            else:
                nxt = 100.0
                self.playing = False
        self.progress = nxt
        return self.progress


__all__ = ["PlaybackClock"]
