"""Playback driver and command-line entry point."""

from .playback_clock import PlaybackClock
from .playback_config import SUPPORTED_SPEEDS, PlaybackConfig

__all__ = ["PlaybackClock", "PlaybackConfig", "SUPPORTED_SPEEDS"]
