"""Scheduled vehicle route simulation: positions and exactly-once events."""

__version__ = "0.1.0"
