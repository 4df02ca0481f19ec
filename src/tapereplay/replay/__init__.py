"""Replay engine: virtual clock, forming bar, playback, session."""
