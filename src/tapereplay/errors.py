"""Recoverable errors.

Tape errors are surfaced to the user as a notice; neither is fatal. Individual
malformed rows never raise, they are dropped by the parser.
"""

from __future__ import annotations


class TapeError(ValueError):
    """Base class for load failures."""


class ParseError(TapeError):
    """Header missing/unrecognized, input too short, or no usable rows."""


class AggregationError(TapeError):
    """Ticks parsed but no one-minute bar could be built from them."""


class ConfigError(ValueError):
    """Config file unreadable or in an unsupported format."""
