"""Format and container constants.

The values here describe the on-disk capture format and the fixed sizes of
the container tables. They are grouped in a frozen dataclass so the reader
can be handed a different bound (e.g. in tests) without touching globals.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FormatConfig:
    """Constants of the capture file format."""
    MAX_CURSORS: int = 10
    MAX_CHANNELS: int = 32
    # Largest sample count accepted for the legacy (uncompressed) layout
    LEGACY_MAX_SIZE: int = 256 * 1024
    # Channel count above which legacy samples are stored as 8 hex digits
    LEGACY_NARROW_CHANNELS: int = 16
    # Written literally for unset cursors
    UNSET_CURSOR: int = -(2 ** 31)
    DEFAULT_CHANNELS: int = 32


DEFAULT_CONFIG = FormatConfig()

MAX_CURSORS: int = DEFAULT_CONFIG.MAX_CURSORS
MAX_CHANNELS: int = DEFAULT_CONFIG.MAX_CHANNELS
LEGACY_MAX_SIZE: int = DEFAULT_CONFIG.LEGACY_MAX_SIZE
UNSET_CURSOR: int = DEFAULT_CONFIG.UNSET_CURSOR

# Returned by queries when a value is not known (no data, no trigger, ...)
NOT_AVAILABLE: int = -1
