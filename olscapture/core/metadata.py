# olscapture/core/metadata.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .config import MAX_CHANNELS, NOT_AVAILABLE
from .exceptions import InvalidSnapshot


@dataclass(frozen=True, slots=True)
class CaptureMeta:
    """
    Acquisition settings attached to a WaveformSnapshot.

    - sample_rate: samples per second, NOT_AVAILABLE if unknown
    - channels: number of captured channels (1..32), NOT_AVAILABLE if unknown
    - enabled_channels: bitmask of enabled channels, NOT_AVAILABLE if unknown
    - attrs: arbitrary additional fields (device name, ...)
    """
    sample_rate: int = NOT_AVAILABLE
    channels: int = MAX_CHANNELS
    enabled_channels: int = NOT_AVAILABLE
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for name in ("sample_rate", "channels", "enabled_channels"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidSnapshot(f"CaptureMeta.{name} must be an int.")

        if self.sample_rate != NOT_AVAILABLE and self.sample_rate <= 0:
            raise InvalidSnapshot("CaptureMeta.sample_rate must be positive or NOT_AVAILABLE.")

        if self.channels != NOT_AVAILABLE and not (0 < self.channels <= MAX_CHANNELS):
            raise InvalidSnapshot(
                f"CaptureMeta.channels must be in 1..{MAX_CHANNELS} or NOT_AVAILABLE, "
                f"got {self.channels}."
            )

        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidSnapshot("CaptureMeta.attrs must be a dict.")

    @property
    def has_timing_data(self) -> bool:
        return self.sample_rate != NOT_AVAILABLE

    def copy(self) -> "CaptureMeta":
        return CaptureMeta(
            sample_rate=self.sample_rate,
            channels=self.channels,
            enabled_channels=self.enabled_channels,
            attrs=self.attrs.copy(),
        )
