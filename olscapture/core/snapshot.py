# olscapture/core/snapshot.py
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .config import NOT_AVAILABLE
from .exceptions import InvalidSnapshot
from .metadata import CaptureMeta


VALUE_DTYPE = np.uint32
TIMESTAMP_DTYPE = np.int64


def compress_samples(samples) -> tuple[np.ndarray, np.ndarray]:
    """Run-length compress dense raw samples into transitions.

    A transition is emitted for index 0 and for every index whose value
    differs from the immediately preceding sample.

    Returns
    -------
    values, timestamps
        ``uint32`` values and ``int64`` sample indices of the transitions.
    """
    raw = np.asarray(samples, dtype=VALUE_DTYPE)
    if raw.ndim != 1:
        raise InvalidSnapshot(f"samples must be 1D, got shape {raw.shape}")
    if raw.size == 0:
        return np.empty(0, dtype=VALUE_DTYPE), np.empty(0, dtype=TIMESTAMP_DTYPE)

    changes = np.flatnonzero(raw[1:] != raw[:-1]) + 1
    timestamps = np.concatenate(([0], changes)).astype(TIMESTAMP_DTYPE)
    return raw[timestamps], timestamps


def resolve_time_position(timestamps: np.ndarray, position: int) -> int:
    """Map a legacy time value onto a transition index.

    Returns the first index ``i >= 1`` whose timestamp exceeds `position`,
    or NOT_AVAILABLE when no such transition exists.
    """
    ts = np.asarray(timestamps, dtype=TIMESTAMP_DTYPE)
    idx = int(np.searchsorted(ts, position, side="right"))
    idx = max(idx, 1)
    return idx if idx < ts.size else NOT_AVAILABLE


@dataclass(frozen=True, slots=True, eq=False)
class WaveformSnapshot:
    """
    One completed capture, stored as transitions.

    Design goals:
    - compact: only value changes are kept (values[i] holds from timestamps[i])
    - safe: arrays are validated and made read-only
    - replaceable: a new capture produces a new snapshot, never an edit
    """
    values: np.ndarray = field(repr=False)
    timestamps: np.ndarray = field(repr=False)
    trigger_index: int = NOT_AVAILABLE
    meta: CaptureMeta = field(default_factory=CaptureMeta)
    absolute_length: int | None = None

    def __post_init__(self) -> None:
        raw = np.asarray(self.values)
        if raw.size and raw.dtype.kind in "iu":
            if raw.min() < 0 or raw.max() > np.iinfo(VALUE_DTYPE).max:
                raise InvalidSnapshot("`values` must fit in 32 unsigned bits.")
        try:
            v = np.array(raw, dtype=VALUE_DTYPE)
            t = np.array(self.timestamps, dtype=TIMESTAMP_DTYPE)
        except (OverflowError, TypeError, ValueError) as e:
            raise InvalidSnapshot(f"Cannot convert transitions: {e}") from e

        if v.ndim != 1:
            raise InvalidSnapshot(f"`values` must be 1D, got shape {v.shape}")
        if t.ndim != 1:
            raise InvalidSnapshot(f"`timestamps` must be 1D, got shape {t.shape}")
        if t.size != v.size:
            raise InvalidSnapshot(
                f"`values` and `timestamps` must have same length, got {v.size} vs {t.size}"
            )

        if t.size > 0:
            if t[0] != 0:
                raise InvalidSnapshot(f"`timestamps` must start at 0, got {int(t[0])}.")
            if np.any(np.diff(t) <= 0):
                raise InvalidSnapshot("`timestamps` must be strictly increasing.")

        if not isinstance(self.meta, CaptureMeta):
            raise InvalidSnapshot("WaveformSnapshot.meta must be a CaptureMeta instance.")

        trigger = int(self.trigger_index)
        if trigger != NOT_AVAILABLE and not (0 <= trigger < t.size):
            raise InvalidSnapshot(
                f"trigger_index {trigger} does not address one of {t.size} transitions."
            )

        if self.absolute_length is None:
            # Without a declared length, the capture ends at its last transition
            abs_len = int(t[-1]) + 1 if t.size else 0
        else:
            abs_len = int(self.absolute_length)
            if abs_len < t.size:
                raise InvalidSnapshot(
                    f"absolute_length {abs_len} is shorter than {t.size} transitions."
                )

        v.setflags(write=False)
        t.setflags(write=False)
        object.__setattr__(self, "values", v)
        object.__setattr__(self, "timestamps", t)
        object.__setattr__(self, "trigger_index", trigger)
        object.__setattr__(self, "absolute_length", abs_len)

    @classmethod
    def from_samples(
        cls,
        samples,
        *,
        trigger_index: int = NOT_AVAILABLE,
        meta: CaptureMeta | None = None,
    ) -> "WaveformSnapshot":
        """Build a snapshot from dense raw samples (one word per sample clock)."""
        values, timestamps = compress_samples(samples)
        return cls(
            values=values,
            timestamps=timestamps,
            trigger_index=trigger_index,
            meta=meta if meta is not None else CaptureMeta(),
            absolute_length=int(np.asarray(samples).size),
        )

    # Convenience accessors
    @property
    def n(self) -> int:
        return int(self.values.size)

    @property
    def sample_rate(self) -> int:
        return self.meta.sample_rate

    @property
    def channels(self) -> int:
        return self.meta.channels

    @property
    def enabled_channels(self) -> int:
        return self.meta.enabled_channels

    @property
    def has_trigger_data(self) -> bool:
        return self.trigger_index != NOT_AVAILABLE

    @property
    def has_timing_data(self) -> bool:
        return self.meta.has_timing_data

    @property
    def trigger_time_position(self) -> int:
        if not self.has_trigger_data:
            return NOT_AVAILABLE
        return int(self.timestamps[self.trigger_index])

    def get_sample_index(self, abs_time: int) -> int:
        """Index of the transition in effect at sample time `abs_time`."""
        if self.n == 0:
            return NOT_AVAILABLE
        idx = int(np.searchsorted(self.timestamps, abs_time, side="right")) - 1
        return max(idx, 0)

    def to_samples(self) -> np.ndarray:
        """Expand the transitions back into `absolute_length` dense samples."""
        length = max(self.absolute_length, int(self.timestamps[-1]) + 1 if self.n else 0)
        if length == 0:
            return np.empty(0, dtype=VALUE_DTYPE)
        run_lengths = np.diff(np.append(self.timestamps, length))
        return np.repeat(self.values, run_lengths)

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray]:
        if copy:
            return self.values.copy(), self.timestamps.copy()
        return self.values, self.timestamps

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WaveformSnapshot):
            return NotImplemented
        return (
            np.array_equal(self.values, other.values)
            and np.array_equal(self.timestamps, other.timestamps)
            and self.trigger_index == other.trigger_index
            and self.absolute_length == other.absolute_length
            and self.meta == other.meta
        )
