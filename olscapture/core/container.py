# olscapture/core/container.py
from __future__ import annotations

import logging
import threading
from typing import Any, Iterator

import numpy as np

from .annotations import AnnotationIndex, ChannelAnnotation
from .config import MAX_CHANNELS, MAX_CURSORS, NOT_AVAILABLE
from .exceptions import InvalidIndex
from .snapshot import TIMESTAMP_DTYPE, VALUE_DTYPE, WaveformSnapshot


logger = logging.getLogger(__name__)


class WaveformContainer:
    """
    Shared entry point for the current capture of a session.

    Holds a replaceable WaveformSnapshot together with user configuration
    (cursor positions, cursor mode, channel labels) and the annotations
    that analysis tools attach to the current snapshot.

    Design goals:
    - atomic: replace_snapshot swaps the snapshot and its annotations together
    - predictable: no snapshot -> queries answer NOT_AVAILABLE / empty
    - strict: channel and cursor indices are checked on every call
    """

    def __init__(self, snapshot: WaveformSnapshot | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot: WaveformSnapshot | None = snapshot
        self._annotations: AnnotationIndex[Any] = AnnotationIndex(MAX_CHANNELS)
        self._cursor_positions: list[int | None] = [None] * MAX_CURSORS
        self._channel_labels: list[str] = [""] * MAX_CHANNELS
        self._cursors_enabled = False

    def __repr__(self) -> str:
        snap = self._snapshot
        n = "-" if snap is None else snap.n
        return f"WaveformContainer(transitions={n}, annotations={len(self._annotations)})"

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> WaveformSnapshot | None:
        return self._snapshot

    @property
    def annotations(self) -> AnnotationIndex[Any]:
        return self._annotations

    def replace_snapshot(self, snapshot: WaveformSnapshot | None) -> None:
        """
        Install `snapshot` as the current capture (None clears it).

        All channel annotations are dropped; cursor positions and channel
        labels are kept.
        """
        if snapshot is not None and not isinstance(snapshot, WaveformSnapshot):
            raise TypeError("replace_snapshot() expects a WaveformSnapshot or None.")
        with self._lock:
            self._annotations = AnnotationIndex(MAX_CHANNELS)
            self._snapshot = snapshot
        logger.debug(
            "Installed snapshot with %s transitions",
            "no" if snapshot is None else snapshot.n,
        )

    @property
    def has_captured_data(self) -> bool:
        return self._snapshot is not None

    # ---- forwarded snapshot queries ----
    @property
    def values(self) -> np.ndarray:
        snap = self._snapshot
        return snap.values if snap is not None else np.empty(0, dtype=VALUE_DTYPE)

    @property
    def timestamps(self) -> np.ndarray:
        snap = self._snapshot
        return snap.timestamps if snap is not None else np.empty(0, dtype=TIMESTAMP_DTYPE)

    @property
    def sample_rate(self) -> int:
        snap = self._snapshot
        return snap.sample_rate if snap is not None else NOT_AVAILABLE

    @property
    def channels(self) -> int:
        snap = self._snapshot
        return snap.channels if snap is not None else NOT_AVAILABLE

    @property
    def enabled_channels(self) -> int:
        snap = self._snapshot
        return snap.enabled_channels if snap is not None else NOT_AVAILABLE

    @property
    def absolute_length(self) -> int:
        snap = self._snapshot
        return snap.absolute_length if snap is not None else NOT_AVAILABLE

    @property
    def has_trigger_data(self) -> bool:
        snap = self._snapshot
        return snap is not None and snap.has_trigger_data

    @property
    def has_timing_data(self) -> bool:
        snap = self._snapshot
        return snap is not None and snap.has_timing_data

    @property
    def trigger_index(self) -> int:
        snap = self._snapshot
        return snap.trigger_index if snap is not None else NOT_AVAILABLE

    @property
    def trigger_time_position(self) -> int:
        snap = self._snapshot
        return snap.trigger_time_position if snap is not None else NOT_AVAILABLE

    def get_sample_index(self, abs_time: int) -> int:
        snap = self._snapshot
        return snap.get_sample_index(abs_time) if snap is not None else NOT_AVAILABLE

    def calculate_time(self, abs_time: int) -> int:
        """Express `abs_time` relative to the trigger, when one is known."""
        snap = self._snapshot
        if snap is not None and snap.has_trigger_data:
            return abs_time - snap.trigger_time_position
        return abs_time

    # ------------------------------------------------------------------
    # Channel labels
    # ------------------------------------------------------------------
    def _check_channel(self, channel_idx: int) -> None:
        if not (0 <= channel_idx < MAX_CHANNELS):
            raise InvalidIndex("channel", channel_idx, MAX_CHANNELS)

    @property
    def channel_labels(self) -> tuple[str, ...]:
        return tuple(self._channel_labels)

    def get_channel_label(self, channel_idx: int) -> str:
        self._check_channel(channel_idx)
        return self._channel_labels[channel_idx]

    def set_channel_label(self, channel_idx: int, label: str | None) -> None:
        self._check_channel(channel_idx)
        self._channel_labels[channel_idx] = "" if label is None else label

    def is_channel_label_set(self, channel_idx: int) -> bool:
        self._check_channel(channel_idx)
        return bool(self._channel_labels[channel_idx].strip())

    # ------------------------------------------------------------------
    # Cursors
    # ------------------------------------------------------------------
    def _check_cursor(self, cursor_idx: int) -> None:
        if not (0 <= cursor_idx < MAX_CURSORS):
            raise InvalidIndex("cursor", cursor_idx, MAX_CURSORS)

    @property
    def cursors_enabled(self) -> bool:
        return self._cursors_enabled

    def set_cursors_enabled(self, enabled: bool) -> None:
        self._cursors_enabled = bool(enabled)

    @property
    def cursor_positions(self) -> tuple[int | None, ...]:
        return tuple(self._cursor_positions)

    def get_cursor_position(self, cursor_idx: int) -> int | None:
        """Sample index of the cursor, or None if it is not set."""
        self._check_cursor(cursor_idx)
        return self._cursor_positions[cursor_idx]

    def set_cursor_position(self, cursor_idx: int, position: int | None) -> None:
        self._check_cursor(cursor_idx)
        if position is not None and position < 0:
            raise ValueError(f"Cursor position must be non-negative, got {position}.")
        self._cursor_positions[cursor_idx] = None if position is None else int(position)

    def clear_cursor_position(self, cursor_idx: int) -> None:
        self.set_cursor_position(cursor_idx, None)

    def is_cursor_position_set(self, cursor_idx: int) -> bool:
        return self.get_cursor_position(cursor_idx) is not None

    def get_cursor_timestamp(self, cursor_idx: int) -> int | None:
        """Timestamp of the transition the cursor points at, or None."""
        position = self.get_cursor_position(cursor_idx)
        snap = self._snapshot
        if position is None or snap is None or not (0 <= position < snap.n):
            return None
        return int(snap.timestamps[position])

    def get_cursor_time_value(self, cursor_idx: int) -> float | None:
        """Cursor time in seconds, relative to the trigger if there is one."""
        timestamp = self.get_cursor_timestamp(cursor_idx)
        snap = self._snapshot
        if timestamp is None or snap is None or not snap.has_timing_data:
            return None
        return self.calculate_time(timestamp) / float(snap.sample_rate)

    def get_decode_range(self) -> tuple[int, int] | None:
        """
        Transition index range (inclusive) that analysis tools should cover.

        With cursors enabled, cursor 0 and cursor 1 narrow the range (one
        transition of margin on each side); otherwise the whole capture.
        """
        snap = self._snapshot
        if snap is None or snap.n == 0:
            return None

        last = snap.n - 1
        if not self._cursors_enabled:
            return 0, last

        start = end = -1
        ts_start = self.get_cursor_timestamp(0)
        if ts_start is not None:
            start = snap.get_sample_index(ts_start) - 1
        ts_end = self.get_cursor_timestamp(1)
        if ts_end is not None:
            end = snap.get_sample_index(ts_end) + 1

        start = max(0, start)
        if end < 0 or end >= last:
            end = last
        return start, end

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------
    def add_channel_annotation(
        self, channel_idx: int, start: int, end: int, data: Any
    ) -> ChannelAnnotation[Any]:
        self._check_channel(channel_idx)
        return self._annotations.add(channel_idx, start, end, data)

    def clear_channel_annotations(self, channel_idx: int) -> None:
        self._check_channel(channel_idx)
        self._annotations.clear(channel_idx)

    def get_channel_annotation(
        self, channel_idx: int, sample_idx: int
    ) -> ChannelAnnotation[Any] | None:
        self._check_channel(channel_idx)
        return self._annotations.get_annotation(channel_idx, sample_idx)

    def get_channel_annotations(
        self, channel_idx: int, start: int, end: int
    ) -> Iterator[ChannelAnnotation[Any]]:
        self._check_channel(channel_idx)
        return self._annotations.get_annotations(channel_idx, start, end)

