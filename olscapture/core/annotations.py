# olscapture/core/annotations.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

from .config import MAX_CHANNELS
from .exceptions import InvalidIndex


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ChannelAnnotation(Generic[T]):
    """An annotated, inclusive range of sample indices on one channel.

    `data` is opaque to this package; the tool that adds it defines it.
    """
    start: int
    end: int
    data: T

    def contains(self, sample_idx: int) -> bool:
        return self.start <= sample_idx <= self.end

    def overlaps(self, start: int, end: int) -> bool:
        return not (self.end < start or self.start > end)


class ChannelAnnotations(Generic[T]):
    """Annotations of a single channel, in arrival order.

    Writers append under a lock; readers work on a copy of the entry list,
    so iterating never sees a list that is being appended to.
    """

    __slots__ = ("channel_idx", "_entries", "_lock")

    def __init__(self, channel_idx: int) -> None:
        self.channel_idx = channel_idx
        self._entries: list[ChannelAnnotation[T]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, start: int, end: int, data: T) -> ChannelAnnotation[T]:
        annotation = ChannelAnnotation(start=start, end=end, data=data)
        with self._lock:
            self._entries.append(annotation)
        return annotation

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def entries(self) -> tuple[ChannelAnnotation[T], ...]:
        with self._lock:
            return tuple(self._entries)

    def get_annotation(self, sample_idx: int) -> ChannelAnnotation[T] | None:
        for annotation in self.entries():
            if annotation.contains(sample_idx):
                return annotation
        return None

    def get_annotations(self, start: int, end: int) -> Iterator[ChannelAnnotation[T]]:
        entries = self.entries()
        return (a for a in entries if a.overlaps(start, end))


class AnnotationIndex(Generic[T]):
    """
    Per-channel annotation store for channels 0..31.

    Channels are addressed by position in a fixed list; there is no
    lookup by anything but the channel index.
    """

    def __init__(self, n_channels: int = MAX_CHANNELS) -> None:
        self._channels: list[ChannelAnnotations[T]] = [
            ChannelAnnotations(i) for i in range(n_channels)
        ]

    def __len__(self) -> int:
        return sum(len(ch) for ch in self._channels)

    def __getitem__(self, channel_idx: int) -> ChannelAnnotations[T]:
        return self._channel(channel_idx)

    @property
    def n_channels(self) -> int:
        return len(self._channels)

    def _channel(self, channel_idx: int) -> ChannelAnnotations[T]:
        if not (0 <= channel_idx < len(self._channels)):
            raise InvalidIndex("channel", channel_idx, len(self._channels))
        return self._channels[channel_idx]

    def add(self, channel_idx: int, start: int, end: int, data: T) -> ChannelAnnotation[T]:
        return self._channel(channel_idx).add(start, end, data)

    def clear(self, channel_idx: int) -> None:
        self._channel(channel_idx).clear()

    def clear_all(self) -> None:
        for ch in self._channels:
            ch.clear()

    def count(self, channel_idx: int) -> int:
        return len(self._channel(channel_idx))

    def get_annotation(self, channel_idx: int, sample_idx: int) -> ChannelAnnotation[T] | None:
        """First annotation (by insertion order) covering `sample_idx`, or None."""
        return self._channel(channel_idx).get_annotation(sample_idx)

    def get_annotations(
        self, channel_idx: int, start: int, end: int
    ) -> Iterator[ChannelAnnotation[T]]:
        """Annotations overlapping ``[start, end]``, in insertion order.

        The entries are captured when this is called; annotations added
        afterwards are not part of the returned iterator.
        """
        return self._channel(channel_idx).get_annotations(start, end)
