"""
Core domain objects for olscapture.

This module defines the captured-waveform data model:
- WaveformSnapshot: immutable, transition-compressed capture
- CaptureMeta: acquisition settings of a capture
- AnnotationIndex: per-channel annotated sample ranges
- WaveformContainer: current snapshot + cursors, labels and annotations

The core layer is independent from I/O and file formats.
"""

from .config import (
    FormatConfig,
    DEFAULT_CONFIG,
    MAX_CHANNELS,
    MAX_CURSORS,
    LEGACY_MAX_SIZE,
    UNSET_CURSOR,
    NOT_AVAILABLE,
)
from .metadata import CaptureMeta
from .snapshot import WaveformSnapshot, compress_samples, resolve_time_position
from .annotations import AnnotationIndex, ChannelAnnotation, ChannelAnnotations
from .container import WaveformContainer
from .exceptions import (
    CoreError,
    InvalidSnapshot,
    InvalidIndex,
    FormatError,
    CorruptFile,
    InvalidSize,
    InvalidData,
)


__all__ = [
    # configuration
    "FormatConfig",
    "DEFAULT_CONFIG",
    "MAX_CHANNELS",
    "MAX_CURSORS",
    "LEGACY_MAX_SIZE",
    "UNSET_CURSOR",
    "NOT_AVAILABLE",

    # data model
    "CaptureMeta",
    "WaveformSnapshot",
    "compress_samples",
    "resolve_time_position",

    # annotations
    "AnnotationIndex",
    "ChannelAnnotation",
    "ChannelAnnotations",

    # container
    "WaveformContainer",

    # exceptions
    "CoreError",
    "InvalidSnapshot",
    "InvalidIndex",
    "FormatError",
    "CorruptFile",
    "InvalidSize",
    "InvalidData",
]
