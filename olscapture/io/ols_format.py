from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, TextIO, Union

import logging
import re

import numpy as np

from olscapture.core.config import DEFAULT_CONFIG, NOT_AVAILABLE, FormatConfig
from olscapture.core.exceptions import (
    CorruptFile,
    InvalidData,
    InvalidSize,
    InvalidSnapshot,
)
from olscapture.core.metadata import CaptureMeta
from olscapture.core.snapshot import (
    TIMESTAMP_DTYPE,
    VALUE_DTYPE,
    WaveformSnapshot,
    compress_samples,
    resolve_time_position,
)


logger = logging.getLogger(__name__)

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

_HEADER_RE = re.compile(r"^;(?P<key>[^:]+): (?P<value>.*)$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_CURSOR_KEY_RE = re.compile(r"^Cursor(?P<idx>\d)$")
_CURSOR_VALUE_RE = re.compile(r"^\d+$")
_COMPRESSED_RE = re.compile(r"^(?P<hi>[0-9A-Fa-f]{4})(?P<lo>[0-9A-Fa-f]{4})@(?P<ts>-?\d+)$")
_RAW_NARROW_RE = re.compile(r"^[0-9A-Fa-f]{4}$")
_RAW_WIDE_RE = re.compile(r"^(?P<hi>[0-9A-Fa-f]{4})(?P<lo>[0-9A-Fa-f]{4})$")


# ----------------------------------------------------------------------
# Line classification
# ----------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HeaderLine:
    """A ``;``-prefixed line. `key` is None for lines not shaped ``;Key: value``."""

    line_no: int
    key: str | None
    value: str


@dataclass(frozen=True, slots=True)
class DataLine:
    line_no: int
    text: str


@dataclass(frozen=True, slots=True)
class EndOfStream:
    line_no: int


ParsedLine = Union[HeaderLine, DataLine, EndOfStream]


def classify_line(line: str, line_no: int) -> ParsedLine:
    """Classify one raw line as read from a stream ("" means end of stream)."""
    if line == "":
        return EndOfStream(line_no)
    text = line.rstrip("\r\n")
    if not text.startswith(";"):
        return DataLine(line_no, text.strip())
    m = _HEADER_RE.match(text)
    if not m:
        return HeaderLine(line_no, None, text[1:])
    return HeaderLine(line_no, m.group("key"), m.group("value").strip())


class _LineReader:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._line_no = 0

    def next(self) -> ParsedLine:
        line = self._stream.readline()
        if line:
            self._line_no += 1
            return classify_line(line, self._line_no)
        return EndOfStream(self._line_no + 1)


# ----------------------------------------------------------------------
# Result / header state
# ----------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CaptureFile:
    """Everything a capture file holds: the snapshot plus cursor settings."""

    snapshot: WaveformSnapshot
    cursor_positions: tuple[int | None, ...]
    cursors_enabled: bool = False


@dataclass
class _Header:
    """Raw header values, before any legacy migration."""

    size: int = 0
    rate: int = NOT_AVAILABLE
    channels: int = DEFAULT_CONFIG.DEFAULT_CHANNELS
    trigger_position: int | None = None
    enabled_channels: int = NOT_AVAILABLE
    cursors: list[int | None] = field(
        default_factory=lambda: [None] * DEFAULT_CONFIG.MAX_CURSORS
    )
    cursors_enabled: bool = False
    compressed: bool = False
    absolute_length: int | None = None


def _parse_int(line: HeaderLine) -> int:
    if not _INT_RE.match(line.value):
        raise CorruptFile(f"Invalid value for '{line.key}': {line.value!r}", line.line_no)
    return int(line.value)


def _parse_bool(line: HeaderLine) -> bool:
    return line.value.lower() == "true"


def _apply_header_line(header: _Header, line: HeaderLine, config: FormatConfig) -> None:
    key = line.key
    if key is None:
        logger.debug("Ignoring comment line %d: %r", line.line_no, line.value)
        return

    if key == "Size":
        header.size = _parse_int(line)
    elif key == "Rate":
        header.rate = _parse_int(line)
    elif key == "Channels":
        header.channels = _parse_int(line)
    elif key == "TriggerPosition":
        header.trigger_position = _parse_int(line)
    elif key == "EnabledChannels":
        header.enabled_channels = _parse_int(line)
    elif key in ("CursorA", "CursorB"):
        # Oldest files only know two cursors, stored as signed time values
        value = _parse_int(line)
        header.cursors[0 if key == "CursorA" else 1] = (
            None if value == config.UNSET_CURSOR else value
        )
    elif key == "CursorEnabled":
        header.cursors_enabled = _parse_bool(line)
    elif key == "Compressed":
        header.compressed = _parse_bool(line)
    elif key == "AbsoluteLength":
        header.absolute_length = _parse_int(line)
    else:
        m = _CURSOR_KEY_RE.match(key)
        if m is None or int(m.group("idx")) >= len(header.cursors):
            logger.debug("Ignoring unknown header key %r (line %d)", key, line.line_no)
            return
        idx = int(m.group("idx"))
        if line.value == str(config.UNSET_CURSOR):
            header.cursors[idx] = None
        elif _CURSOR_VALUE_RE.match(line.value):
            header.cursors[idx] = int(line.value)
        else:
            logger.debug("Ignoring cursor %d value %r (line %d)", idx, line.value, line.line_no)


def _apply_trailer_line(header: _Header, line: HeaderLine, config: FormatConfig) -> None:
    # Only the cursor block follows the data
    key = line.key
    if key == "CursorEnabled" or (key is not None and _CURSOR_KEY_RE.match(key)):
        _apply_header_line(header, line, config)
    else:
        logger.debug("Ignoring trailer key %r (line %d)", key, line.line_no)


# ----------------------------------------------------------------------
# Legacy position migration
# ----------------------------------------------------------------------
def migrate_trigger_position(raw: int | None, timestamps: np.ndarray) -> int:
    """
    Turn a stored trigger position into a transition index.

    Values up to the number of transitions are taken as an index; larger
    values come from pre-compression files and are sample times.
    """
    if raw is None:
        return NOT_AVAILABLE
    n = int(timestamps.size)
    if raw <= n:
        return raw if 0 <= raw < n else NOT_AVAILABLE
    idx = resolve_time_position(timestamps, raw)
    if idx == NOT_AVAILABLE:
        logger.warning("Trigger time %d lies beyond the last transition; dropped", raw)
    return idx


def migrate_cursor_position(raw: int | None, timestamps: np.ndarray) -> int | None:
    """
    Turn a stored cursor position into a transition index (None = unset).

    Values within ``[0, N]`` are indices already; anything else is a
    legacy time value.
    """
    if raw is None:
        return None
    if 0 <= raw <= timestamps.size:
        return raw
    idx = resolve_time_position(timestamps, raw)
    if idx == NOT_AVAILABLE:
        logger.warning("Cursor time %d lies beyond the last transition; cursor unset", raw)
        return None
    return idx


# ----------------------------------------------------------------------
# Codec
# ----------------------------------------------------------------------
class OlsFormatCodec:
    """Reader/writer for the line-oriented OLS capture file format.

    Files start with ``;Key: value`` header lines, followed by one line per
    transition (``HHHHHHHH@timestamp``) in the compressed layout, or one
    line per raw sample in the legacy layout. Cursor settings follow the
    data as another block of ``;`` lines.
    """

    def __init__(self, config: FormatConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def read(self, stream: TextIO) -> CaptureFile:
        """Parse a capture file.

        Raises
        ------
        CorruptFile
            Header malformed, or the stream ends inside the header.
        InvalidSize
            Legacy layout with a size outside ``1..LEGACY_MAX_SIZE``.
        InvalidData
            A data line does not parse, or fewer data lines than declared.
        """
        logger.info("Parsing OLS captured data from stream...")
        reader = _LineReader(stream)
        header = _Header(cursors=[None] * self.config.MAX_CURSORS)

        # Header phase
        line = reader.next()
        while isinstance(line, HeaderLine):
            _apply_header_line(header, line, self.config)
            line = reader.next()
        if isinstance(line, EndOfStream):
            raise CorruptFile("File appears to be corrupt: no data after header.", line.line_no)

        try:
            meta = CaptureMeta(
                sample_rate=header.rate,
                channels=header.channels,
                enabled_channels=header.enabled_channels,
            )
        except InvalidSnapshot as e:
            raise CorruptFile(str(e)) from e

        # Data phase
        if header.compressed:
            logger.debug("Compressed layout, %d transitions", header.size)
            values, timestamps, line = self._read_compressed(reader, line, header)
            absolute_length = header.absolute_length
        else:
            logger.debug("Legacy raw layout, %d samples", header.size)
            samples, line = self._read_raw(reader, line, header)
            values, timestamps = compress_samples(samples)
            absolute_length = header.size

        # Trailer phase
        while not isinstance(line, EndOfStream):
            if isinstance(line, HeaderLine):
                _apply_trailer_line(header, line, self.config)
            else:
                logger.debug("Ignoring data line %d after %d samples", line.line_no, header.size)
            line = reader.next()

        trigger_index = migrate_trigger_position(header.trigger_position, timestamps)
        cursors = tuple(migrate_cursor_position(c, timestamps) for c in header.cursors)

        try:
            snapshot = WaveformSnapshot(
                values=values,
                timestamps=timestamps,
                trigger_index=trigger_index,
                meta=meta,
                absolute_length=absolute_length,
            )
        except InvalidSnapshot as e:
            raise InvalidData(str(e)) from e

        logger.debug("Read %d transitions (%d samples)", snapshot.n, snapshot.absolute_length)
        return CaptureFile(
            snapshot=snapshot,
            cursor_positions=cursors,
            cursors_enabled=header.cursors_enabled,
        )

    def _read_compressed(
        self, reader: _LineReader, line: ParsedLine, header: _Header
    ) -> tuple[np.ndarray, np.ndarray, ParsedLine]:
        if header.size < 0:
            raise InvalidSize(f"Invalid size encountered: {header.size}.")

        values: list[int] = []
        timestamps: list[int] = []
        for _ in range(header.size):
            if isinstance(line, EndOfStream):
                raise InvalidData(
                    f"Expected {header.size} data lines, got {len(values)}.", line.line_no
                )
            m = _COMPRESSED_RE.match(line.text) if isinstance(line, DataLine) else None
            if m is None:
                raise InvalidData("Invalid data encountered.", line.line_no)
            ts = int(m.group("ts"))
            if not (_INT64_MIN <= ts <= _INT64_MAX):
                raise InvalidData(f"Timestamp out of range: {ts}.", line.line_no)
            values.append(int(m.group("hi"), 16) << 16 | int(m.group("lo"), 16))
            timestamps.append(ts)
            line = reader.next()

        return (
            np.array(values, dtype=VALUE_DTYPE),
            np.array(timestamps, dtype=TIMESTAMP_DTYPE),
            line,
        )

    def _read_raw(
        self, reader: _LineReader, line: ParsedLine, header: _Header
    ) -> tuple[np.ndarray, ParsedLine]:
        if header.size <= 0 or header.size > self.config.LEGACY_MAX_SIZE:
            raise InvalidSize(f"Invalid size encountered: {header.size}.")

        wide = header.channels > self.config.LEGACY_NARROW_CHANNELS
        samples = np.empty(header.size, dtype=VALUE_DTYPE)
        for i in range(header.size):
            if isinstance(line, EndOfStream):
                raise InvalidData(f"Expected {header.size} samples, got {i}.", line.line_no)
            text = line.text if isinstance(line, DataLine) else ""
            if wide:
                m = _RAW_WIDE_RE.match(text)
                if m is None:
                    raise InvalidData("Invalid data encountered.", line.line_no)
                samples[i] = int(m.group("hi"), 16) << 16 | int(m.group("lo"), 16)
            else:
                if not _RAW_NARROW_RE.match(text):
                    raise InvalidData("Invalid data encountered.", line.line_no)
                samples[i] = int(text, 16)
            line = reader.next()

        return samples, line

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def write(
        self,
        stream: TextIO,
        snapshot: WaveformSnapshot,
        cursor_positions: Iterable[int | None] | None = None,
        cursors_enabled: bool = False,
    ) -> None:
        """Write `snapshot` and the cursor table in the compressed layout."""
        if cursor_positions is None:
            cursors = (None,) * self.config.MAX_CURSORS
        else:
            cursors = tuple(cursor_positions)
        if len(cursors) != self.config.MAX_CURSORS:
            raise ValueError(
                f"Expected {self.config.MAX_CURSORS} cursor positions, got {len(cursors)}."
            )
        if any(pos is not None and pos < 0 for pos in cursors):
            raise ValueError("Cursor positions must be non-negative.")

        try:
            stream.write(f";Size: {snapshot.n}\n")
            stream.write(f";Rate: {snapshot.sample_rate}\n")
            stream.write(f";Channels: {snapshot.channels}\n")
            stream.write(f";EnabledChannels: {snapshot.enabled_channels}\n")
            if snapshot.has_trigger_data:
                stream.write(f";TriggerPosition: {snapshot.trigger_index}\n")
            stream.write(";Compressed: true\n")
            stream.write(f";AbsoluteLength: {snapshot.absolute_length}\n")

            stream.writelines(
                f"{int(v):08x}@{int(t)}\n"
                for v, t in zip(snapshot.values, snapshot.timestamps)
            )

            stream.write(f";CursorEnabled: {'true' if cursors_enabled else 'false'}\n")
            for i, pos in enumerate(cursors):
                value = self.config.UNSET_CURSOR if pos is None else int(pos)
                stream.write(f";Cursor{i}: {value}\n")
        finally:
            stream.flush()


_DEFAULT_CODEC = OlsFormatCodec()


def read_capture(stream: TextIO, *, config: FormatConfig | None = None) -> CaptureFile:
    codec = _DEFAULT_CODEC if config is None else OlsFormatCodec(config)
    return codec.read(stream)


def write_capture(
    stream: TextIO,
    snapshot: WaveformSnapshot,
    *,
    cursor_positions: Iterable[int | None] | None = None,
    cursors_enabled: bool = False,
    config: FormatConfig | None = None,
) -> None:
    codec = _DEFAULT_CODEC if config is None else OlsFormatCodec(config)
    codec.write(stream, snapshot, cursor_positions, cursors_enabled)
