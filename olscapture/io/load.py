# olscapture/io/load.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from olscapture.core import WaveformContainer
from olscapture.io.ols_format import CaptureFile, read_capture, write_capture


logger = logging.getLogger(__name__)

_ENCODING = "utf-8"


def load_capture(path: str | Path) -> CaptureFile:
    path = Path(path)
    logger.info("Loading capture from %s", path)
    with path.open("r", encoding=_ENCODING, newline="") as f:
        return read_capture(f)


def save_capture(path: str | Path, capture: CaptureFile) -> None:
    path = Path(path)
    logger.info("Saving capture to %s", path)
    with path.open("w", encoding=_ENCODING, newline="\n") as f:
        write_capture(
            f,
            capture.snapshot,
            cursor_positions=capture.cursor_positions,
            cursors_enabled=capture.cursors_enabled,
        )


def read_into(container: WaveformContainer, stream: TextIO) -> CaptureFile:
    """Read a capture from `stream` and install it, with its cursors, in `container`.

    Nothing in the container changes if the stream cannot be parsed.
    """
    capture = read_capture(stream)
    apply_capture(container, capture)
    return capture


def apply_capture(container: WaveformContainer, capture: CaptureFile) -> None:
    container.replace_snapshot(capture.snapshot)
    for idx, pos in enumerate(capture.cursor_positions):
        container.set_cursor_position(idx, pos)
    container.set_cursors_enabled(capture.cursors_enabled)


def write_from(container: WaveformContainer, stream: TextIO) -> None:
    """Write the container's current capture, cursors and cursor mode to `stream`."""
    snapshot = container.snapshot
    if snapshot is None:
        raise ValueError("No captured data to write.")
    write_capture(
        stream,
        snapshot,
        cursor_positions=container.cursor_positions,
        cursors_enabled=container.cursors_enabled,
    )


def open_into(container: WaveformContainer, path: str | Path) -> CaptureFile:
    capture = load_capture(path)
    apply_capture(container, capture)
    return capture


def save_from(container: WaveformContainer, path: str | Path) -> None:
    if container.snapshot is None:
        raise ValueError("No captured data to write.")
    path = Path(path)
    logger.info("Saving capture to %s", path)
    with path.open("w", encoding=_ENCODING, newline="\n") as f:
        write_from(container, f)
