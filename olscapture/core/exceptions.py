# olscapture/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all olscapture exceptions."""


# ---- Validation / construction errors ----
class InvalidSnapshot(CoreError, ValueError):
    """Raised when a WaveformSnapshot / CaptureMeta is constructed with invalid inputs."""


# ---- Contract errors (also behave like IndexError) ----
class InvalidIndex(CoreError, IndexError):
    """Raised when a channel or cursor index is out of range."""

    def __init__(self, kind: str, index: int, limit: int) -> None:
        super().__init__(
            f"Invalid {kind} index: {index}! Should be between 0 and {limit - 1}."
        )
        self.kind = kind
        self.index = index
        self.limit = limit


# ---- File format errors ----
class FormatError(CoreError):
    """Base error for capture files that cannot be read."""

    def __init__(self, reason: str, line_no: int | None = None) -> None:
        msg = reason if line_no is None else f"{reason} (line {line_no})"
        super().__init__(msg)
        self.reason = reason
        self.line_no = line_no


class CorruptFile(FormatError):
    """Raised when the header is malformed or the stream ends mid-header."""


class InvalidSize(FormatError):
    """Raised when a legacy raw file declares a size outside the allowed bound."""


class InvalidData(FormatError):
    """Raised when a data line cannot be parsed or data lines are missing."""
