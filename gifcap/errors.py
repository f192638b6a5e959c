"""Exception hierarchy for the capture and encoding pipeline."""

from __future__ import annotations


class GifCaptureError(Exception):
    """Base class for every error raised by gifcap."""


class InvalidStateError(GifCaptureError, RuntimeError):
    """Operation attempted while the writer state machine forbids it."""


class InvalidArgumentError(GifCaptureError, ValueError):
    """Missing or malformed frames, paths or sizes."""


class EncodeIOError(GifCaptureError, OSError):
    """The output file could not be opened or written."""


__all__ = [
    "EncodeIOError",
    "GifCaptureError",
    "InvalidArgumentError",
    "InvalidStateError",
]
