"""Rolling frame capture and animated gif encoding."""

from __future__ import annotations

from importlib import metadata

from .capture import Frame, FrameBuffer, capacity_for
from .config import RecorderSettings, load_settings, load_settings_async
from .errors import EncodeIOError, GifCaptureError, InvalidArgumentError, InvalidStateError
from .events import EventChannel, RecorderEvent, RecorderEventType
from .gif import GifWriter, LzwEncoder, NeuQuant, quantize_frame
from .recorder import Recorder, RecorderState, SaveRejection
from .worker import EncodeSettings, EncodeWorker

try:
    __version__ = metadata.version("gifcap")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"

__all__ = [
    "EncodeIOError",
    "EncodeSettings",
    "EncodeWorker",
    "EventChannel",
    "Frame",
    "FrameBuffer",
    "GifCaptureError",
    "GifWriter",
    "InvalidArgumentError",
    "InvalidStateError",
    "LzwEncoder",
    "NeuQuant",
    "Recorder",
    "RecorderEvent",
    "RecorderEventType",
    "RecorderSettings",
    "RecorderState",
    "SaveRejection",
    "__version__",
    "capacity_for",
    "load_settings",
    "load_settings_async",
    "quantize_frame",
]
