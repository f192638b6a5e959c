"""Recorder: rolling capture buffer and save orchestration.

The recorder toggles between PAUSED and RECORDING. save() moves it to
PRE_PROCESSING until the frames have been handed to an encode worker.
While pre-processing, every mutating call logs a warning and returns without
touching anything.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional

import cv2
import numpy as np

from gifcap.capture.buffer import FrameBuffer
from gifcap.capture.frame import Frame
from gifcap.config import RecorderSettings
from gifcap.core.asyncio_utils import create_logged_task
from gifcap.core.logging_utils import LoggerLike, ensure_structured_logger
from gifcap.errors import InvalidStateError
from gifcap.worker import (
    EncodeSettings,
    EncodeWorker,
    FailedCallback,
    ProgressCallback,
    SavedCallback,
)

GIF_SUFFIX = ".gif"


class RecorderState(Enum):
    RECORDING = "recording"
    PAUSED = "paused"
    PRE_PROCESSING = "pre_processing"


class SaveRejection(Enum):
    """Why the last save() call returned None."""

    PRE_PROCESSING = "pre_processing"
    EMPTY_BUFFER = "empty_buffer"


def generate_filename(prefix: str, now: Optional[datetime] = None) -> str:
    """``<prefix>-yyyyMMddHHmmss`` followed by ten-thousandths of a second."""
    now = now or datetime.now()
    return f"{prefix}-{now:%Y%m%d%H%M%S}{now.microsecond // 100:04d}"


class Recorder:
    """Keeps the last ``buffer_seconds`` of frames and saves them as a gif.

    A new recorder starts paused; call :meth:`record` to begin capturing.
    ``save`` must be called from a running event loop.
    """

    def __init__(
        self,
        settings: Optional[RecorderSettings] = None,
        *,
        on_preprocessing_done: Optional[Callable[[], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_saved: Optional[SavedCallback] = None,
        on_failed: Optional[FailedCallback] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.logger = ensure_structured_logger(logger, component="Recorder", fallback_name=__name__)
        self._settings = settings or RecorderSettings.create()
        self._buffer = FrameBuffer(self._settings.max_frame_count)
        self._state = RecorderState.PAUSED
        self._elapsed = 0.0
        self._last_rejection: Optional[SaveRejection] = None

        self.on_preprocessing_done = on_preprocessing_done
        self.on_progress = on_progress
        self.on_saved = on_saved
        self.on_failed = on_failed

        self._pending_tasks: set[asyncio.Task[Any]] = set()
        self._workers: List[EncodeWorker] = []

    # ------------------------------------------------------------------ queries

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def settings(self) -> RecorderSettings:
        return self._settings

    @property
    def buffer(self) -> FrameBuffer:
        return self._buffer

    @property
    def last_rejection(self) -> Optional[SaveRejection]:
        """Reason the most recent save() was refused, None after an accepted one."""
        return self._last_rejection

    @property
    def estimated_memory_use(self) -> float:
        """Estimated MiB held by a full buffer."""
        return self._settings.estimated_memory_mb

    @property
    def workers(self) -> List[EncodeWorker]:
        """Workers started by this recorder that have not finished yet."""
        self._workers = [worker for worker in self._workers if not worker.done]
        return list(self._workers)

    def _busy(self, action: str) -> bool:
        if self._state is RecorderState.PRE_PROCESSING:
            self.logger.warning("Attempting to %s during the pre-processing step", action)
            return True
        return False

    # ------------------------------------------------------------------ control

    def setup(self, settings: Optional[RecorderSettings] = None, **changes: Any) -> bool:
        """Replace the settings and start over with an empty buffer."""
        if self._busy("change the recorder setup"):
            return False

        new_settings = settings or self._settings
        if changes:
            new_settings = new_settings.with_changes(**changes)

        self._settings = new_settings
        self._buffer.resize(new_settings.max_frame_count)
        self._elapsed = 0.0
        self.logger.debug(
            "Setup %dx%d @ %d fps, %d frames (~%.2f MiB)",
            new_settings.width,
            new_settings.height,
            new_settings.fps,
            new_settings.max_frame_count,
            new_settings.estimated_memory_mb,
        )
        return True

    def pause(self) -> bool:
        if self._busy("pause recording"):
            return False
        self._state = RecorderState.PAUSED
        return True

    def record(self) -> bool:
        if self._busy("resume recording"):
            return False
        self._state = RecorderState.RECORDING
        return True

    def flush_memory(self) -> bool:
        if self._busy("flush the buffer"):
            return False
        self._buffer.flush()
        self._elapsed = 0.0
        return True

    # ------------------------------------------------------------------ capture

    def capture(self, frame: Frame, dt: Optional[float] = None) -> bool:
        """Offer a frame to the buffer; returns True if it was stored.

        With ``dt`` (seconds since the previous call) frames are sampled at the
        configured rate and the leftover time carries over. Without it every
        call stores a frame.
        """
        if self._state is not RecorderState.RECORDING:
            return False

        if dt is not None:
            self._elapsed += dt
            if self._elapsed < self._settings.time_per_frame:
                return False
            self._elapsed -= self._settings.time_per_frame

        width, height = self._settings.width, self._settings.height
        storage = self._buffer.obtain(width, height, frame.channels)
        if frame.size == (width, height):
            np.copyto(storage, frame.pixels)
        else:
            resized = cv2.resize(
                np.ascontiguousarray(frame.pixels),
                (width, height),
                dst=storage,
                interpolation=cv2.INTER_LINEAR,
            )
            if resized is not storage:
                np.copyto(storage, resized.reshape(storage.shape))

        self._buffer.push(Frame(width, height, storage, bottom_up=frame.bottom_up))
        return True

    # ------------------------------------------------------------------ save

    def generate_filename(self) -> str:
        return generate_filename(self._settings.filename_prefix)

    def output_path(self, filename: Optional[str] = None) -> Path:
        name = filename or self.generate_filename()
        if not name.lower().endswith(GIF_SUFFIX):
            name += GIF_SUFFIX
        return Path(self._settings.save_folder) / name

    def save(self, filename: Optional[str] = None) -> Optional[asyncio.Task]:
        """Hand the buffered frames to a new encode worker.

        Returns the pre-processing task, whose result is the started
        :class:`EncodeWorker`, or None when the request was rejected; see
        :attr:`last_rejection` for the reason. Raises
        :class:`InvalidStateError` without touching the recorder when no
        event loop is running.
        """
        if self._busy("save"):
            self._last_rejection = SaveRejection.PRE_PROCESSING
            return None
        if self._buffer.is_empty:
            self.logger.warning("Nothing to save. Maybe you forgot to start the recorder?")
            self._last_rejection = SaveRejection.EMPTY_BUFFER
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise InvalidStateError("Recorder.save() must be called from a running event loop") from exc

        path = self.output_path(filename)
        self._last_rejection = None
        self._state = RecorderState.PRE_PROCESSING
        return create_logged_task(
            self._preprocess(path),
            logger=self.logger,
            loop=loop,
            context=f"pre-processing {path.name}",
            pending=self._pending_tasks,
        )

    async def _preprocess(self, path: Path) -> EncodeWorker:
        try:
            frames = self._buffer.drain()
            converted: List[Frame] = []
            for frame in frames:
                converted.append(frame.to_rgb24())
                await asyncio.sleep(0)
        finally:
            self._state = RecorderState.PAUSED

        if self.on_preprocessing_done is not None:
            self.on_preprocessing_done()

        settings = EncodeSettings(
            repeat=self._settings.repeat,
            quality=self._settings.quality,
            delay_ms=self._settings.delay_ms,
        )
        worker = EncodeWorker(
            converted,
            path,
            settings,
            on_progress=self.on_progress,
            on_saved=self.on_saved,
            on_failed=self.on_failed,
            logger=self.logger,
        )
        self._workers.append(worker)
        self.logger.info("Worker %d started for %d frames -> %s", worker.worker_id, len(converted), path)
        return worker.start()


__all__ = ["Recorder", "RecorderState", "SaveRejection", "generate_filename"]
