"""Background encode worker: one thread, one frame sequence, one gif file."""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from gifcap.capture.frame import Frame
from gifcap.core.logging_utils import LoggerLike, ensure_structured_logger
from gifcap.defaults import DEFAULT_QUALITY
from gifcap.errors import InvalidArgumentError
from gifcap.gif.palette import clamp_sample_interval, quantize_frame
from gifcap.gif.writer import GifWriter

ProgressCallback = Callable[[int, float], None]
SavedCallback = Callable[[int, str], None]
FailedCallback = Callable[[int, BaseException], None]

_id_lock = threading.Lock()
_id_counter = itertools.count(1)


def _next_worker_id() -> int:
    with _id_lock:
        return next(_id_counter)


@dataclass(frozen=True, slots=True)
class EncodeSettings:
    """Per-save encoder configuration.

    ``quality`` doubles as the quantizer sample interval: 1 learns from every
    pixel, 100 from every hundredth.
    """

    repeat: int = -1
    quality: int = DEFAULT_QUALITY
    delay_ms: int = 0

    def __post_init__(self) -> None:
        if self.delay_ms < 0:
            raise InvalidArgumentError(f"Frame delay must be >= 0 ms, got {self.delay_ms}")

    @property
    def sample_interval(self) -> int:
        return clamp_sample_interval(self.quality)


class EncodeWorker:
    """Encodes an owned frame sequence on its own thread.

    Callbacks run on the worker thread. Any shared state they touch is the
    callback's problem; see :class:`gifcap.events.EventChannel` for a queue
    based alternative.
    """

    def __init__(
        self,
        frames: Sequence[Frame],
        path: Union[str, Path],
        settings: EncodeSettings,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_saved: Optional[SavedCallback] = None,
        on_failed: Optional[FailedCallback] = None,
        logger: LoggerLike = None,
    ) -> None:
        if not frames:
            raise InvalidArgumentError("EncodeWorker needs at least one frame")
        if path is None:
            raise InvalidArgumentError("EncodeWorker needs an output path")

        self._id = _next_worker_id()
        self._frames: List[Frame] = list(frames)
        self._total = len(self._frames)
        self._path = Path(path)
        self._settings = settings
        self._on_progress = on_progress
        self._on_saved = on_saved
        self._on_failed = on_failed
        self._logger = ensure_structured_logger(logger, fallback_name=__name__).getChild(f"worker{self._id}")
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self.run,
            name=f"gifcap-worker-{self._id}",
            daemon=True,
        )

    # ------------------------------------------------------------------ properties

    @property
    def worker_id(self) -> int:
        return self._id

    @property
    def path(self) -> Path:
        return self._path

    @property
    def frame_count(self) -> int:
        return self._total

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()

    # ------------------------------------------------------------------ lifecycle

    def start(self) -> "EncodeWorker":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker; returns True once it has finished."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        return await asyncio.to_thread(self.join, timeout)

    def run(self) -> None:
        """Encode every frame in order. Runs on the worker thread once started."""
        total = self._total
        started = time.perf_counter()
        sample_interval = self._settings.sample_interval
        self._logger.info("Encoding %d frames to %s", total, self._path)

        try:
            writer = GifWriter(self._settings.repeat, self._settings.delay_ms, logger=self._logger)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            writer.start(self._path)
            with writer:
                for done, frame in enumerate(self._frames, start=1):
                    writer.add_frame(quantize_frame(frame, sample_interval))
                    if self._on_progress is not None:
                        self._on_progress(self._id, done / total)
                writer.finish()
        except Exception as exc:
            self._error = exc
            self._logger.error("Encoding %s failed: %s", self._path, exc, exc_info=True)
            if self._on_failed is not None:
                self._on_failed(self._id, exc)
            return
        finally:
            self._frames = []

        self._logger.info("Saved %s in %.2fs", self._path, time.perf_counter() - started)
        if self._on_saved is not None:
            self._on_saved(self._id, str(self._path))


__all__ = ["EncodeSettings", "EncodeWorker"]
