"""Queue-backed adapter that moves worker callbacks onto the consumer's thread."""

from __future__ import annotations

import queue
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union


class RecorderEventType(Enum):
    PREPROCESSING_DONE = "preprocessing_done"
    PROGRESS = "progress"
    SAVED = "saved"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RecorderEvent:
    type: RecorderEventType
    worker_id: Optional[int] = None
    progress: Optional[float] = None
    path: Optional[str] = None
    error: Optional[BaseException] = None


class EventChannel:
    """Collects recorder and worker callbacks into a thread-safe queue.

    Pass the bound ``on_*`` methods as recorder callbacks and call
    :meth:`poll` or :meth:`drain` from the thread that should handle them::

        channel = EventChannel()
        recorder = Recorder(settings, **channel.callbacks())
        ...
        for event in channel.drain():
            ...
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[RecorderEvent]" = queue.Queue(maxsize)

    def callbacks(self) -> dict:
        return {
            "on_preprocessing_done": self.on_preprocessing_done,
            "on_progress": self.on_progress,
            "on_saved": self.on_saved,
            "on_failed": self.on_failed,
        }

    # callbacks, called from the producer or worker threads

    def on_preprocessing_done(self) -> None:
        self._queue.put(RecorderEvent(RecorderEventType.PREPROCESSING_DONE))

    def on_progress(self, worker_id: int, progress: float) -> None:
        self._queue.put(RecorderEvent(RecorderEventType.PROGRESS, worker_id=worker_id, progress=progress))

    def on_saved(self, worker_id: int, path: str) -> None:
        self._queue.put(RecorderEvent(RecorderEventType.SAVED, worker_id=worker_id, path=path))

    def on_failed(self, worker_id: int, error: BaseException) -> None:
        self._queue.put(RecorderEvent(RecorderEventType.FAILED, worker_id=worker_id, error=error))

    # consumer side

    def poll(self, timeout: Optional[Union[int, float]] = None) -> Optional[RecorderEvent]:
        """Next event, or None. Blocks up to ``timeout`` seconds when one is given."""
        try:
            if timeout is None:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[RecorderEvent]:
        events = []
        while True:
            event = self.poll()
            if event is None:
                return events
            events.append(event)

    def __len__(self) -> int:
        return self._queue.qsize()


__all__ = ["EventChannel", "RecorderEvent", "RecorderEventType"]
