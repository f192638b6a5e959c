"""Bounded frame ring buffer with single-slot storage recycling."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List, Optional

import numpy as np

from gifcap.capture.frame import Frame
from gifcap.errors import InvalidArgumentError


def capacity_for(buffer_seconds: float, fps: int) -> int:
    """Number of frames needed to hold ``buffer_seconds`` at ``fps``."""
    return max(1, int(round(buffer_seconds * fps)))


class FrameBuffer:
    """Fixed-capacity queue of frames that drops the oldest entry on overflow.

    The pixel array of the evicted frame is kept as a recycled slot and handed
    out again by :meth:`obtain`, so a warmed-up buffer stops allocating. Only
    one array is recycled at a time.

    Not thread-safe: the producer owns the buffer and frames leave it through
    :meth:`drain`, after which they belong to the caller.
    """

    def __init__(self, capacity: int) -> None:
        self._validate_capacity(capacity)
        self._capacity = capacity
        self._frames: Deque[Frame] = deque()
        self._recycled: Optional[np.ndarray] = None

    @staticmethod
    def _validate_capacity(capacity: int) -> None:
        if not isinstance(capacity, int) or capacity < 1:
            raise InvalidArgumentError(f"Buffer capacity must be a positive integer, got {capacity!r}")

    # ------------------------------------------------------------------ queries

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_empty(self) -> bool:
        return not self._frames

    @property
    def is_full(self) -> bool:
        return len(self._frames) >= self._capacity

    @property
    def has_recycled(self) -> bool:
        return self._recycled is not None

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(list(self._frames))

    # ------------------------------------------------------------------ storage

    def obtain(self, width: int, height: int, channels: int) -> np.ndarray:
        """Return storage for the next capture, reusing the recycled slot when it fits."""
        recycled = self._recycled
        if recycled is not None and recycled.shape == (height, width, channels):
            self._recycled = None
            return recycled
        return np.empty((height, width, channels), dtype=np.uint8)

    def push(self, frame: Frame) -> None:
        if len(self._frames) >= self._capacity:
            evicted = self._frames.popleft()
            self._recycled = evicted.pixels
        self._frames.append(frame)

    def drain(self) -> List[Frame]:
        """Remove and return every buffered frame, oldest first."""
        frames = list(self._frames)
        self._frames.clear()
        return frames

    def flush(self) -> None:
        self._frames.clear()
        self._recycled = None

    def resize(self, capacity: int) -> None:
        """Change capacity. Buffered content is dropped since its timing no longer applies."""
        self._validate_capacity(capacity)
        self.flush()
        self._capacity = capacity


__all__ = ["FrameBuffer", "capacity_for"]
