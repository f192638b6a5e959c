"""Frame data structure handed from the producer to the buffer."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gifcap.errors import InvalidArgumentError

SUPPORTED_CHANNELS = (3, 4)


@dataclass(frozen=True, slots=True)
class Frame:
    """Immutable captured frame.

    ``pixels`` is a ``(height, width, channels)`` uint8 array holding RGB24
    (3 channels) or RGBA32 (4 channels) data. ``bottom_up`` marks buffers
    whose first row is the bottom of the image, as GPU readbacks usually are.
    """

    width: int
    height: int
    pixels: np.ndarray
    bottom_up: bool = False

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidArgumentError(f"Frame size must be positive, got {self.width}x{self.height}")
        if not isinstance(self.pixels, np.ndarray):
            raise InvalidArgumentError("Frame pixels must be a numpy array")
        if self.pixels.dtype != np.uint8:
            raise InvalidArgumentError(f"Frame pixels must be uint8, got {self.pixels.dtype}")
        if self.pixels.ndim != 3 or self.pixels.shape[:2] != (self.height, self.width):
            raise InvalidArgumentError(
                f"Frame pixels shape {self.pixels.shape} does not match {self.width}x{self.height}"
            )
        if self.pixels.shape[2] not in SUPPORTED_CHANNELS:
            raise InvalidArgumentError(f"Unsupported channel count {self.pixels.shape[2]}")

    @classmethod
    def from_bytes(
        cls,
        width: int,
        height: int,
        data,
        *,
        channels: int = 4,
        bottom_up: bool = False,
    ) -> "Frame":
        """Wrap a flat row-major producer buffer without copying it."""
        if channels not in SUPPORTED_CHANNELS:
            raise InvalidArgumentError(f"Unsupported channel count {channels}")
        flat = np.frombuffer(data, dtype=np.uint8) if not isinstance(data, np.ndarray) else data
        expected = width * height * channels
        if flat.size != expected:
            raise InvalidArgumentError(
                f"Pixel buffer holds {flat.size} bytes, expected {expected} for {width}x{height}x{channels}"
            )
        return cls(width, height, flat.reshape(height, width, channels), bottom_up=bottom_up)

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def nbytes(self) -> int:
        return self.pixels.nbytes

    def to_rgb24(self) -> "Frame":
        """Return a top-down, contiguous RGB24 copy (alpha dropped)."""
        rgb = self.pixels[:, :, :3]
        if self.bottom_up:
            rgb = rgb[::-1]
        pixels = np.array(rgb, dtype=np.uint8, order="C", copy=True)
        return Frame(self.width, self.height, pixels, bottom_up=False)

    def rgb_bytes(self) -> bytes:
        """Flat ``width*height*3`` RGB byte string, top row first."""
        return self.to_rgb24().pixels.tobytes()
