"""Palette reduction: full-color frames to palette indices."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gifcap.capture.frame import Frame
from gifcap.errors import InvalidArgumentError
from gifcap.gif.neuquant import MAX_SAMPLE_INTERVAL, MIN_SAMPLE_INTERVAL, NeuQuant

MAX_COLORS = 256
MIN_COLOR_DEPTH = 2


def color_depth_for(color_count: int) -> int:
    """Bits needed to index ``color_count`` entries; GIF requires at least 2."""
    if color_count < 1 or color_count > MAX_COLORS:
        raise InvalidArgumentError(f"Palette must hold 1..{MAX_COLORS} colors, got {color_count}")
    return max(MIN_COLOR_DEPTH, (color_count - 1).bit_length())


@dataclass(frozen=True, slots=True)
class Palette:
    """Ordered RGB colors plus a marker for entries referenced by pixels."""

    colors: np.ndarray
    used: np.ndarray

    def __post_init__(self) -> None:
        if self.colors.ndim != 2 or self.colors.shape[1] != 3:
            raise InvalidArgumentError(f"Palette colors must be (n, 3), got {self.colors.shape}")
        color_depth_for(len(self.colors))
        if self.used.shape != (len(self.colors),):
            raise InvalidArgumentError("Palette used markers must match the color count")

    @property
    def size(self) -> int:
        return len(self.colors)

    @property
    def color_depth(self) -> int:
        return color_depth_for(self.size)

    @property
    def table_size(self) -> int:
        return 1 << self.color_depth

    def to_table_bytes(self) -> bytes:
        """RGB triples padded with black to ``table_size`` entries."""
        table = np.zeros((self.table_size, 3), dtype=np.uint8)
        table[: self.size] = self.colors
        return table.tobytes()


@dataclass(frozen=True, slots=True)
class IndexedFrame:
    """One palette index per pixel, top row first."""

    width: int
    height: int
    indices: np.ndarray
    palette: Palette

    def __post_init__(self) -> None:
        if self.indices.shape != (self.width * self.height,):
            raise InvalidArgumentError(
                f"Expected {self.width * self.height} indices, got shape {self.indices.shape}"
            )

    @property
    def color_depth(self) -> int:
        return self.palette.color_depth


def clamp_sample_interval(value: int) -> int:
    return min(MAX_SAMPLE_INTERVAL, max(MIN_SAMPLE_INTERVAL, int(value)))


def quantize_frame(frame: Frame, sample_interval: int = 10) -> IndexedFrame:
    """Build a palette for ``frame`` and map every pixel to it.

    Frames that already use at most 256 distinct colors keep those exact
    colors. Anything richer goes through NeuQuant and each distinct source
    color is mapped to its nearest palette entry once.
    """
    if frame is None:
        raise InvalidArgumentError("Cannot quantize a missing frame")

    rgb = frame.to_rgb24().pixels.reshape(-1, 3)
    packed = (
        (rgb[:, 0].astype(np.uint32) << 16)
        | (rgb[:, 1].astype(np.uint32) << 8)
        | rgb[:, 2].astype(np.uint32)
    )
    distinct, inverse = np.unique(packed, return_inverse=True)
    inverse = inverse.reshape(-1)

    if distinct.size <= MAX_COLORS:
        colors = np.stack(
            ((distinct >> 16) & 0xFF, (distinct >> 8) & 0xFF, distinct & 0xFF), axis=1
        ).astype(np.uint8)
        indices = inverse.astype(np.uint8)
    else:
        quantizer = NeuQuant(rgb.tobytes(), clamp_sample_interval(sample_interval))
        colors = quantizer.process()
        lookup = np.fromiter(
            (quantizer.map(int(c >> 16), int((c >> 8) & 0xFF), int(c & 0xFF)) for c in distinct),
            dtype=np.uint8,
            count=distinct.size,
        )
        indices = lookup[inverse]

    used = np.zeros(len(colors), dtype=bool)
    used[np.unique(indices)] = True
    return IndexedFrame(frame.width, frame.height, indices, Palette(colors, used))


__all__ = [
    "IndexedFrame",
    "MAX_COLORS",
    "Palette",
    "clamp_sample_interval",
    "color_depth_for",
    "quantize_frame",
]
