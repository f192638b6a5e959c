"""GIF encoding: palette reduction, LZW compression and container writing."""

from .lzw import LzwEncoder
from .neuquant import NeuQuant
from .palette import IndexedFrame, Palette, color_depth_for, quantize_frame
from .writer import GifWriter, WriterState, ms_to_centiseconds

__all__ = [
    "GifWriter",
    "IndexedFrame",
    "LzwEncoder",
    "NeuQuant",
    "Palette",
    "WriterState",
    "color_depth_for",
    "ms_to_centiseconds",
    "quantize_frame",
]
