"""Test helpers for the gifcap test suite.

GIF inspection:
    parse_gif - Walk a GIF byte string block by block
    lzw_decode - Reference LZW decoder that records clear codes and widths

Usage:
    from tests.infrastructure.helpers import parse_gif, lzw_decode

    gif = parse_gif(path.read_bytes())
    image = gif.images[0]
    decoded = lzw_decode(image.data, image.min_code_size)
"""

from .gif_reader import (
    DecodeResult,
    GifFormatError,
    ParsedGif,
    ParsedImage,
    lzw_decode,
    parse_gif,
)

__all__ = [
    "DecodeResult",
    "GifFormatError",
    "ParsedGif",
    "ParsedImage",
    "lzw_decode",
    "parse_gif",
]
