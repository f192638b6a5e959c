"""GIF flavoured LZW compression of palette indices.

Output layout for one image:

* one byte holding the initial code size (``max(2, color_depth)``),
* the variable-width code stream packed LSB first, cut into sub-blocks of at
  most 255 bytes, each prefixed with its length,
* a zero-length block terminator.

Codes start at ``init_bits + 1`` bits and widen whenever the next free code
no longer fits, up to 12 bits. Once the 4096 code table is full a clear code
is emitted and the table starts over.
"""

from __future__ import annotations

from typing import BinaryIO, Dict, Sequence

import numpy as np

from gifcap.errors import InvalidArgumentError

MAX_BITS = 12
MAX_MAX_CODE = 1 << MAX_BITS
MAX_BLOCK_SIZE = 255


def _max_code(n_bits: int) -> int:
    return (1 << n_bits) - 1


class LzwEncoder:
    """Compresses one frame worth of palette indices."""

    def __init__(self, indices: Sequence[int] | np.ndarray, color_depth: int) -> None:
        data = np.asarray(indices, dtype=np.int64).reshape(-1)
        self._init_code_size = max(2, int(color_depth))
        if self._init_code_size > 8:
            raise InvalidArgumentError(f"GIF color depth is at most 8 bits, got {color_depth}")
        if data.size and (data.min() < 0 or data.max() >= (1 << self._init_code_size)):
            raise InvalidArgumentError(
                f"Palette index out of range for color depth {self._init_code_size}"
            )
        self._pixels = data.astype(np.uint8).tobytes()

    @property
    def init_code_size(self) -> int:
        return self._init_code_size

    def encode(self, stream: BinaryIO) -> None:
        stream.write(self.encode_bytes())

    def encode_bytes(self) -> bytes:
        """Return the complete image data section (code size byte, blocks, terminator)."""
        packer = _BlockPacker(self._init_code_size + 1)
        packer.out.append(self._init_code_size)
        self._compress(packer)
        packer.out.append(0)
        return bytes(packer.out)

    def _compress(self, packer: "_BlockPacker") -> None:
        clear_code = 1 << self._init_code_size
        eof_code = clear_code + 1
        packer.clear_code = clear_code
        packer.eof_code = eof_code
        packer.free_ent = clear_code + 2

        table: Dict[int, int] = {}
        packer.output(clear_code)

        pixels = self._pixels
        if not pixels:
            packer.output(eof_code)
            return

        ent = pixels[0]
        for c in pixels[1:]:
            key = (ent << 8) | c
            code = table.get(key)
            if code is not None:
                ent = code
                continue

            packer.output(ent)
            if packer.free_ent < MAX_MAX_CODE:
                table[key] = packer.free_ent
                packer.free_ent += 1
            else:
                table.clear()
                packer.free_ent = clear_code + 2
                packer.clear_flag = True
                packer.output(clear_code)
            ent = c

        packer.output(ent)
        packer.output(eof_code)


class _BlockPacker:
    """Accumulates variable-width codes into length-prefixed sub-blocks."""

    __slots__ = (
        "out", "init_bits", "n_bits", "max_code", "free_ent",
        "clear_flag", "clear_code", "eof_code", "_accum", "_accum_bits", "_block",
    )

    def __init__(self, init_bits: int) -> None:
        self.out = bytearray()
        self.init_bits = init_bits
        self.n_bits = init_bits
        self.max_code = _max_code(init_bits)
        self.free_ent = 0
        self.clear_flag = False
        self.clear_code = 0
        self.eof_code = 0
        self._accum = 0
        self._accum_bits = 0
        self._block = bytearray()

    def output(self, code: int) -> None:
        self._accum |= code << self._accum_bits
        self._accum_bits += self.n_bits

        while self._accum_bits >= 8:
            self._add_byte(self._accum & 0xFF)
            self._accum >>= 8
            self._accum_bits -= 8

        # Width changes apply to the code after this one.
        if self.free_ent > self.max_code or self.clear_flag:
            if self.clear_flag:
                self.n_bits = self.init_bits
                self.max_code = _max_code(self.n_bits)
                self.clear_flag = False
            else:
                self.n_bits += 1
                self.max_code = MAX_MAX_CODE if self.n_bits == MAX_BITS else _max_code(self.n_bits)

        if code == self.eof_code:
            while self._accum_bits > 0:
                self._add_byte(self._accum & 0xFF)
                self._accum >>= 8
                self._accum_bits -= 8
            self._accum_bits = 0
            self._flush_block()

    def _add_byte(self, value: int) -> None:
        self._block.append(value)
        if len(self._block) >= MAX_BLOCK_SIZE:
            self._flush_block()

    def _flush_block(self) -> None:
        if self._block:
            self.out.append(len(self._block))
            self.out.extend(self._block)
            self._block.clear()


__all__ = ["LzwEncoder", "MAX_BITS", "MAX_BLOCK_SIZE"]
