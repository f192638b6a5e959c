"""GIF89a container writer.

The first frame fixes the logical screen size and supplies the global color
table. Palettes are rebuilt per frame, so every later frame carries its own
local color table. All 16-bit fields are little endian.
"""

from __future__ import annotations

import struct
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

from gifcap.core.logging_utils import LoggerLike, ensure_structured_logger
from gifcap.errors import EncodeIOError, InvalidArgumentError, InvalidStateError
from gifcap.gif.lzw import LzwEncoder
from gifcap.gif.palette import IndexedFrame

SIGNATURE = b"GIF89a"
TRAILER = 0x3B
EXTENSION_INTRODUCER = 0x21
GRAPHIC_CONTROL_LABEL = 0xF9
APPLICATION_LABEL = 0xFF
IMAGE_SEPARATOR = 0x2C
NETSCAPE_APP_ID = b"NETSCAPE2.0"

COLOR_TABLE_FLAG = 0x80
COLOR_RESOLUTION = 0x70  # 8 bits per primary

OutputTarget = Union[str, Path, BinaryIO]


class WriterState(Enum):
    NOT_STARTED = "not_started"
    WRITING = "writing"
    FINISHED = "finished"


def ms_to_centiseconds(ms: float) -> int:
    """GIF delays are centiseconds; round half up, never negative."""
    if ms < 0:
        raise InvalidArgumentError(f"Frame delay must be >= 0 ms, got {ms}")
    return int(ms / 10 + 0.5)


class GifWriter:
    """Streams frames into a GIF file.

    ``repeat``: -1 writes no loop extension, 0 loops forever, n > 0 loops n
    extra times.
    """

    def __init__(self, repeat: int = -1, delay_ms: float = 0, *, logger: LoggerLike = None) -> None:
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        if repeat > 0xFFFF:
            raise InvalidArgumentError(f"Repeat count must fit in 16 bits, got {repeat}")
        self._repeat = repeat if repeat >= 0 else -1
        self._delay_cs = ms_to_centiseconds(delay_ms)
        self._state = WriterState.NOT_STARTED
        self._stream: Optional[BinaryIO] = None
        self._owns_stream = False
        self._size: Optional[tuple[int, int]] = None
        self._frame_count = 0

    # ------------------------------------------------------------------ settings

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def repeat(self) -> int:
        return self._repeat

    @property
    def delay_cs(self) -> int:
        return self._delay_cs

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def set_delay(self, ms: float) -> None:
        """Delay between frames in milliseconds; applies to frames added afterwards."""
        self._delay_cs = ms_to_centiseconds(ms)

    def set_frame_rate(self, fps: float) -> None:
        if fps > 0:
            self._delay_cs = int(100 / fps + 0.5)

    # ------------------------------------------------------------------ lifecycle

    def start(self, output: OutputTarget) -> None:
        if self._state is WriterState.WRITING:
            raise InvalidStateError("GifWriter.start() called twice without finish()")
        if output is None:
            raise InvalidArgumentError("GifWriter needs an output path or stream")

        if isinstance(output, (str, Path)):
            try:
                stream = open(output, "wb")
            except OSError as exc:
                raise EncodeIOError(exc.errno, f"Cannot open {output}: {exc.strerror}") from exc
            owns = True
        else:
            stream = output
            owns = False

        self._stream = stream
        self._owns_stream = owns
        self._size = None
        self._frame_count = 0
        try:
            self._write(SIGNATURE)
        except EncodeIOError:
            self._release()
            raise
        self._state = WriterState.WRITING

    def add_frame(self, frame: IndexedFrame) -> None:
        if self._state is not WriterState.WRITING:
            raise InvalidStateError("Call start() before adding frames to the gif")
        if frame is None:
            raise InvalidArgumentError("Can't add a missing frame to the gif")

        first = self._size is None
        if first:
            self._size = (frame.width, frame.height)
        elif (frame.width, frame.height) != self._size:
            raise InvalidArgumentError(
                f"Frame size {frame.width}x{frame.height} differs from {self._size[0]}x{self._size[1]}"
            )

        palette = frame.palette
        if first:
            self._write_logical_screen(palette.color_depth)
            self._write(palette.to_table_bytes())
            if self._repeat >= 0:
                self._write_netscape_ext()

        self._write_graphic_control_ext()
        self._write_image_descriptor(None if first else palette.color_depth)
        if not first:
            self._write(palette.to_table_bytes())

        self._write(LzwEncoder(frame.indices, frame.color_depth).encode_bytes())
        self._frame_count += 1

    def finish(self) -> None:
        """Write the trailer and release the output."""
        if self._state is not WriterState.WRITING:
            raise InvalidStateError("Can't finish a gif that isn't being written")
        try:
            self._write(bytes((TRAILER,)))
            try:
                self._stream.flush()
            except OSError as exc:
                raise EncodeIOError(exc.errno, f"Failed to flush gif: {exc.strerror}") from exc
        finally:
            self._release()
            self._state = WriterState.FINISHED
        self._logger.debug("Finished gif with %d frames", self._frame_count)

    def abort(self) -> None:
        """Release the output without writing a trailer."""
        if self._state is WriterState.WRITING:
            self._release()
            self._state = WriterState.FINISHED

    def __enter__(self) -> "GifWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.abort()

    # ------------------------------------------------------------------ blocks

    def _write_logical_screen(self, color_depth: int) -> None:
        width, height = self._size
        packed = COLOR_TABLE_FLAG | COLOR_RESOLUTION | (color_depth - 1)
        # background color index 0, pixel aspect ratio unspecified
        self._write(struct.pack("<HHBBB", width, height, packed, 0, 0))

    def _write_netscape_ext(self) -> None:
        self._write(bytes((EXTENSION_INTRODUCER, APPLICATION_LABEL, len(NETSCAPE_APP_ID))))
        self._write(NETSCAPE_APP_ID)
        # sub-block: size 3, loop id 1, loop count, terminator
        self._write(struct.pack("<BBHB", 3, 1, self._repeat, 0))

    def _write_graphic_control_ext(self) -> None:
        # no disposal, no user input, no transparency
        self._write(
            struct.pack("<BBBBHBB", EXTENSION_INTRODUCER, GRAPHIC_CONTROL_LABEL, 4, 0, self._delay_cs, 0, 0)
        )

    def _write_image_descriptor(self, local_depth: Optional[int]) -> None:
        width, height = self._size
        packed = 0 if local_depth is None else COLOR_TABLE_FLAG | (local_depth - 1)
        self._write(struct.pack("<BHHHHB", IMAGE_SEPARATOR, 0, 0, width, height, packed))

    # ------------------------------------------------------------------ io

    def _write(self, data: bytes) -> None:
        try:
            self._stream.write(data)
        except OSError as exc:
            raise EncodeIOError(exc.errno, f"Failed to write gif data: {exc.strerror}") from exc

    def _release(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is not None and self._owns_stream:
            try:
                stream.close()
            except OSError:
                self._logger.warning("Failed to close gif output", exc_info=True)
        self._owns_stream = False


__all__ = ["GifWriter", "WriterState", "ms_to_centiseconds"]
