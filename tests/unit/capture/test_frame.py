"""Unit tests for Frame."""

import numpy as np
import pytest

from gifcap.capture.frame import Frame
from gifcap.errors import InvalidArgumentError


def test_from_bytes_wraps_rgba_buffer():
    data = bytes(range(2 * 3 * 4))
    frame = Frame.from_bytes(3, 2, data)

    assert frame.size == (3, 2)
    assert frame.channels == 4
    assert frame.nbytes == 24
    assert frame.pixels[0, 0].tolist() == [0, 1, 2, 3]


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(InvalidArgumentError):
        Frame.from_bytes(4, 4, b"\x00" * 10, channels=3)


@pytest.mark.parametrize(
    "pixels",
    [
        np.zeros((4, 4, 3), dtype=np.float32),
        np.zeros((4, 5, 3), dtype=np.uint8),
        np.zeros((4, 4, 2), dtype=np.uint8),
        np.zeros((4, 4), dtype=np.uint8),
    ],
)
def test_invalid_pixel_arrays_are_rejected(pixels):
    with pytest.raises(InvalidArgumentError):
        Frame(4, 4, pixels)


def test_non_positive_size_is_rejected():
    with pytest.raises(InvalidArgumentError):
        Frame(0, 4, np.zeros((4, 0, 3), dtype=np.uint8))


def test_to_rgb24_drops_alpha_and_flips_bottom_up_rows():
    pixels = np.zeros((2, 1, 4), dtype=np.uint8)
    pixels[0, 0] = (1, 2, 3, 200)  # stored first, but it is the bottom row
    pixels[1, 0] = (4, 5, 6, 200)
    frame = Frame(1, 2, pixels, bottom_up=True)

    rgb = frame.to_rgb24()

    assert rgb.channels == 3
    assert not rgb.bottom_up
    assert rgb.pixels[:, 0].tolist() == [[4, 5, 6], [1, 2, 3]]
    assert rgb.pixels.flags["C_CONTIGUOUS"]


def test_to_rgb24_returns_a_copy(solid_frame):
    frame = solid_frame(4, 4, (10, 20, 30))
    rgb = frame.to_rgb24()

    frame.pixels[:] = 0

    assert rgb.pixels[0, 0].tolist() == [10, 20, 30]


def test_to_rgb24_copies_three_channel_top_down_frames(solid_frame):
    frame = solid_frame(3, 2, (1, 2, 3), channels=3)
    rgb = frame.to_rgb24()

    assert not np.shares_memory(rgb.pixels, frame.pixels)
    assert rgb.pixels.flags["C_CONTIGUOUS"]


def test_rgb_bytes_is_top_down_rgb(solid_frame):
    frame = solid_frame(2, 2, (7, 8, 9), channels=4)
    assert frame.rgb_bytes() == bytes([7, 8, 9] * 4)


def test_frame_is_immutable(solid_frame):
    frame = solid_frame()
    with pytest.raises(AttributeError):
        frame.width = 10
