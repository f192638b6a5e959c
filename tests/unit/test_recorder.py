"""Unit tests for Recorder."""

import asyncio
import contextlib
from datetime import datetime

import numpy as np
import pytest

from gifcap.capture.frame import Frame
from gifcap.config import RecorderSettings
from gifcap.errors import InvalidStateError
from gifcap.recorder import Recorder, RecorderState, SaveRejection, generate_filename
from tests.infrastructure.helpers import lzw_decode, parse_gif


def _settings(output_dir, **overrides):
    values = dict(
        width=16,
        height=16,
        auto_aspect=False,
        fps=10,
        buffer_seconds=0.5,
        repeat=0,
        quality=10,
        save_folder=output_dir,
    )
    values.update(overrides)
    return RecorderSettings.create(**values)


@pytest.fixture
def recorder(output_dir):
    return Recorder(_settings(output_dir))


def test_new_recorder_is_paused(recorder):
    assert recorder.state is RecorderState.PAUSED
    assert recorder.buffer.capacity == 5


def test_capture_is_ignored_while_paused(recorder, solid_frame):
    assert not recorder.capture(solid_frame())
    assert len(recorder.buffer) == 0


def test_capture_without_dt_stores_every_frame(recorder, solid_frame):
    recorder.record()
    for _ in range(3):
        assert recorder.capture(solid_frame())
    assert len(recorder.buffer) == 3


def test_capture_keeps_only_the_last_window(recorder, solid_frame):
    recorder.record()
    for i in range(12):
        recorder.capture(solid_frame(color=(i, 0, 0)))

    reds = [int(frame.pixels[0, 0, 0]) for frame in recorder.buffer]
    assert reds == [7, 8, 9, 10, 11]


def test_capture_samples_by_elapsed_time(output_dir, solid_frame):
    recorder = Recorder(_settings(output_dir, fps=8))
    recorder.record()
    # 8 fps target fed at 32 fps: one in four frames is kept
    stored = [recorder.capture(solid_frame(), dt=1 / 32) for _ in range(16)]
    assert sum(stored) == 4


def test_leftover_time_carries_over(output_dir, solid_frame):
    recorder = Recorder(_settings(output_dir, fps=8))
    recorder.record()
    assert recorder.capture(solid_frame(), dt=0.1875)
    assert recorder.capture(solid_frame(), dt=0.0625)
    assert not recorder.capture(solid_frame(), dt=0.0625)


def test_capture_copies_producer_pixels(recorder, solid_frame):
    recorder.record()
    frame = solid_frame(color=(1, 2, 3))
    recorder.capture(frame)

    frame.pixels[:] = 0

    assert next(iter(recorder.buffer)).pixels[0, 0].tolist() == [1, 2, 3]


def test_capture_resizes_to_configured_size(recorder, solid_frame):
    recorder.record()
    recorder.capture(solid_frame(width=40, height=30, color=(0, 200, 0), channels=4))

    stored = next(iter(recorder.buffer))
    assert stored.size == (16, 16)
    assert stored.channels == 4
    assert stored.pixels[8, 8, :3].tolist() == [0, 200, 0]


def test_setup_flushes_and_resizes(recorder, solid_frame):
    recorder.record()
    recorder.capture(solid_frame())

    assert recorder.setup(fps=20, buffer_seconds=1)

    assert len(recorder.buffer) == 0
    assert recorder.buffer.capacity == 20
    assert recorder.settings.fps == 20


def test_flush_memory_empties_buffer(recorder, solid_frame):
    recorder.record()
    recorder.capture(solid_frame())
    assert recorder.flush_memory()
    assert recorder.buffer.is_empty


def test_estimated_memory_use(output_dir):
    recorder = Recorder(_settings(output_dir, width=320, height=200, fps=15, buffer_seconds=3))
    assert recorder.estimated_memory_use == pytest.approx(15 * 3 * 320 * 200 * 4 / (1024 * 1024))


def test_generate_filename_format():
    name = generate_filename("GifCapture", datetime(2024, 3, 5, 7, 8, 9, 123456))
    assert name == "GifCapture-202403050708091234"


def test_output_path_appends_suffix(recorder, output_dir):
    assert recorder.output_path("clip") == output_dir / "clip.gif"
    assert recorder.output_path("clip.gif") == output_dir / "clip.gif"
    assert recorder.output_path().name.startswith("GifCapture-")


@pytest.mark.asyncio
async def test_save_with_empty_buffer_is_a_no_op(recorder, output_dir, caplog):
    with caplog.at_level("WARNING", logger="gifcap"):
        assert recorder.save() is None

    assert "Nothing to save" in caplog.text
    assert recorder.last_rejection is SaveRejection.EMPTY_BUFFER
    assert recorder.state is RecorderState.PAUSED
    assert list(output_dir.iterdir()) == []


def test_save_without_event_loop_leaves_recorder_usable(recorder, solid_frame):
    recorder.record()
    recorder.capture(solid_frame())

    with pytest.raises(InvalidStateError):
        recorder.save("no-loop")

    assert recorder.state is RecorderState.RECORDING
    assert len(recorder.buffer) == 1
    assert recorder.pause()


@pytest.mark.asyncio
async def test_save_runs_pre_processing_then_worker(output_dir, solid_frame):
    events = []
    recorder = Recorder(
        _settings(output_dir),
        on_preprocessing_done=lambda: events.append("preprocessing_done"),
    )
    recorder.record()
    for i in range(3):
        recorder.capture(solid_frame(color=(0, 0, 50 * i)))

    task = recorder.save("clip")
    assert recorder.state is RecorderState.PRE_PROCESSING

    worker = await task
    assert events == ["preprocessing_done"]
    assert recorder.last_rejection is None
    assert recorder.state is RecorderState.PAUSED
    assert recorder.buffer.is_empty

    assert await worker.wait(timeout=30)
    gif = parse_gif((output_dir / "clip.gif").read_bytes())
    assert len(gif.images) == 3
    assert {image.delay_cs for image in gif.images} == {10}


@pytest.mark.asyncio
async def test_controls_are_rejected_during_pre_processing(recorder, solid_frame, caplog):
    recorder.record()
    for _ in range(4):
        recorder.capture(solid_frame())

    task = recorder.save("guarded")
    with caplog.at_level("WARNING", logger="gifcap"):
        assert recorder.setup(fps=5) is False
        assert recorder.pause() is False
        assert recorder.record() is False
        assert recorder.flush_memory() is False
        assert recorder.save() is None

    assert recorder.last_rejection is SaveRejection.PRE_PROCESSING
    assert recorder.settings.fps == 10
    assert "pre-processing" in caplog.text

    worker = await task
    await worker.wait(timeout=30)
    assert recorder.pause()


@pytest.mark.asyncio
async def test_pre_processing_yields_to_the_event_loop(recorder, solid_frame):
    recorder.record()
    for _ in range(5):
        recorder.capture(solid_frame())

    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0)

    ticker_task = asyncio.create_task(ticker())
    worker = await recorder.save("yield")
    ticker_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await ticker_task

    assert ticks >= 5
    await worker.wait(timeout=30)


@pytest.mark.asyncio
async def test_bottom_up_frames_are_saved_top_down(recorder, output_dir):
    pixels = np.zeros((16, 16, 4), dtype=np.uint8)
    pixels[:8, :, 0] = 255  # bottom half in a bottom-up buffer
    recorder.record()
    recorder.capture(Frame(16, 16, pixels, bottom_up=True))

    worker = await recorder.save("flip")
    await worker.wait(timeout=30)

    gif = parse_gif((output_dir / "flip.gif").read_bytes())
    image = gif.images[0]
    table = gif.global_color_table
    indices = lzw_decode(image.data, image.min_code_size).indices
    top_left = table[indices[0] * 3:indices[0] * 3 + 3]
    bottom_left = table[indices[-16] * 3:indices[-16] * 3 + 3]
    assert top_left == b"\x00\x00\x00"
    assert bottom_left == b"\xff\x00\x00"
