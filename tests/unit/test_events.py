"""Unit tests for EventChannel."""

import threading

import pytest

from gifcap.events import EventChannel, RecorderEventType
from gifcap.recorder import Recorder
from gifcap.config import RecorderSettings


def test_poll_on_empty_channel_returns_none():
    assert EventChannel().poll() is None
    assert EventChannel().poll(timeout=0.01) is None


def test_events_keep_their_order():
    channel = EventChannel()
    channel.on_preprocessing_done()
    channel.on_progress(3, 0.5)
    channel.on_progress(3, 1.0)
    channel.on_saved(3, "/tmp/a.gif")

    events = channel.drain()

    assert [event.type for event in events] == [
        RecorderEventType.PREPROCESSING_DONE,
        RecorderEventType.PROGRESS,
        RecorderEventType.PROGRESS,
        RecorderEventType.SAVED,
    ]
    assert events[2].progress == 1.0
    assert events[3].path == "/tmp/a.gif"
    assert len(channel) == 0


def test_events_cross_threads():
    channel = EventChannel()
    error = OSError("disk full")
    thread = threading.Thread(target=channel.on_failed, args=(7, error))
    thread.start()
    thread.join()

    event = channel.poll(timeout=1)

    assert event.type is RecorderEventType.FAILED
    assert event.worker_id == 7
    assert event.error is error


@pytest.mark.asyncio
async def test_channel_collects_recorder_callbacks(output_dir, solid_frame):
    channel = EventChannel()
    settings = RecorderSettings.create(width=8, height=8, auto_aspect=False, save_folder=output_dir)
    recorder = Recorder(settings, **channel.callbacks())
    recorder.record()
    recorder.capture(solid_frame(8, 8))
    recorder.capture(solid_frame(8, 8, (0, 255, 0)))

    worker = await recorder.save("events")
    await worker.wait(timeout=30)

    types = [event.type for event in channel.drain()]
    assert types == [
        RecorderEventType.PREPROCESSING_DONE,
        RecorderEventType.PROGRESS,
        RecorderEventType.PROGRESS,
        RecorderEventType.SAVED,
    ]
