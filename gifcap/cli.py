"""Command line front end: turn the tail of a video or image sequence into a gif."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Iterator, Optional, Sequence, Tuple

import cv2
import numpy as np

from gifcap.capture.frame import Frame
from gifcap.config import RecorderSettings, load_settings_async
from gifcap.core.logging_config import LOG_LEVELS, configure_logging
from gifcap.core.logging_utils import get_module_logger
from gifcap.defaults import DEFAULT_SAVE_FOLDER
from gifcap.recorder import Recorder

logger = get_module_logger("cli")

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp")


def add_common_cli_arguments(parser: argparse.ArgumentParser, *, default_output: Path | str) -> None:
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=f"Directory where gifs are written (default: {default_output})",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default="info",
        help="Logging verbosity",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path for a rotating log file",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional key=value settings file; command line values take precedence",
    )


def positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"'{value}' must be positive")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gifcap",
        description="Save the last seconds of a video file or image directory as an animated gif.",
    )
    parser.add_argument("source", type=Path, help="Video file or directory of images")
    parser.add_argument("--width", type=positive_int, default=None, help="Gif width in pixels")
    parser.add_argument(
        "--height",
        type=positive_int,
        default=None,
        help="Gif height in pixels (disables automatic aspect ratio)",
    )
    parser.add_argument("--fps", type=positive_int, default=None, help="Gif frame rate (1-30)")
    parser.add_argument(
        "--quality",
        type=positive_int,
        default=None,
        help="Quantizer sample interval, 1 (best) to 100 (fastest)",
    )
    parser.add_argument("--buffer-seconds", type=float, default=None, help="Seconds of footage to keep")
    parser.add_argument(
        "--repeat",
        type=int,
        default=None,
        help="-1 plays once, 0 loops forever, n loops n extra times",
    )
    parser.add_argument(
        "--source-fps",
        type=float,
        default=None,
        help="Frame rate of an image directory (default: the gif frame rate)",
    )
    parser.add_argument("--name", default=None, help="Output file name (default: timestamped)")
    add_common_cli_arguments(parser, default_output=DEFAULT_SAVE_FOLDER)
    return parser


# ---------------------------------------------------------------------- sources


def _to_frame(bgr: np.ndarray) -> Frame:
    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
    height, width = rgb.shape[:2]
    return Frame(width, height, rgb)


def iter_video(path: Path) -> Tuple[Iterator[Frame], float]:
    capture = cv2.VideoCapture(str(path))
    if not capture.isOpened():
        raise OSError(f"Cannot open video {path}")
    fps = capture.get(cv2.CAP_PROP_FPS) or 0.0

    def frames() -> Iterator[Frame]:
        try:
            while True:
                ok, bgr = capture.read()
                if not ok:
                    return
                yield _to_frame(bgr)
        finally:
            capture.release()

    return frames(), fps


def iter_images(directory: Path) -> Iterator[Frame]:
    paths = sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
    for path in paths:
        bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if bgr is None:
            logger.warning("Skipping unreadable image %s", path)
            continue
        yield _to_frame(bgr)


def open_source(source: Path, fallback_fps: float) -> Tuple[Iterator[Frame], float]:
    if source.is_dir():
        return iter_images(source), fallback_fps
    if not source.exists():
        raise FileNotFoundError(f"No such file or directory: {source}")
    frames, fps = iter_video(source)
    if fps <= 0:
        logger.warning("Video reports no frame rate, assuming %.1f fps", fallback_fps)
        fps = fallback_fps
    return frames, fps


# ---------------------------------------------------------------------- run


async def resolve_settings(args: argparse.Namespace) -> RecorderSettings:
    overrides = {
        "width": args.width,
        "fps": args.fps,
        "quality": args.quality,
        "buffer_seconds": args.buffer_seconds,
        "repeat": args.repeat,
        "save_folder": args.output_dir,
    }
    if args.height is not None:
        overrides["height"] = args.height
        overrides["auto_aspect"] = False
    return await load_settings_async(args.config, overrides, logger=logger)


async def run(args: argparse.Namespace) -> int:
    settings = await resolve_settings(args)
    recorder = Recorder(settings, logger=logger)
    frames, source_fps = open_source(args.source, args.source_fps or settings.fps)
    dt = 1.0 / source_fps

    recorder.record()
    fed = 0
    for frame in frames:
        recorder.capture(frame, dt)
        fed += 1
        if fed % 100 == 0:
            await asyncio.sleep(0)
    recorder.pause()
    logger.info("Read %d source frames, %d buffered", fed, len(recorder.buffer))

    task = recorder.save(args.name)
    if task is None:
        return 1

    worker = await task
    await worker.wait()
    if worker.error is not None:
        logger.error("Failed to save %s: %s", worker.path, worker.error)
        return 1
    logger.info("Saved %s", worker.path)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, log_file=args.log_file, force=True)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except OSError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
