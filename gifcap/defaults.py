"""
Shared default values for the recorder.

Keep this module lightweight - it's imported by the config loader and the CLI.
"""

from pathlib import Path

DEFAULT_WIDTH = 320
DEFAULT_HEIGHT = 200
DEFAULT_AUTO_ASPECT = True
DEFAULT_ASPECT = 16 / 10
DEFAULT_FPS = 15
DEFAULT_REPEAT = 0
DEFAULT_QUALITY = 15
DEFAULT_BUFFER_SECONDS = 3.0
DEFAULT_SAVE_FOLDER = Path("./captures")
DEFAULT_FILENAME_PREFIX = "GifCapture"

MIN_SIZE = 8
MIN_FPS, MAX_FPS = 1, 30
MIN_QUALITY, MAX_QUALITY = 1, 100
MIN_BUFFER_SECONDS = 0.1
MIN_REPEAT, MAX_REPEAT = -1, 0xFFFF
