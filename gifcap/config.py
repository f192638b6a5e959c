"""Typed, validated recorder configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from gifcap.capture.buffer import capacity_for
from gifcap.config_loader import ConfigLoader
from gifcap.core.logging_utils import LoggerLike, ensure_structured_logger
from gifcap.defaults import (
    DEFAULT_ASPECT,
    DEFAULT_AUTO_ASPECT,
    DEFAULT_BUFFER_SECONDS,
    DEFAULT_FILENAME_PREFIX,
    DEFAULT_FPS,
    DEFAULT_HEIGHT,
    DEFAULT_QUALITY,
    DEFAULT_REPEAT,
    DEFAULT_SAVE_FOLDER,
    DEFAULT_WIDTH,
    MAX_FPS,
    MAX_QUALITY,
    MAX_REPEAT,
    MIN_BUFFER_SECONDS,
    MIN_FPS,
    MIN_QUALITY,
    MIN_REPEAT,
    MIN_SIZE,
)
from gifcap.errors import InvalidArgumentError


def _as_number(name: str, value: Any, kind: type):
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}") from exc


def constrain_min(name: str, value: Any, minimum, kind: type = int):
    return max(minimum, _as_number(name, value, kind))


def constrain_range(name: str, value: Any, minimum, maximum, kind: type = int):
    return min(maximum, max(minimum, _as_number(name, value, kind)))


@dataclass(frozen=True, slots=True)
class RecorderSettings:
    """Recorder configuration with every value already inside its legal range.

    Build instances with :meth:`create`, which clamps out-of-range numbers to
    the nearest legal value and rejects non-numbers.
    """

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    auto_aspect: bool = DEFAULT_AUTO_ASPECT
    aspect: float = DEFAULT_ASPECT
    fps: int = DEFAULT_FPS
    buffer_seconds: float = DEFAULT_BUFFER_SECONDS
    repeat: int = DEFAULT_REPEAT
    quality: int = DEFAULT_QUALITY
    save_folder: Path = field(default=DEFAULT_SAVE_FOLDER)
    filename_prefix: str = DEFAULT_FILENAME_PREFIX

    @classmethod
    def create(
        cls,
        *,
        width: Any = DEFAULT_WIDTH,
        height: Any = DEFAULT_HEIGHT,
        auto_aspect: bool = DEFAULT_AUTO_ASPECT,
        aspect: Any = DEFAULT_ASPECT,
        fps: Any = DEFAULT_FPS,
        buffer_seconds: Any = DEFAULT_BUFFER_SECONDS,
        repeat: Any = DEFAULT_REPEAT,
        quality: Any = DEFAULT_QUALITY,
        save_folder: Any = DEFAULT_SAVE_FOLDER,
        filename_prefix: str = DEFAULT_FILENAME_PREFIX,
    ) -> "RecorderSettings":
        width = constrain_min("width", width, MIN_SIZE)
        aspect = _as_number("aspect", aspect, float)
        if aspect <= 0:
            raise InvalidArgumentError(f"aspect must be positive, got {aspect}")
        if auto_aspect:
            height = max(MIN_SIZE, int(round(width / aspect)))
        else:
            height = constrain_min("height", height, MIN_SIZE)

        return cls(
            width=width,
            height=height,
            auto_aspect=bool(auto_aspect),
            aspect=aspect,
            fps=constrain_range("fps", fps, MIN_FPS, MAX_FPS),
            buffer_seconds=constrain_min("buffer_seconds", buffer_seconds, MIN_BUFFER_SECONDS, float),
            repeat=constrain_range("repeat", repeat, MIN_REPEAT, MAX_REPEAT),
            quality=constrain_range("quality", quality, MIN_QUALITY, MAX_QUALITY),
            save_folder=Path(save_folder) if save_folder else DEFAULT_SAVE_FOLDER,
            filename_prefix=filename_prefix or DEFAULT_FILENAME_PREFIX,
        )

    def with_changes(self, **changes: Any) -> "RecorderSettings":
        """Return re-validated settings with ``changes`` applied."""
        values = asdict(self)
        values.update(changes)
        return RecorderSettings.create(**values)

    # ------------------------------------------------------------------ derived

    @property
    def max_frame_count(self) -> int:
        return capacity_for(self.buffer_seconds, self.fps)

    @property
    def time_per_frame(self) -> float:
        return 1.0 / self.fps

    @property
    def delay_ms(self) -> int:
        return int(round(self.time_per_frame * 1000))

    @property
    def estimated_memory_mb(self) -> float:
        """Memory held by a full buffer of RGBA frames, in MiB."""
        return self.fps * self.buffer_seconds * self.width * self.height * 4 / (1024 * 1024)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["save_folder"] = str(self.save_folder)
        return data


def _defaults_dict() -> Dict[str, Any]:
    defaults = asdict(RecorderSettings())
    defaults["buffer_seconds"] = float(defaults["buffer_seconds"])
    return defaults


def settings_from_mapping(
    values: Dict[str, Any],
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> RecorderSettings:
    """Build settings from a loaded config dict plus non-None overrides."""
    log = ensure_structured_logger(logger, fallback_name=__name__)
    merged = dict(values)
    if overrides:
        merged.update({key: value for key, value in overrides.items() if value is not None})

    known = set(_defaults_dict())
    unknown = sorted(set(merged) - known)
    if unknown:
        log.warning("Ignoring unknown recorder settings: %s", ", ".join(unknown))
    return RecorderSettings.create(**{key: merged[key] for key in known if key in merged})


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> RecorderSettings:
    values = ConfigLoader.load(config_path, _defaults_dict()) if config_path else _defaults_dict()
    return settings_from_mapping(values, overrides, logger=logger)


async def load_settings_async(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> RecorderSettings:
    values = await ConfigLoader.load_async(config_path, _defaults_dict()) if config_path else _defaults_dict()
    return settings_from_mapping(values, overrides, logger=logger)


__all__ = [
    "RecorderSettings",
    "constrain_min",
    "constrain_range",
    "load_settings",
    "load_settings_async",
    "settings_from_mapping",
]
