"""Key=value config file loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles

from gifcap.core.logging_utils import get_module_logger

logger = get_module_logger("ConfigLoader")

_TRUE_WORDS = ('true', 'yes', 'on', '1')
_BOOL_WORDS = _TRUE_WORDS + ('false', 'no', 'off', '0')


class ConfigLoader:
    """Reads ``key = value`` files.

    Blank lines and ``#`` comments are skipped, inline comments stripped and
    surrounding quotes removed. Keys present in ``defaults`` are parsed to the
    default's type; other keys are guessed (bool, int, float, then str).
    """

    @staticmethod
    def load(
        config_path: Path,
        defaults: Optional[Dict[str, Any]] = None,
        strict: bool = False,
    ) -> Dict[str, Any]:
        config_path = Path(config_path)
        if not config_path.exists():
            if defaults:
                logger.debug("Config file not found at %s, using defaults", config_path)
            else:
                logger.warning("Config file not found at %s and no defaults provided", config_path)
            return dict(defaults or {})

        logger.debug("Loading config from: %s", config_path)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except OSError as e:
            logger.error("Failed to load config file %s: %s", config_path, e)
            return dict(defaults or {})

        config = ConfigLoader._parse_lines(lines, defaults, strict)
        logger.info("Loaded config from %s (%d values)", config_path, len(config))
        return config

    @staticmethod
    async def load_async(
        config_path: Path,
        defaults: Optional[Dict[str, Any]] = None,
        strict: bool = False,
    ) -> Dict[str, Any]:
        """Async version of load() reading through aiofiles."""
        config_path = Path(config_path)
        try:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                lines = await f.readlines()
        except FileNotFoundError:
            logger.debug("Config file not found at %s, using defaults", config_path)
            return dict(defaults or {})
        except OSError as e:
            logger.error("Failed to load config file %s: %s", config_path, e)
            return dict(defaults or {})

        config = ConfigLoader._parse_lines(lines, defaults, strict)
        logger.info("Loaded config from %s (%d values)", config_path, len(config))
        return config

    @staticmethod
    def _parse_lines(
        lines: Iterable[str],
        defaults: Optional[Dict[str, Any]],
        strict: bool,
    ) -> Dict[str, Any]:
        config = dict(defaults or {})

        for line_num, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue

            if '=' not in line:
                logger.warning("Invalid config line %d (missing '='): %s", line_num, line)
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#', 1)[0].strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]

            if strict and defaults is not None and key not in defaults:
                logger.warning("Unknown config key '%s' (line %d) - ignored in strict mode", key, line_num)
                continue

            if defaults and key in defaults:
                config[key] = ConfigLoader._parse_value_with_type(value, defaults[key])
            else:
                config[key] = ConfigLoader._parse_value(value)

        return config

    @staticmethod
    def _parse_value(value: str) -> Any:
        value_lower = value.lower()
        if value_lower in _BOOL_WORDS:
            return value_lower in _TRUE_WORDS

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @staticmethod
    def _parse_value_with_type(value: str, default: Any) -> Any:
        if isinstance(default, bool):
            return value.lower() in _TRUE_WORDS

        if isinstance(default, int):
            try:
                return int(value, 0)
            except ValueError:
                logger.warning("Failed to parse '%s' as int, using default %s", value, default)
                return default

        if isinstance(default, float):
            try:
                return float(value)
            except ValueError:
                logger.warning("Failed to parse '%s' as float, using default %s", value, default)
                return default

        if isinstance(default, Path):
            return Path(value) if value else default

        return value


__all__ = ["ConfigLoader"]
