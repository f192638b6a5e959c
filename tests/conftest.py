"""Shared pytest configuration and fixtures for the gifcap test suite."""

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gifcap.capture.frame import Frame  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: end-to-end tests that write real gif files"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def restore_package_logging():
    """Undo handler and level changes made to the gifcap logger."""
    package = logging.getLogger("gifcap")
    handlers = list(package.handlers)
    level = package.level
    yield package
    for handler in list(package.handlers):
        if handler not in handlers:
            package.removeHandler(handler)
            handler.close()
    package.setLevel(level)


@pytest.fixture
def solid_frame():
    """Factory for single-color frames."""

    def _make(width=16, height=16, color=(255, 0, 0), channels=3, bottom_up=False) -> Frame:
        pixels = np.empty((height, width, channels), dtype=np.uint8)
        pixels[:, :, 0] = color[0]
        pixels[:, :, 1] = color[1]
        pixels[:, :, 2] = color[2]
        if channels == 4:
            pixels[:, :, 3] = 255
        return Frame(width, height, pixels, bottom_up=bottom_up)

    return _make


@pytest.fixture
def gradient_frame():
    """Factory for frames with many distinct colors (forces NeuQuant)."""

    def _make(width=64, height=48, seed=0) -> Frame:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
        return Frame(width, height, pixels)

    return _make


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "captures"
    directory.mkdir()
    return directory
