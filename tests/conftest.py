"""
Test configuration and fixtures for RetinaForge.
"""
import os
import sys
from pathlib import Path

import pytest
import torch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")
os.environ.setdefault("NUMEXPR_NUM_THREADS", "1")

try:
    torch.set_num_threads(1)
except Exception:  # pragma: no cover - fallback when backend disallows
    pass

from retinaforge.config.schema import BarStimulusParams  # noqa: E402
from retinaforge.session import session_reset  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_session():
    """Every test starts and ends with default session settings."""
    session_reset()
    yield
    session_reset()


@pytest.fixture
def small_params():
    """Small moving-bar parameters: 16x16 image, 12 sweep frames."""
    return BarStimulusParams(
        row=16,
        col=16,
        bar_width=4,
        start_frames=3,
        end_frames=2,
        fov=0.2,
    )


@pytest.fixture
def sample_rgb_movie():
    """Gray movie with a bright column band, [rows, cols, frames, 3]."""
    movie = torch.full((12, 12, 20, 3), 0.5)
    movie[:, 4:7, 5:15, :] = 1.0
    return movie
