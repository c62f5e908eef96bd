"""
Pytest Configuration for Field Target Vision Tests
==================================================

Provides fixtures for synthetic frames, models and configuration.
"""

import pytest
import sys
import os

import cv2
import numpy as np

# Add package to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from field_target_vision.core.config import Config
from field_target_vision.models import CameraModel, PS3EyeZoomModel

# BGR color inside the default HSV band (H=60, S=255, V=180)
TARGET_COLOR = (0, 180, 0)


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def draw_frame(rects, size=(640, 480), color=TARGET_COLOR):
    """
    Black BGR frame with filled rectangles.

    Args:
        rects: List of (x1, y1, x2, y2) inclusive pixel corners
        size: (width, height)
    """
    width, height = size
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    for x1, y1, x2, y2 in rects:
        cv2.rectangle(frame, (x1, y1), (x2, y2), color, cv2.FILLED)
    return frame


@pytest.fixture
def config():
    """Default config with a contour size threshold that accepts ideal rectangles."""
    cfg = Config()
    cfg.processing.contour_size_threshold = 4
    return cfg


@pytest.fixture
def pinhole_camera():
    """Zoom PS3 Eye intrinsics without distortion."""
    return CameraModel(PS3EyeZoomModel().intrinsics(), np.zeros(5), name="pinhole")


@pytest.fixture
def make_frame():
    """Factory fixture for synthetic target frames."""
    return draw_frame
