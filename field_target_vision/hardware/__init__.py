"""
Hardware Module
===============

Frame source abstractions with pluggable implementations:
- OpenCV capture (camera device, test video, test images)
- Mock camera for testing
"""

from .camera import CameraBase, CameraCapture, MockCamera, FrameData, create_camera

__all__ = [
    'CameraBase',
    'CameraCapture',
    'MockCamera',
    'FrameData',
    'create_camera',
]
