"""
Frame Sources
=============

Abstract base class and implementations for frame acquisition.
Supports OpenCV capture (device, test video, test images) and a mock for testing.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class FrameData:
    """Camera frame data."""
    frame: np.ndarray
    timestamp: float
    frame_number: int
    width: int
    height: int

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


class CameraBase(ABC):
    """
    Abstract base class for frame sources.

    camera_id tags the published results; it is not necessarily the
    OpenCV device index (test videos and images have none).
    """

    def __init__(
        self,
        camera_id: int = 0,
        width: int = 640,
        height: int = 480,
        auto_reconnect: bool = False,
        **kwargs
    ):
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.auto_reconnect = auto_reconnect

        self._opened = False
        self._frame_count = 0

    @property
    def is_opened(self) -> bool:
        return self._opened

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @abstractmethod
    def open(self) -> bool:
        """Open the source."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the source."""
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Read a frame, None if none is available."""
        pass

    def try_acquire_frame(self) -> Optional[np.ndarray]:
        """Get the next raw frame, or None."""
        data = self.read()
        return data.frame if data else None


class CameraCapture(CameraBase):
    """
    Frame source backed by cv2.VideoCapture.

    Args:
        source: Device index, or a video / image sequence path
    """

    def __init__(self, source: Union[int, str] = 0, **kwargs):
        super().__init__(**kwargs)
        self.source = source
        self._cap = None
        self._lock = threading.Lock()

    def open(self) -> bool:
        """Open the capture with OpenCV."""
        if self._opened:
            return True

        import cv2
        self._cap = cv2.VideoCapture(self.source)

        if not self._cap.isOpened():
            logger.error(f"Failed to open capture: {self.source}")
            self._cap.release()
            self._cap = None
            return False

        if isinstance(self.source, int):
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        self._opened = True
        logger.info(f"Capture opened: {self.source} ({actual_w}x{actual_h})")
        return True

    def close(self) -> None:
        """Release the capture."""
        with self._lock:
            if self._cap:
                self._cap.release()
                self._cap = None
        self._opened = False
        logger.info("Capture closed")

    def read(self) -> Optional[FrameData]:
        """Read a frame from the capture."""
        if not self._opened or not self._cap:
            if not self.auto_reconnect or not self.open():
                return None

        with self._lock:
            ret, frame = self._cap.read()

        if not ret or frame is None:
            logger.debug("Failed to read frame")
            if self.auto_reconnect:
                # Release before the next open() creates a new capture
                with self._lock:
                    if self._cap:
                        self._cap.release()
                        self._cap = None
                self._opened = False
            return None

        self._frame_count += 1

        return FrameData(
            frame=frame,
            timestamp=time.time(),
            frame_number=self._frame_count,
            width=frame.shape[1],
            height=frame.shape[0]
        )


class MockCamera(CameraBase):
    """
    Mock frame source for testing without hardware.

    Returns a static image, or a blank frame when none is set.
    """

    def __init__(
        self,
        static_image: Optional[np.ndarray] = None,
        frame_delay: float = 0.033,
        max_frames: Optional[int] = None,
        **kwargs
    ):
        """
        Initialize mock camera.

        Args:
            static_image: Image to return for every frame
            frame_delay: Delay between frames (simulates FPS)
            max_frames: Stop returning frames after this many (None = unlimited)
        """
        super().__init__(**kwargs)
        self.static_image = static_image
        self.frame_delay = frame_delay
        self.max_frames = max_frames

        self._last_frame_time = 0.0

    def open(self) -> bool:
        self._opened = True
        logger.info("Mock camera opened")
        return True

    def close(self) -> None:
        self._opened = False
        logger.info("Mock camera closed")

    def read(self) -> Optional[FrameData]:
        """Return the static frame."""
        if not self._opened:
            return None

        if self.max_frames is not None and self._frame_count >= self.max_frames:
            return None

        # Simulate frame rate
        elapsed = time.time() - self._last_frame_time
        if elapsed < self.frame_delay:
            time.sleep(self.frame_delay - elapsed)

        self._last_frame_time = time.time()
        self._frame_count += 1

        if self.static_image is not None:
            frame = self.static_image.copy()
        else:
            frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)

        return FrameData(
            frame=frame,
            timestamp=time.time(),
            frame_number=self._frame_count,
            width=frame.shape[1],
            height=frame.shape[0]
        )

    def set_static_image(self, image: np.ndarray) -> None:
        """Set static image to return."""
        self.static_image = image


def create_camera(
    config: Optional[object] = None,
    use_mock: bool = False,
    auto_open: bool = True,
    **kwargs
) -> Optional[CameraBase]:
    """
    Factory function to create a frame source.

    With a config, the source is the test video or test image path when
    the matching diagnostics flag is set, otherwise the camera device.
    A negative camera id means no capture is used.

    Args:
        config: Configuration object
        use_mock: Use mock camera for testing
        auto_open: Automatically open the source
        **kwargs: Additional arguments

    Returns:
        Frame source, or None when capture is disabled
    """
    if config:
        kwargs.setdefault('camera_id', config.camera.camera_id)
        kwargs.setdefault('width', config.camera.width)
        kwargs.setdefault('height', config.camera.height)

    camera_id = kwargs.get('camera_id', 0)

    if use_mock:
        camera = MockCamera(**kwargs)
    else:
        if camera_id < 0:
            logger.info("Capture will not be used")
            return None

        source = camera_id
        if config and config.diagnostics.use_test_video:
            source = config.diagnostics.test_video_path
            logger.info(f"Capture set to video: {source}")
        elif config and config.diagnostics.use_test_image:
            source = config.diagnostics.test_image_path
            logger.info(f"Capture set to image(s): {source}")
        else:
            logger.info(f"Capture set to camera ID: {camera_id}")

        camera = CameraCapture(source=kwargs.pop('source', source), **kwargs)

    if auto_open:
        camera.open()

    return camera
