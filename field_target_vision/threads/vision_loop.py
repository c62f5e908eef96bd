"""Capture / process / publish loop on a dedicated thread."""

import logging
import threading
import time
from typing import List, Optional

import cv2

from field_target_vision.core.config import Config
from field_target_vision.detectors.base import VisionMessage
from field_target_vision.detectors.target_finder import TargetFinder
from field_target_vision.hardware.camera import CameraBase
from field_target_vision.network.data_sender import DataSenderBase

logger = logging.getLogger(__name__)

ESCAPE_KEY = 27
IDLE_DELAY = 0.01
MAX_ERRORS = 10


class VisionLoop:
    """
    Runs the finder on every frame and publishes the results.

    start() launches one daemon thread; stop() only asks it to finish after
    the current iteration. wait() joins it for deterministic shutdown.

    Usage:
        loop = VisionLoop(config, camera, finder, sender)
        loop.start()
        ...
        loop.stop()
        loop.wait(timeout=2.0)
    """

    def __init__(
        self,
        config: Config,
        camera: Optional[CameraBase],
        finder: Optional[TargetFinder],
        sender: DataSenderBase,
        camera_id: Optional[int] = None
    ):
        self._config = config
        self._camera = camera
        self._finder = finder
        self._sender = sender
        self._camera_id = camera_id

        self._should_run = threading.Event()
        self._is_running = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Stats
        self._iterations = 0
        self._frames_processed = 0
        self._messages_sent = 0
        self._fps = 0.0

        self._error_lock = threading.Lock()
        self._errors: List[str] = []

    @property
    def is_running(self) -> bool:
        return self._is_running.is_set()

    @property
    def should_run(self) -> bool:
        return self._should_run.is_set()

    @property
    def camera_id(self) -> int:
        if self._camera_id is not None:
            return self._camera_id
        if self._camera is not None:
            return self._camera.camera_id
        return self._config.camera.camera_id

    def start(self) -> bool:
        """
        Launch the loop thread.

        Returns:
            False if the loop is already running
        """
        if self._is_running.is_set():
            logger.info("Vision loop is already running.")
            return False

        self._should_run.set()
        thread = threading.Thread(target=self._run, name="vision-loop", daemon=True)

        self._is_running.set()
        try:
            thread.start()
        except RuntimeError as e:
            logger.error(f"Failed to start vision loop: {e}")
            self._is_running.clear()
            self._should_run.clear()
            return False

        self._thread = thread
        return True

    def stop(self) -> None:
        """Ask the loop to finish after the current iteration."""
        self._should_run.clear()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop thread to exit.

        Returns:
            True if the loop is no longer running
        """
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return not self._is_running.is_set()

    def _run(self) -> None:
        logger.debug("Enter vision loop")

        frame_count = 0
        last_fps_time = time.time()

        try:
            while self._should_run.is_set():
                try:
                    if self._run_once():
                        frame_count += 1
                except Exception as e:
                    logger.exception(f"Vision loop iteration failed: {e}")
                    self._add_error(str(e))

                self._iterations += 1

                now = time.time()
                if now - last_fps_time >= 1.0:
                    self._fps = frame_count / (now - last_fps_time)
                    logger.debug(f"Vision loop: {self._fps:.1f} fps")
                    frame_count = 0
                    last_fps_time = now
        finally:
            self._is_running.clear()
            logger.debug("Leaving vision loop")

    def _run_once(self) -> bool:
        """
        One acquire / process / publish / debug cycle.

        Returns:
            True if a frame was processed
        """
        if self._config.diagnostics.read_setup_file:
            self._config.reload()
            if self._finder is not None:
                self._finder.update_config(self._config)

        frame = self._camera.try_acquire_frame() if self._camera is not None else None
        if frame is None:
            time.sleep(IDLE_DELAY)
            return False

        packets = []
        if self._finder is not None:
            packets = self._finder.process(frame).data
            self._frames_processed += 1

        message = VisionMessage(camera_id=self.camera_id, packets=packets)
        self._sender.send([message])
        self._messages_sent += 1

        if self._config.diagnostics.display_debug_images:
            if self._finder is not None:
                self._finder.show_debug_images()

            key = cv2.waitKey(self._config.diagnostics.wait_key_delay)
            if key & 0xFF == ESCAPE_KEY:
                logger.info("Escape key pressed. Shutting down.")
                self._should_run.clear()

        return True

    def _add_error(self, error: str) -> None:
        with self._error_lock:
            self._errors.append(error)
            if len(self._errors) > MAX_ERRORS:
                self._errors = self._errors[-MAX_ERRORS:]

    def get_errors(self) -> List[str]:
        with self._error_lock:
            return self._errors[:]

    def get_stats(self) -> dict:
        """Get loop statistics."""
        return {
            'running': self.is_running,
            'iterations': self._iterations,
            'frames_processed': self._frames_processed,
            'messages_sent': self._messages_sent,
            'fps': self._fps,
            'errors': len(self.get_errors()),
        }
