"""
Webcam capture for head tracking.

Privacy: All frames processed in-memory only, never saved to disk.
"""

import cv2
import numpy as np
from typing import Optional, Tuple
from dataclasses import dataclass

from parallax_window.core.config import CameraConfig
from parallax_window.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CameraFrame:
    """Represents a captured camera frame with metadata."""

    image: np.ndarray  # RGB format (H, W, 3)
    timestamp: float
    frame_number: int


class CameraError(Exception):
    """Camera-related errors."""

    pass


class Camera:
    """
    Webcam capture, scoped to a tracking session.

    Use as a context manager so the device is released on teardown.
    """

    def __init__(self, config: CameraConfig):
        """
        Initialize camera (device is opened lazily).

        Args:
            config: Camera configuration
        """
        self._config = config
        self._capture: Optional[cv2.VideoCapture] = None
        self._is_open = False
        self._frame_count = 0

    def open(self) -> bool:
        """
        Open camera and configure capture settings.

        Returns:
            True if successful

        Raises:
            CameraError: If camera cannot be opened
        """
        if self._is_open:
            logger.warning("Camera already open")
            return True

        self._capture = cv2.VideoCapture(self._config.camera_index)

        if not self._capture.isOpened():
            self._capture.release()
            self._capture = None
            raise CameraError(
                f"Failed to open camera {self._config.camera_index}. "
                "Check if camera is connected and not used by another application."
            )

        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._config.frame_width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._config.frame_height)
        self._capture.set(cv2.CAP_PROP_FPS, self._config.target_fps)

        # First frames after open are often black or overexposed
        for _ in range(self._config.warmup_frames):
            self._capture.read()

        self._is_open = True
        self._frame_count = 0

        width, height = self.get_frame_size()
        actual_fps = self._capture.get(cv2.CAP_PROP_FPS)
        logger.info(f"Camera opened: {width}x{height} @ {actual_fps:.1f}fps")

        return True

    def read_frame(self) -> Optional[CameraFrame]:
        """
        Read a frame from the camera.

        Returns:
            CameraFrame (RGB) if successful, None if read failed
        """
        if not self._is_open or self._capture is None:
            logger.warning("Attempted to read from closed camera")
            return None

        ret, frame = self._capture.read()
        if not ret or frame is None:
            logger.warning("Failed to read frame from camera")
            return None

        # MediaPipe expects RGB, OpenCV delivers BGR
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

        self._frame_count += 1

        return CameraFrame(
            image=frame_rgb,
            timestamp=cv2.getTickCount() / cv2.getTickFrequency(),
            frame_number=self._frame_count,
        )

    def get_frame_size(self) -> Tuple[int, int]:
        """
        Get current frame dimensions.

        Returns:
            (width, height) tuple
        """
        if self._capture is None or not self._is_open:
            return (self._config.frame_width, self._config.frame_height)

        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))

        return (width, height)

    def close(self):
        """
        Release camera resources.

        Safe to call multiple times.
        """
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera closed")

        self._is_open = False

    @property
    def is_open(self) -> bool:
        """Check if camera is open."""
        return self._is_open

    @property
    def frame_count(self) -> int:
        """Get number of frames read."""
        return self._frame_count

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
